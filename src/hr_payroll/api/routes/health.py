"""Health and readiness endpoints."""

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from hr_payroll.api.dependencies import AppSettings, DbSession
from hr_payroll.calculators.types import CalculationError
from hr_payroll.services.rule_store import RuleNotFoundError, RuleStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service, database and tax rule status."""

    status: str
    timestamp: datetime
    version: str
    database: str
    tax_rule: str


async def _tax_rule_status(db: DbSession, rule_code: str) -> str:
    try:
        snapshot = await RuleStore(db).load_snapshot(rule_code)
        snapshot.resolve(date.today())
    except (RuleNotFoundError, CalculationError):
        return "missing"
    return "loaded"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession, settings: AppSettings) -> HealthResponse:
    """Report database reachability and whether the NDFL rule is in force today."""
    db_status = "unhealthy"
    rule_status = "unknown"
    try:
        await db.execute(text("SELECT 1"))
        db_status = "healthy"
        rule_status = await _tax_rule_status(db, settings.ndfl_rule_code)
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)

    healthy = db_status == "healthy" and rule_status == "loaded"
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=settings.engine_version,
        database=db_status,
        tax_rule=rule_status,
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready once the database answers."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Readiness check failed", exc_info=True)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable"}
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
