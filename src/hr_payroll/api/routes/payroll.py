"""Payroll conversion and rule endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, Response, status

from hr_payroll.api.dependencies import AppSettings, CurrentUserId, DbSession, RequiredUserId
from hr_payroll.api.schemas import (
    CalculationListResponse,
    CalculationResponse,
    ConversionRequest,
    ConversionResponse,
    ErrorResponse,
    RuleCreate,
    RuleResponse,
    RuleVersionCreate,
    RuleVersionResponse,
)
from hr_payroll.calculators.types import TaxStatus
from hr_payroll.models import PayrollCalculation
from hr_payroll.services.calculation_service import CalculationService
from hr_payroll.services.rule_service import RuleService, RuleWithVersion

router = APIRouter(prefix="/payroll", tags=["payroll"])


def _calculation_response(calculation: PayrollCalculation) -> CalculationResponse:
    return CalculationResponse(
        id=calculation.calculation_id,
        number=calculation.number,
        amount=calculation.amount,
        direction=calculation.direction,
        tax_status=calculation.tax_status,
        as_of_date=calculation.as_of_date,
        result=calculation.result,
        rate_applied=calculation.rate_applied,
        tax_amount=calculation.tax_amount,
        rule_version_id=calculation.rule_version_id,
        created_by=calculation.created_by,
        created_at=calculation.created_at,
    )


def _rule_response(item: RuleWithVersion) -> RuleResponse:
    rule = item.rule
    return RuleResponse(
        rule_id=rule.rule_id,
        code=rule.code,
        name_tr=rule.name_tr,
        name_ru=rule.name_ru,
        name_en=rule.name_en,
        category=rule.category,
        is_active=rule.is_active,
        current_version=(
            RuleVersionResponse.model_validate(item.current_version)
            if item.current_version is not None
            else None
        ),
    )


# ============================================================================
# Conversion
# ============================================================================


@router.post(
    "/convert",
    response_model=ConversionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def convert(
    db: DbSession,
    settings: AppSettings,
    user_id: CurrentUserId,
    payload: ConversionRequest,
) -> ConversionResponse:
    """Convert gross to net or net to gross and record the calculation."""
    service = CalculationService(db)
    calculation, outcome = await service.convert(
        rule_code=payload.rule_code or settings.ndfl_rule_code,
        amount=payload.amount,
        direction=payload.direction,
        tax_status=payload.tax_status,
        as_of_date=payload.as_of_date,
        user_id=user_id,
    )
    await db.commit()

    return ConversionResponse(
        id=calculation.calculation_id,
        number=calculation.number,
        amount=calculation.amount,
        direction=outcome.direction,
        tax_status=outcome.tax_status,
        as_of_date=outcome.as_of_date,
        result=outcome.result,
        rate_applied=outcome.rate_applied,
        tax_amount=outcome.tax_amount,
        gross=outcome.gross,
        net=outcome.net,
        rule_version_id=calculation.rule_version_id,
    )


@router.get("/calculations", response_model=CalculationListResponse)
async def list_calculations(
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100, alias="pageSize")] = 20,
    tax_status: Annotated[TaxStatus | None, Query(alias="taxStatus")] = None,
) -> CalculationListResponse:
    """List recorded calculations, newest first."""
    items, total = await CalculationService(db).list_calculations(
        page=page, page_size=page_size, tax_status=tax_status
    )
    return CalculationListResponse(
        items=[_calculation_response(c) for c in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/calculations/{calculation_id}",
    response_model=CalculationResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_calculation(
    db: DbSession,
    calculation_id: Annotated[UUID, Path()],
) -> CalculationResponse:
    """Get a recorded calculation."""
    calculation = await CalculationService(db).get_calculation(calculation_id)
    if calculation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Calculation not found",
        )
    return _calculation_response(calculation)


# ============================================================================
# Rules
# ============================================================================


@router.get("/rules", response_model=list[RuleResponse])
async def list_rules(
    db: DbSession,
    category: str | None = None,
    is_active: Annotated[bool | None, Query(alias="isActive")] = None,
) -> list[RuleResponse]:
    """List payroll rules with the version currently in force."""
    listing = await RuleService(db).list_rules(category=category, is_active=is_active)
    return [_rule_response(item) for item in listing]


@router.post(
    "/rules",
    response_model=RuleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_rule(
    db: DbSession,
    user_id: RequiredUserId,
    payload: RuleCreate,
) -> RuleResponse:
    """Create a payroll rule with its initial version."""
    created = await RuleService(db).create_rule(**payload.model_dump(), user_id=user_id)
    await db.commit()
    return _rule_response(created)


@router.get(
    "/rules/{code}/versions",
    response_model=list[RuleVersionResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_rule_versions(
    db: DbSession,
    code: Annotated[str, Path()],
) -> list[RuleVersionResponse]:
    """List all versions of a rule, oldest first."""
    versions = await RuleService(db).list_versions(code)
    return [RuleVersionResponse.model_validate(v) for v in versions]


@router.post(
    "/rules/{code}/versions",
    response_model=RuleVersionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def add_rule_version(
    db: DbSession,
    user_id: RequiredUserId,
    code: Annotated[str, Path()],
    payload: RuleVersionCreate,
) -> RuleVersionResponse:
    """Add a version that supersedes earlier ones from its effective date."""
    version = await RuleService(db).add_version(code, **payload.model_dump(), user_id=user_id)
    await db.commit()
    return RuleVersionResponse.model_validate(version)


@router.delete(
    "/rules/{code}/versions/{rule_version_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_rule_version(
    db: DbSession,
    user_id: RequiredUserId,
    code: Annotated[str, Path()],
    rule_version_id: Annotated[UUID, Path()],
) -> Response:
    """Delete a version no calculation has used yet."""
    await RuleService(db).delete_version(code, rule_version_id, user_id=user_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
