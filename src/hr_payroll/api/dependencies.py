"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.config import Settings
from hr_payroll.database import Database


def get_database(request: Request) -> Database:
    """Database constructed by the application factory."""
    return request.app.state.database


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


async def get_db_session(
    database: Annotated[Database, Depends(get_database)],
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str | None:
    """Identity of the caller, as resolved by the upstream auth layer."""
    return x_user_id or None


async def require_user_id(
    user_id: Annotated[str | None, Depends(get_current_user_id)],
) -> str:
    """Reject requests that carry no caller identity."""
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-ID header is required",
        )
    return user_id


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
CurrentUserId = Annotated[str | None, Depends(get_current_user_id)]
RequiredUserId = Annotated[str, Depends(require_user_id)]
