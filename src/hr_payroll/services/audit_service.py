"""Audit log sink."""

from __future__ import annotations

import logging
from typing import Any

from pydantic_core import to_jsonable_python
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.models import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Writes audit records in the caller's transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        action: str,
        entity: str,
        entity_id: Any = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> AuditLog:
        """Append an audit record.

        Values are converted to JSON-safe primitives (Decimal, date and UUID
        become strings) before storage.
        """
        entry = AuditLog(
            user_id=user_id,
            action=action,
            entity=entity,
            entity_id=str(entity_id) if entity_id is not None else None,
            old_values=to_jsonable_python(old_values) if old_values is not None else None,
            new_values=to_jsonable_python(new_values) if new_values is not None else None,
        )
        self.session.add(entry)
        await self.session.flush()

        logger.debug("Audit %s %s %s by %s", action, entity, entity_id, user_id)
        return entry
