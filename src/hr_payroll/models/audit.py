"""Audit log and numbering rule models."""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from hr_payroll.models.base import Base, TimestampMixin


class AuditLog(Base, TimestampMixin):
    """Append-only record of a change made through the service."""

    __tablename__ = "audit_log"

    audit_log_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    entity: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String, nullable=True)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)


class NumberingRule(Base, TimestampMixin):
    """Sequence used to issue formatted identifiers per entity."""

    __tablename__ = "numbering_rule"

    entity: Mapped[str] = mapped_column(String(64), primary_key=True)
    prefix: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    pad_length: Mapped[int] = mapped_column(Integer, nullable=False, default=6)
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def format(self, number: int) -> str:
        """Format a sequence number with prefix and zero padding."""
        return f"{self.prefix}{str(number).zfill(self.pad_length)}"
