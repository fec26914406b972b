"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from hr_payroll.calculators.types import ConversionDirection, TaxStatus


class CamelModel(BaseModel):
    """Base schema exchanged in camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# Conversion schemas
# ============================================================================


class ConversionRequest(CamelModel):
    """Schema for a gross/net conversion request."""

    amount: Decimal
    direction: ConversionDirection
    tax_status: TaxStatus
    as_of_date: date = Field(alias="date")
    rule_code: str | None = None


class ConversionResponse(CamelModel):
    """Schema for a conversion result."""

    id: UUID
    number: str
    amount: Decimal
    direction: ConversionDirection
    tax_status: TaxStatus
    as_of_date: date = Field(alias="date")
    result: Decimal
    rate_applied: Decimal
    tax_amount: Decimal
    gross: Decimal
    net: Decimal
    rule_version_id: UUID


class CalculationResponse(CamelModel):
    """Schema for a stored calculation."""

    id: UUID
    number: str
    amount: Decimal
    direction: ConversionDirection
    tax_status: TaxStatus
    as_of_date: date = Field(alias="date")
    result: Decimal
    rate_applied: Decimal
    tax_amount: Decimal
    rule_version_id: UUID
    created_by: str | None = None
    created_at: datetime | None = None


class CalculationListResponse(CamelModel):
    """Schema for listing calculations."""

    items: list[CalculationResponse]
    total: int
    page: int
    page_size: int


# ============================================================================
# Rule schemas
# ============================================================================


class RuleVersionCreate(CamelModel):
    """Schema for adding a rule version."""

    effective_from: date
    resident_rate: Decimal = Field(ge=0)
    non_resident_rate: Decimal = Field(ge=0)
    is_percentage: bool = True
    notes: str | None = None


class RuleCreate(RuleVersionCreate):
    """Schema for creating a rule with its initial version."""

    code: str = Field(min_length=1, max_length=64)
    name_tr: str = Field(min_length=1)
    name_ru: str = Field(min_length=1)
    name_en: str = Field(min_length=1)
    category: str = Field(min_length=1, max_length=32)
    is_active: bool = True


class RuleVersionResponse(CamelModel):
    """Schema for a rule version."""

    rule_version_id: UUID
    effective_from: date
    resident_rate: Decimal
    non_resident_rate: Decimal
    is_percentage: bool
    notes: str | None = None
    created_by: str | None = None


class RuleResponse(CamelModel):
    """Schema for a rule with its version in force."""

    rule_id: UUID
    code: str
    name_tr: str
    name_ru: str
    name_en: str
    category: str
    is_active: bool
    current_version: RuleVersionResponse | None = None


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str | None = None
