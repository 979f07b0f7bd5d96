"""
Payment Plan API Schemas

Pydantic models for payment plan updates and review views.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from app.models.schemas import CamelModel, PaymentPlan, PaymentPlanStatus, Tenant
from app.schemas.tenant import UpdateCommand
from app.utils.classification import RiskLevel


class PaymentPlanUpdate(UpdateCommand):
    """Mutable payment plan fields. Terms can only change while the plan is proposed."""

    status: Optional[PaymentPlanStatus] = None
    weekly_amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    duration: Optional[int] = Field(None, gt=0)
    total_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    start_date: Optional[str] = None
    includes_late_fees: Optional[bool] = None
    coverage: Optional[int] = Field(None, ge=0)

    @field_validator("start_date")
    @classmethod
    def validate_start_date(cls, v):
        """Validate start_date is not blank"""
        if v is not None and not v.strip():
            raise ValueError("start_date cannot be empty")
        return v


class PaymentPlanReview(CamelModel):
    """Proposed plan with its risk classification"""

    plan: PaymentPlan
    tenant: Optional[Tenant] = None
    risk: RiskLevel = Field(..., description="low, medium or high")
    risk_label: str = Field(..., description="Human-readable risk label")
    coverage_complete: bool = Field(..., description="Plan covers the whole balance")


class PendingPaymentPlansResponse(CamelModel):
    items: List[PaymentPlanReview] = Field(default_factory=list)
    total: int
