"""
Tenant API Schemas

Update command and collections queue views for tenants.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.schemas import CamelModel, Tenant, TenantPriority, TenantStatus


class UpdateCommand(CamelModel):
    """Base for PATCH payloads: only listed fields may be sent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def changes(self):
        """Fields the caller actually sent, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class TenantUpdate(UpdateCommand):
    """Mutable tenant fields."""

    name: Optional[str] = Field(None, min_length=1)
    unit: Optional[str] = None
    property: Optional[str] = None
    phone: Optional[str] = None
    language: Optional[str] = None
    amount_owed: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    days_late: Optional[int] = Field(None, ge=0)
    reliability: Optional[int] = Field(None, ge=1, le=10)
    priority: Optional[TenantPriority] = None
    status: Optional[TenantStatus] = None
    last_contact: Optional[datetime] = None
    notes: Optional[str] = None


class QueueSort(str, Enum):
    PRIORITY = "priority"
    AMOUNT = "amount"
    DAYS_LATE = "days_late"


class PriorityCounts(CamelModel):
    high: int = Field(0, description="Tenants with high priority")
    medium: int = Field(0, description="Tenants with medium priority")
    low: int = Field(0, description="Tenants with low priority")


class CollectionsQueueResponse(CamelModel):
    """Filtered, sorted collections queue"""

    tenants: List[Tenant] = Field(default_factory=list)
    total: int = Field(..., description="Tenants matching the filters")
    priority_counts: PriorityCounts = Field(..., description="Counts over the unfiltered queue")
