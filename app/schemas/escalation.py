"""
Pydantic schemas for escalation API endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.models.schemas import (
    CamelModel,
    Escalation,
    EscalationPriority,
    EscalationStatus,
    Tenant,
)
from app.schemas.tenant import UpdateCommand


class EscalationUpdate(UpdateCommand):
    """Mutable escalation fields."""

    status: Optional[EscalationStatus] = None
    priority: Optional[EscalationPriority] = None
    description: Optional[str] = Field(None, min_length=1)
    resolved_at: Optional[datetime] = Field(
        None,
        description="Accepted alongside status=resolved; the server records its own resolution time",
    )


class EscalationItem(CamelModel):
    escalation: Escalation
    tenant: Optional[Tenant] = None
    type_label: str
    type_glyph: str


class EscalationGroup(CamelModel):
    """Open escalations sharing one priority"""

    priority: EscalationPriority
    label: str
    count: int
    items: List[EscalationItem] = Field(default_factory=list)


class OpenEscalationsResponse(CamelModel):
    groups: List[EscalationGroup] = Field(default_factory=list)
    total: int = Field(..., description="Open escalations across all priorities")
