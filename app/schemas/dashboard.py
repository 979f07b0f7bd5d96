"""
Dashboard API Schemas
"""

from pydantic import Field

from app.models.schemas import CamelModel


class DashboardStatsResponse(CamelModel):
    """Headline counts for the collections dashboard"""

    pending: int = Field(..., description="Tenants not yet contacted")
    active: int = Field(..., description="Tenants with collections in progress")
    approval: int = Field(..., description="Conversations with drafts awaiting approval")
    escalated: int = Field(..., description="Open escalations")
    total_tenants: int = Field(..., description="All tracked tenants")
    total_owed: float = Field(..., description="Sum of outstanding balances")
