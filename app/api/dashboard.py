"""
Dashboard API endpoints.
"""

from fastapi import APIRouter, Depends

from app.core.dependencies import get_triage_aggregator
from app.schemas.dashboard import DashboardStatsResponse
from app.services.triage_service import TriageAggregator

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(aggregator: TriageAggregator = Depends(get_triage_aggregator)):
    """
    Get headline dashboard counts.

    Returns:
        pending, active, approval and escalated counts, the tenant total
        and the total amount owed
    """
    return aggregator.dashboard_stats().to_response()
