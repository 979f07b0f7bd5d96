"""
Tenant API endpoints.

List, fetch and update tenants, plus the filtered collections queue.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from app.core.dependencies import get_store, get_transition_engine, get_triage_aggregator
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.models.schemas import Tenant, TenantPriority, TenantStatus
from app.schemas.tenant import CollectionsQueueResponse, QueueSort, TenantUpdate
from app.services.store import EntityKind, EntityStore
from app.services.transition_service import TransitionEngine
from app.services.triage_service import TriageAggregator

logger = get_logger(__name__)

router = APIRouter(prefix="/api/tenants", tags=["tenants"])


@router.get("", response_model=List[Tenant])
async def list_tenants(store: EntityStore = Depends(get_store)):
    """List every tracked tenant."""
    return store.list(EntityKind.TENANT)


@router.get("/queue", response_model=CollectionsQueueResponse)
async def get_collections_queue(
    priority: Optional[TenantPriority] = None,
    status: Optional[TenantStatus] = None,
    sort_by: QueueSort = QueueSort.PRIORITY,
    aggregator: TriageAggregator = Depends(get_triage_aggregator),
):
    """
    Get the collections queue.

    Args:
        priority: Only tenants with this priority
        status: Only tenants with this status
        sort_by: priority, amount or days_late

    Returns:
        Matching tenants in work order, with counts by priority
    """
    return aggregator.collections_queue(priority=priority, status=status, sort_by=sort_by)


@router.get("/{tenant_id}", response_model=Tenant)
async def get_tenant(tenant_id: str, store: EntityStore = Depends(get_store)):
    tenant = store.get(EntityKind.TENANT, tenant_id)
    if tenant is None:
        raise NotFoundError(EntityKind.TENANT.value, tenant_id)
    return tenant


@router.patch("/{tenant_id}", response_model=Tenant)
async def update_tenant(
    tenant_id: str,
    command: TenantUpdate,
    engine: TransitionEngine = Depends(get_transition_engine),
):
    """Update mutable tenant fields."""
    logger.info("Tenant update requested", tenant_id=tenant_id, fields=sorted(command.changes()))
    return engine.update_tenant(tenant_id, command)
