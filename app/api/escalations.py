"""
Escalation API endpoints.

Situations flagged for human intervention: list them, group the open ones
by urgency, and resolve them.
"""

from typing import List

from fastapi import APIRouter, Depends

from app.core.dependencies import get_store, get_transition_engine, get_triage_aggregator
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.models.schemas import Escalation
from app.schemas.escalation import EscalationUpdate, OpenEscalationsResponse
from app.services.store import EntityKind, EntityStore
from app.services.transition_service import TransitionEngine
from app.services.triage_service import TriageAggregator

logger = get_logger(__name__)

router = APIRouter(prefix="/api/escalations", tags=["escalations"])


@router.get("", response_model=List[Escalation])
async def list_escalations(store: EntityStore = Depends(get_store)):
    return store.list(EntityKind.ESCALATION)


@router.get("/open", response_model=OpenEscalationsResponse)
async def list_open_escalations(aggregator: TriageAggregator = Depends(get_triage_aggregator)):
    """Open escalations grouped as immediate, same day and next business day."""
    return aggregator.open_escalations_by_priority()


@router.get("/{escalation_id}", response_model=Escalation)
async def get_escalation(escalation_id: str, store: EntityStore = Depends(get_store)):
    escalation = store.get(EntityKind.ESCALATION, escalation_id)
    if escalation is None:
        raise NotFoundError(EntityKind.ESCALATION.value, escalation_id)
    return escalation


@router.patch("/{escalation_id}", response_model=Escalation)
async def update_escalation(
    escalation_id: str,
    command: EscalationUpdate,
    engine: TransitionEngine = Depends(get_transition_engine),
):
    """
    Update an escalation.

    ``status=resolved`` resolves it; the resolution time is always taken
    from the server clock.
    """
    logger.info(
        "Escalation update requested",
        escalation_id=escalation_id,
        fields=sorted(command.changes()),
    )
    return engine.update_escalation(escalation_id, command)


@router.post("/{escalation_id}/resolve", response_model=Escalation)
async def resolve_escalation(
    escalation_id: str,
    engine: TransitionEngine = Depends(get_transition_engine),
):
    """Resolve an escalation. Resolving twice keeps the first resolution time."""
    return engine.resolve_escalation(escalation_id)
