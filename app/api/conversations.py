"""
Conversation and approval API endpoints.

Operators review AI-drafted replies here: approve a conversation's drafts,
reject them (escalating the conversation), toggle single messages, or
approve every high-confidence draft at once.
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends

from app.core.dependencies import get_store, get_transition_engine, get_triage_aggregator
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.models.schemas import Conversation
from app.schemas.approval import (
    BulkApproveRequest,
    BulkApproveResponse,
    ConcerningMessagesResponse,
    ConversationUpdate,
    MessageApprovalUpdate,
    PendingApprovalsResponse,
)
from app.services.store import EntityKind, EntityStore
from app.services.transition_service import TransitionEngine
from app.services.triage_service import TriageAggregator

logger = get_logger(__name__)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])
approvals_router = APIRouter(prefix="/api/approvals", tags=["approvals"])


@router.get("", response_model=List[Conversation])
async def list_conversations(store: EntityStore = Depends(get_store)):
    return store.list(EntityKind.CONVERSATION)


@router.get("/tenant/{tenant_id}", response_model=List[Conversation])
async def list_tenant_conversations(tenant_id: str, store: EntityStore = Depends(get_store)):
    """Conversations belonging to one tenant; empty for an unknown tenant."""
    return store.list_by_tenant(EntityKind.CONVERSATION, tenant_id)


@router.get("/{conversation_id}", response_model=Conversation)
async def get_conversation(conversation_id: str, store: EntityStore = Depends(get_store)):
    conversation = store.get(EntityKind.CONVERSATION, conversation_id)
    if conversation is None:
        raise NotFoundError(EntityKind.CONVERSATION.value, conversation_id)
    return conversation


@router.get("/{conversation_id}/concerning-messages", response_model=ConcerningMessagesResponse)
async def get_concerning_messages(
    conversation_id: str,
    aggregator: TriageAggregator = Depends(get_triage_aggregator),
):
    """Tenant messages with hostile or legal language."""
    return aggregator.concerning_messages(conversation_id)


@router.patch("/{conversation_id}", response_model=Conversation)
async def update_conversation(
    conversation_id: str,
    command: ConversationUpdate,
    engine: TransitionEngine = Depends(get_transition_engine),
):
    """
    Update a conversation.

    Accepts a status change, confidence, last message time, and approval
    flags for individual messages as ``messages: [{id, needsApproval}]``.
    """
    logger.info(
        "Conversation update requested",
        conversation_id=conversation_id,
        fields=sorted(command.changes()),
    )
    return engine.update_conversation(conversation_id, command)


@router.patch("/{conversation_id}/messages/{message_id}", response_model=Conversation)
async def update_message_approval(
    conversation_id: str,
    message_id: str,
    command: MessageApprovalUpdate,
    engine: TransitionEngine = Depends(get_transition_engine),
):
    return engine.set_message_approval(conversation_id, message_id, command.needs_approval)


@router.post("/{conversation_id}/approve", response_model=Conversation)
async def approve_conversation(
    conversation_id: str,
    engine: TransitionEngine = Depends(get_transition_engine),
):
    """Approve every draft waiting in the conversation."""
    return engine.approve_conversation(conversation_id)


@router.post("/{conversation_id}/reject", response_model=Conversation)
async def reject_conversation(
    conversation_id: str,
    engine: TransitionEngine = Depends(get_transition_engine),
):
    """Reject the drafts and escalate the conversation."""
    return engine.reject_conversation(conversation_id)


@approvals_router.get("", response_model=PendingApprovalsResponse)
async def list_pending_approvals(aggregator: TriageAggregator = Depends(get_triage_aggregator)):
    """Conversations with drafts awaiting approval, highest confidence first."""
    return aggregator.pending_approvals()


@approvals_router.post("/bulk-approve", response_model=BulkApproveResponse)
async def bulk_approve(
    request: Optional[BulkApproveRequest] = Body(None),
    engine: TransitionEngine = Depends(get_transition_engine),
):
    """
    Approve every pending draft at or above the bulk confidence threshold.

    Args:
        request: Optional body overriding the configured threshold

    Returns:
        Ids of the approved conversations
    """
    threshold = request.threshold if request and request.threshold is not None else engine.bulk_threshold
    approved = engine.bulk_approve(threshold)
    logger.info("Bulk approval completed", threshold=threshold, approved_count=len(approved))
    return BulkApproveResponse(approved_ids=approved, approved_count=len(approved), threshold=threshold)
