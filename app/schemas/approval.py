"""
Pydantic schemas for conversation approval endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.models.schemas import CamelModel, Conversation, ConversationStatus, Message, Tenant
from app.schemas.tenant import UpdateCommand
from app.utils.classification import ConfidenceTier


class MessageApprovalPatch(UpdateCommand):
    """Approval flag for one message, addressed by id."""

    id: str = Field(..., min_length=1, description="Message identifier")
    needs_approval: bool = Field(..., description="New approval flag")


class MessageApprovalUpdate(UpdateCommand):
    needs_approval: bool = Field(..., description="New approval flag")


class ConversationUpdate(UpdateCommand):
    """Mutable conversation fields. Messages can only have their approval flag changed."""

    status: Optional[ConversationStatus] = None
    confidence: Optional[int] = Field(None, ge=0, le=100)
    last_message_at: Optional[datetime] = None
    messages: Optional[List[MessageApprovalPatch]] = None


class PendingApproval(CamelModel):
    """A conversation with AI drafts waiting on an operator."""

    conversation: Conversation
    tenant: Optional[Tenant] = None
    confidence_tier: ConfidenceTier
    bulk_approvable: bool
    pending_messages: List[Message] = Field(default_factory=list)


class PendingApprovalsResponse(CamelModel):
    items: List[PendingApproval] = Field(default_factory=list)
    total: int = Field(..., description="Conversations awaiting approval")
    bulk_eligible: int = Field(..., description="Conversations eligible for bulk approval")
    bulk_threshold: int = Field(..., description="Confidence needed for bulk approval")


class BulkApproveRequest(UpdateCommand):
    threshold: Optional[int] = Field(None, ge=0, le=100, description="Overrides the configured threshold")


class BulkApproveResponse(CamelModel):
    approved_ids: List[str] = Field(default_factory=list)
    approved_count: int
    threshold: int


class ConcerningMessagesResponse(CamelModel):
    conversation_id: str
    messages: List[Message] = Field(default_factory=list)
    has_translations: bool = Field(False, description="Any message carries original-language text")
