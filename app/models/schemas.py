"""Pydantic models for the collections entities."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.utcnow()


def new_id() -> str:
    return str(uuid4())


class TenantPriority(str, Enum):
    """Collections priority assigned to a tenant."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TenantStatus(str, Enum):
    """Where a tenant sits in the collections workflow."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    AWAITING_APPROVAL = "awaiting_approval"
    NEGOTIATING = "negotiating"
    ESCALATED = "escalated"
    COMPLETED = "completed"


class MessageSender(str, Enum):
    TENANT = "tenant"
    AI = "ai"
    MANAGER = "manager"


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ESCALATED = "escalated"


class PaymentPlanStatus(str, Enum):
    """Payment plan status types."""
    PROPOSED = "proposed"
    APPROVED = "approved"
    DENIED = "denied"
    ACTIVE = "active"
    COMPLETED = "completed"


class EscalationType(str, Enum):
    """Escalation types."""
    PHONE_FAILED = "phone_failed"
    THREATENING = "threatening"
    AMOUNT_DISPUTE = "amount_dispute"
    COMPLEX_SITUATION = "complex_situation"
    NO_RESPONSE = "no_response"


class EscalationPriority(str, Enum):
    IMMEDIATE = "immediate"
    SAME_DAY = "same_day"
    NEXT_BUSINESS_DAY = "next_business_day"


class EscalationStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EntityModel(CamelModel):
    """Base for stored records; replaced wholesale by the store, never edited in place."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class CreateModel(CamelModel):
    """Base for intake payloads; unknown keys are rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


# Tenants
class TenantCreate(CreateModel):
    """Intake data for a tenant being tracked for overdue rent."""
    name: str = Field(..., min_length=1, description="Tenant full name")
    unit: str = Field(..., description="Unit label, e.g. 'Unit 3A'")
    property: str = Field(..., description="Property name")
    phone: str = Field(..., description="Contact phone number")
    language: str = Field(default="English", description="Preferred language")
    amount_owed: Decimal = Field(..., ge=0, decimal_places=2, description="Outstanding balance")
    days_late: int = Field(..., ge=0, description="Days the balance is overdue")
    reliability: int = Field(..., ge=1, le=10, description="Payment reliability score (1-10)")
    priority: TenantPriority = Field(..., description="Collections priority")
    status: TenantStatus = Field(..., description="Collections workflow status")
    last_contact: Optional[datetime] = Field(None, description="Last time the tenant was contacted")
    notes: Optional[str] = Field(None, description="Free-form operator notes")


class Tenant(EntityModel):
    id: str
    name: str
    unit: str
    property: str
    phone: str
    language: str = "English"
    amount_owed: Decimal = Field(..., ge=0)
    days_late: int = Field(..., ge=0)
    reliability: int = Field(..., ge=1, le=10)
    priority: TenantPriority
    status: TenantStatus
    last_contact: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime


# Conversations
class Message(EntityModel):
    """A single message inside a conversation thread."""
    id: str = Field(default_factory=new_id, description="Message identifier")
    sender: MessageSender = Field(..., description="Who wrote the message")
    content: str = Field(..., description="Message text, translated to English if needed")
    original_content: Optional[str] = Field(None, description="Source text for non-English messages")
    language: Optional[str] = Field(None, description="Language of the original content")
    timestamp: datetime = Field(default_factory=utcnow, description="When the message was sent")
    needs_approval: Optional[bool] = Field(None, description="AI draft awaiting operator approval")


class ConversationCreate(CreateModel):
    tenant_id: str = Field(..., min_length=1, description="Owning tenant")
    messages: List[Message] = Field(default_factory=list, description="Messages in chronological order")
    status: ConversationStatus = Field(default=ConversationStatus.ACTIVE)
    confidence: Optional[int] = Field(None, ge=0, le=100, description="AI confidence score (0-100)")
    last_message_at: Optional[datetime] = None


class Conversation(EntityModel):
    id: str
    tenant_id: str
    messages: List[Message] = Field(default_factory=list)
    status: ConversationStatus
    confidence: Optional[int] = Field(None, ge=0, le=100)
    started_at: datetime
    last_message_at: Optional[datetime] = None

    @property
    def has_pending_approval(self) -> bool:
        return any(message.needs_approval for message in self.messages)

    @property
    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None


# Payment plans
class PaymentPlanCreate(CreateModel):
    """Proposed installment schedule for a tenant's balance."""
    tenant_id: str = Field(..., min_length=1, description="Owning tenant")
    conversation_id: Optional[str] = Field(None, description="Conversation the plan came from")
    weekly_amount: Decimal = Field(..., gt=0, decimal_places=2, description="Weekly installment")
    duration: int = Field(..., gt=0, description="Number of weeks")
    total_amount: Decimal = Field(..., ge=0, decimal_places=2, description="Sum of all installments")
    start_date: str = Field(..., description="First payment date (YYYY-MM-DD)")
    includes_late_fees: bool = Field(default=True)
    status: PaymentPlanStatus = Field(default=PaymentPlanStatus.PROPOSED)
    coverage: int = Field(..., ge=0, description="Percent of the owed balance covered; may exceed 100")


class PaymentPlan(EntityModel):
    id: str
    tenant_id: str
    conversation_id: Optional[str] = None
    weekly_amount: Decimal = Field(..., gt=0)
    duration: int = Field(..., gt=0)
    total_amount: Decimal = Field(..., ge=0)
    start_date: str
    includes_late_fees: bool = True
    status: PaymentPlanStatus
    coverage: int = Field(..., ge=0)
    created_at: datetime


# Escalations
class EscalationCreate(CreateModel):
    """A situation flagged for human intervention."""
    tenant_id: str = Field(..., min_length=1, description="Owning tenant")
    conversation_id: Optional[str] = Field(None, description="Related conversation")
    type: EscalationType = Field(..., description="What triggered the escalation")
    priority: EscalationPriority = Field(..., description="Response urgency")
    description: str = Field(..., min_length=1, description="What happened")
    status: EscalationStatus = Field(default=EscalationStatus.OPEN)


class Escalation(EntityModel):
    id: str
    tenant_id: str
    conversation_id: Optional[str] = None
    type: EscalationType
    priority: EscalationPriority
    description: str
    status: EscalationStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None
