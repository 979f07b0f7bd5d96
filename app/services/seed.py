"""
Demo intake data for the collections dashboard.

Loads a small fixed portfolio: five tenants, three conversations with an
AI draft waiting on approval, two proposed payment plans and two open
escalations. Timestamps are offsets from the current time; nothing is
random, so repeated seeding gives the same shape.
"""
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List

from app.core.logging import get_logger
from app.models.schemas import Message, MessageSender, utcnow
from app.services.store import EntityKind, EntityStore

logger = get_logger(__name__)


DEMO_TENANTS = [
    {
        "name": "Maria Rodriguez",
        "unit": "Unit 3A",
        "property": "Oak Village",
        "phone": "(555) 123-4567",
        "language": "Spanish",
        "amount_owed": Decimal("1247.00"),
        "days_late": 47,
        "reliability": 6,
        "priority": "high",
        "status": "awaiting_approval",
        "notes": "Tenant requested Spanish communication, prefers Friday payment start dates",
    },
    {
        "name": "James Wilson",
        "unit": "Unit 1C",
        "property": "Maple Commons",
        "phone": "(555) 987-6543",
        "language": "English",
        "amount_owed": Decimal("890.00"),
        "days_late": 34,
        "reliability": 7,
        "priority": "medium",
        "status": "in_progress",
        "notes": "Usually responds within 4 hours",
    },
    {
        "name": "Sarah Johnson",
        "unit": "Unit 2B",
        "property": "Oak Village",
        "phone": "(555) 456-7890",
        "language": "English",
        "amount_owed": Decimal("445.00"),
        "days_late": 31,
        "reliability": 8,
        "priority": "low",
        "status": "pending",
        "notes": "Good payment history",
    },
    {
        "name": "Michael Chen",
        "unit": "Unit 4A",
        "property": "Pine Heights",
        "phone": "(555) 321-9876",
        "language": "English",
        "amount_owed": Decimal("1567.00"),
        "days_late": 62,
        "reliability": 4,
        "priority": "high",
        "status": "escalated",
        "notes": "Multiple failed payment attempts",
    },
    {
        "name": "James Thompson",
        "unit": "Unit 1B",
        "property": "Maple Commons",
        "phone": "(555) 234-5678",
        "language": "English",
        "amount_owed": Decimal("890.00"),
        "days_late": 34,
        "reliability": 7,
        "priority": "medium",
        "status": "negotiating",
        "notes": "Successful payment history, prefers Friday starts",
    },
]

# (sender, English content, Spanish original, minutes ago)
SPANISH_THREAD = [
    (MessageSender.AI,
     "Hi Maria, your rent of $567 is 47 days late. Can we set up a payment plan?",
     "Hola Maria, su renta de $567 está 47 días atrasada. ¿Podemos establecer un plan de pagos?",
     240),
    (MessageSender.TENANT,
     "Hi, yes I can do a payment plan. When can I start?",
     "Hola, si puedo hacer plan de pagos. ¿Cuando puedo empezar?",
     180),
    (MessageSender.AI,
     "We can start this Friday. $75 per week for 8 weeks?",
     "Podemos empezar este viernes. ¿$75 por semana por 8 semanas?",
     120),
    (MessageSender.TENANT,
     "Yes, I can pay $75 per week for 8 weeks starting Friday",
     "Si, puedo pagar $75 por semana por 8 semanas empezando viernes",
     30),
    (MessageSender.AI,
     "Perfect Maria! $75 per week for 8 weeks covers the total of $600. Can we confirm you will "
     "start this Friday, January 12th? I will send you reminders every Thursday. - Stanton Management",
     "¡Perfecto Maria! $75 por semana por 8 semanas cubre el total de $600. ¿Podemos confirmar que "
     "empezará este viernes 12 de enero? Te enviaré recordatorios cada jueves. - Stanton Management",
     0),
]

ENGLISH_THREAD = [
    (MessageSender.AI,
     "Hi, your rent payment of $890 is 34 days overdue. Can we set up a payment plan?",
     None,
     240),
    (MessageSender.TENANT, "Yes, I can do a payment plan. When can I start?", None, 180),
    (MessageSender.AI, "We can start this Friday. How about $120 per week for 8 weeks?", None, 120),
    (MessageSender.TENANT,
     "I can do $50 every two weeks starting next Friday, that should work for both of us",
     None,
     30),
    (MessageSender.AI,
     "Hi James! $50 every two weeks works great. That means $100 per month, so it would take about "
     "9 payments to cover your balance of $890. Can we confirm the first payment for January 19th? "
     "- Stanton Management",
     None,
     0),
]

DEMO_CONFIDENCES = [85, 72, 72]

DEMO_PLANS = [
    {"weekly_amount": Decimal("75.00"), "duration": 8, "total_amount": Decimal("600.00"), "coverage": 100},
    {"weekly_amount": Decimal("50.00"), "duration": 18, "total_amount": Decimal("900.00"), "coverage": 101},
]

DEMO_ESCALATIONS = [
    {
        "type": "phone_failed",
        "priority": "immediate",
        "description": "Primary phone (555-321-9876) failed after 3 attempts",
    },
    {
        "type": "threatening",
        "priority": "same_day",
        "description": "AI detected threatening language: 'I'm going to sue you people'",
    },
]


def _thread(rows, language: str) -> List[Message]:
    now = utcnow()
    messages = []
    for index, (sender, content, original, minutes_ago) in enumerate(rows):
        messages.append(Message(
            sender=sender,
            content=content,
            original_content=original,
            language=language if original else None,
            timestamp=now - timedelta(minutes=minutes_ago),
            needs_approval=True if index == len(rows) - 1 else None,
        ))
    return messages


def _backdate(store: EntityStore, kind: EntityKind, entity_id: str, **fields) -> None:
    store.mutate(kind, entity_id, lambda record: record.model_copy(update=fields))


def seed_demo_data(store: EntityStore) -> Dict[str, int]:
    """
    Load the demo portfolio into ``store``.

    Returns:
        Number of records created per entity kind
    """
    now = utcnow()

    tenants = []
    for index, fields in enumerate(DEMO_TENANTS):
        tenant = store.create(EntityKind.TENANT, {**fields, "last_contact": now - timedelta(days=index + 1)})
        _backdate(store, EntityKind.TENANT, tenant.id, created_at=now - timedelta(days=30 - index))
        tenants.append(tenant)

    conversations = []
    for index, tenant in enumerate(tenants[:3]):
        if tenant.language == "Spanish":
            messages = _thread(SPANISH_THREAD, tenant.language)
        else:
            messages = _thread(ENGLISH_THREAD, tenant.language)
        conversation = store.create(EntityKind.CONVERSATION, {
            "tenant_id": tenant.id,
            "messages": messages,
            "status": "active",
            "confidence": DEMO_CONFIDENCES[index],
            "last_message_at": messages[-1].timestamp,
        })
        _backdate(store, EntityKind.CONVERSATION, conversation.id, started_at=now - timedelta(hours=4))
        conversations.append(conversation)

    plans = []
    for conversation, terms in zip(conversations, DEMO_PLANS):
        plans.append(store.create(EntityKind.PAYMENT_PLAN, {
            "tenant_id": conversation.tenant_id,
            "conversation_id": conversation.id,
            "start_date": "2025-01-12",
            "includes_late_fees": True,
            "status": "proposed",
            **terms,
        }))

    escalations = []
    for index, (tenant, fields) in enumerate(zip(tenants[3:5], DEMO_ESCALATIONS)):
        escalation = store.create(EntityKind.ESCALATION, {"tenant_id": tenant.id, "status": "open", **fields})
        _backdate(store, EntityKind.ESCALATION, escalation.id, created_at=now - timedelta(hours=index))
        escalations.append(escalation)

    counts = {
        EntityKind.TENANT.value: len(tenants),
        EntityKind.CONVERSATION.value: len(conversations),
        EntityKind.PAYMENT_PLAN.value: len(plans),
        EntityKind.ESCALATION.value: len(escalations),
    }
    logger.info("Demo data seeded", **counts)
    return counts
