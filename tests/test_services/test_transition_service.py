"""
Tests for the state transition engine.
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest

from app.core.exceptions import InvalidTransitionError, NotFoundError, ValidationException
from app.models.schemas import (
    ConversationStatus,
    EscalationStatus,
    PaymentPlanStatus,
    utcnow,
)
from app.schemas.approval import ConversationUpdate
from app.schemas.escalation import EscalationUpdate
from app.schemas.payment_plan import PaymentPlanUpdate
from app.schemas.tenant import TenantUpdate
from app.services.store import EntityKind
from app.services.transition_service import TransitionEngine


@pytest.fixture
def engine(store):
    return TransitionEngine(store)


class TestConversationTransitions:
    """Approve and reject decisions on conversations."""

    def test_approve_clears_every_flag(self, engine, make_conversation):
        """After approve no message needs approval; status and content are unchanged."""
        conversation = make_conversation(flags=(True, None, True, True))

        approved = engine.approve_conversation(conversation.id)

        assert not any(m.needs_approval for m in approved.messages)
        assert approved.status == ConversationStatus.ACTIVE
        assert [m.content for m in approved.messages] == [m.content for m in conversation.messages]
        assert [m.id for m in approved.messages] == [m.id for m in conversation.messages]

    def test_approve_twice_is_idempotent(self, engine, conversation, store):
        once = engine.approve_conversation(conversation.id)
        twice = engine.approve_conversation(conversation.id)

        assert twice == once
        assert store.get(EntityKind.CONVERSATION, conversation.id) == once

    def test_reject_escalates_without_touching_flags(self, engine, conversation):
        """Reject sets status to escalated and leaves the drafts flagged."""
        rejected = engine.reject_conversation(conversation.id)

        assert rejected.status == ConversationStatus.ESCALATED
        assert [m.needs_approval for m in rejected.messages] == [
            m.needs_approval for m in conversation.messages
        ]

    def test_approve_after_reject_keeps_escalated(self, engine, conversation):
        engine.reject_conversation(conversation.id)
        approved = engine.approve_conversation(conversation.id)

        assert approved.status == ConversationStatus.ESCALATED
        assert not approved.has_pending_approval

    def test_reject_completed_conversation_escalates(self, engine, make_conversation):
        """A completed conversation still holding drafts can be rejected."""
        conversation = make_conversation(status="completed")

        rejected = engine.reject_conversation(conversation.id)

        assert rejected.status == ConversationStatus.ESCALATED
        assert rejected.has_pending_approval

    def test_reject_twice_is_a_no_op(self, engine, conversation):
        once = engine.reject_conversation(conversation.id)
        assert engine.reject_conversation(conversation.id) == once

    @pytest.mark.parametrize("operation", ["approve_conversation", "reject_conversation"])
    def test_missing_conversation(self, engine, operation):
        with pytest.raises(NotFoundError):
            getattr(engine, operation)("missing")

    def test_set_message_approval(self, engine, conversation):
        target = conversation.messages[-1]
        updated = engine.set_message_approval(conversation.id, target.id, False)
        assert updated.messages[-1].needs_approval is False

    def test_update_conversation_message_flags(self, engine, make_conversation):
        """PATCH messages toggle flags by id."""
        conversation = make_conversation(flags=(True, None, True))
        command = ConversationUpdate.model_validate({
            "messages": [{"id": conversation.messages[0].id, "needsApproval": False}],
        })

        updated = engine.update_conversation(conversation.id, command)

        assert updated.messages[0].needs_approval is False
        assert updated.messages[2].needs_approval is True

    def test_update_conversation_unknown_message_changes_nothing(self, engine, store, conversation):
        command = ConversationUpdate.model_validate({
            "status": "completed",
            "messages": [{"id": "missing", "needsApproval": False}],
        })
        with pytest.raises(NotFoundError):
            engine.update_conversation(conversation.id, command)
        assert store.get(EntityKind.CONVERSATION, conversation.id) == conversation

    def test_update_conversation_writes_once(self, engine, store, make_conversation):
        """Status, fields and flags from one PATCH land in a single store write."""
        conversation = make_conversation(flags=(True, None, True))
        command = ConversationUpdate.model_validate({
            "status": "completed",
            "confidence": 91,
            "messages": [
                {"id": conversation.messages[0].id, "needsApproval": False},
                {"id": conversation.messages[2].id, "needsApproval": False},
            ],
        })

        with patch.object(store, "mutate", wraps=store.mutate) as mutate:
            updated = engine.update_conversation(conversation.id, command)

        assert mutate.call_count == 1
        assert updated.status == ConversationStatus.COMPLETED
        assert updated.confidence == 91
        assert not updated.has_pending_approval
        assert store.get(EntityKind.CONVERSATION, conversation.id) == updated

    def test_update_conversation_later_unknown_message_changes_nothing(self, engine, store, make_conversation):
        """A valid flag before an unknown message id is not written either."""
        conversation = make_conversation(flags=(True, None, True))
        command = ConversationUpdate.model_validate({
            "messages": [
                {"id": conversation.messages[0].id, "needsApproval": False},
                {"id": "missing", "needsApproval": False},
            ],
        })
        with pytest.raises(NotFoundError):
            engine.update_conversation(conversation.id, command)
        assert store.get(EntityKind.CONVERSATION, conversation.id) == conversation

    def test_update_completed_conversation_to_escalated(self, engine, make_conversation):
        conversation = make_conversation(status="completed")
        updated = engine.update_conversation(conversation.id, ConversationUpdate(status="escalated"))
        assert updated.status == ConversationStatus.ESCALATED

    def test_update_conversation_status(self, engine, conversation):
        command = ConversationUpdate(status="completed", confidence=95)
        updated = engine.update_conversation(conversation.id, command)
        assert updated.status == ConversationStatus.COMPLETED
        assert updated.confidence == 95

    def test_update_conversation_cannot_reopen(self, engine, conversation):
        engine.reject_conversation(conversation.id)
        with pytest.raises(InvalidTransitionError):
            engine.update_conversation(conversation.id, ConversationUpdate(status="active"))


class TestBulkApprove:
    """Approve all valid drafts."""

    def test_threshold_is_inclusive_at_85(self, engine, make_conversation, store):
        """85 qualifies, 84 does not."""
        at_threshold = make_conversation(confidence=85)
        below = make_conversation(confidence=84)

        approved = engine.bulk_approve()

        assert approved == [at_threshold.id]
        assert not store.get(EntityKind.CONVERSATION, at_threshold.id).has_pending_approval
        assert store.get(EntityKind.CONVERSATION, below.id).has_pending_approval

    def test_custom_threshold(self, engine, make_conversation):
        make_conversation(confidence=85)
        high = make_conversation(confidence=92)
        assert engine.bulk_approve(threshold=90) == [high.id]

    def test_skips_conversations_without_drafts_or_not_active(self, engine, make_conversation):
        make_conversation(confidence=99, flags=(None, None))
        make_conversation(confidence=99, status="escalated")
        assert engine.bulk_approve() == []

    def test_configured_threshold(self, store, make_conversation):
        make_conversation(confidence=80)
        engine = TransitionEngine(store, bulk_threshold=75)
        assert len(engine.bulk_approve()) == 1


class TestPaymentPlanTransitions:
    """Proposed plans move to approved or denied once."""

    def test_approve_plan(self, engine, payment_plan):
        approved = engine.approve_plan(payment_plan.id)
        assert approved.status == PaymentPlanStatus.APPROVED

    def test_deny_plan(self, engine, payment_plan):
        denied = engine.deny_plan(payment_plan.id)
        assert denied.status == PaymentPlanStatus.DENIED

    def test_repeat_decision_is_noop(self, engine, payment_plan):
        first = engine.approve_plan(payment_plan.id)
        assert engine.approve_plan(payment_plan.id) == first

    def test_conflicting_decision_rejected(self, engine, store, payment_plan):
        """Deny after approve is an invalid transition and leaves the plan approved."""
        engine.approve_plan(payment_plan.id)
        with pytest.raises(InvalidTransitionError):
            engine.deny_plan(payment_plan.id)
        assert store.get(EntityKind.PAYMENT_PLAN, payment_plan.id).status == PaymentPlanStatus.APPROVED

    def test_missing_plan(self, engine):
        with pytest.raises(NotFoundError):
            engine.approve_plan("missing")

    def test_update_terms_while_proposed(self, engine, payment_plan):
        command = PaymentPlanUpdate(weekly_amount=Decimal("80.00"), total_amount=Decimal("640.00"))
        updated = engine.update_payment_plan(payment_plan.id, command)
        assert updated.weekly_amount == Decimal("80.00")
        assert updated.status == PaymentPlanStatus.PROPOSED

    def test_update_terms_after_decision_rejected(self, engine, payment_plan):
        engine.approve_plan(payment_plan.id)
        with pytest.raises(InvalidTransitionError):
            engine.update_payment_plan(payment_plan.id, PaymentPlanUpdate(duration=10))

    def test_update_status_dispatches_decision(self, engine, payment_plan):
        updated = engine.update_payment_plan(payment_plan.id, PaymentPlanUpdate(status="denied"))
        assert updated.status == PaymentPlanStatus.DENIED

    def test_cannot_activate_directly(self, engine, payment_plan):
        with pytest.raises(InvalidTransitionError):
            engine.update_payment_plan(payment_plan.id, PaymentPlanUpdate(status="active"))


class TestEscalationTransitions:
    """Escalations resolve once and stay resolved."""

    def test_resolve_sets_timestamp(self, engine, escalation):
        resolved = engine.resolve_escalation(escalation.id)

        assert resolved.status == EscalationStatus.RESOLVED
        assert resolved.resolved_at is not None
        assert resolved.resolved_at >= resolved.created_at

    def test_resolve_twice_keeps_first_timestamp(self, engine, escalation):
        """Resolving again is a no-op."""
        first = engine.resolve_escalation(escalation.id)
        second = engine.resolve_escalation(escalation.id)
        assert second == first

    def test_resolved_at_not_before_created_at(self, engine, store, escalation):
        """A creation time ahead of the clock still yields an ordered resolution."""
        future = utcnow() + timedelta(hours=1)
        store.mutate(EntityKind.ESCALATION, escalation.id, lambda e: e.model_copy(update={"created_at": future}))

        resolved = engine.resolve_escalation(escalation.id)
        assert resolved.resolved_at >= future

    def test_missing_escalation(self, engine):
        with pytest.raises(NotFoundError):
            engine.resolve_escalation("missing")

    def test_in_progress_then_resolved(self, engine, escalation):
        in_progress = engine.update_escalation(escalation.id, EscalationUpdate(status="in_progress"))
        assert in_progress.status == EscalationStatus.IN_PROGRESS
        assert in_progress.resolved_at is None

        resolved = engine.update_escalation(escalation.id, EscalationUpdate(status="resolved"))
        assert resolved.status == EscalationStatus.RESOLVED
        assert resolved.resolved_at is not None

    def test_cannot_reopen(self, engine, escalation):
        engine.resolve_escalation(escalation.id)
        with pytest.raises(InvalidTransitionError):
            engine.update_escalation(escalation.id, EscalationUpdate(status="open"))

    def test_client_resolved_at_ignored(self, engine, escalation):
        """The server clock decides the resolution time."""
        long_ago = escalation.created_at - timedelta(days=365)
        resolved = engine.update_escalation(
            escalation.id, EscalationUpdate(status="resolved", resolved_at=long_ago)
        )
        assert resolved.resolved_at >= resolved.created_at

    def test_update_fields_without_status(self, engine, escalation):
        updated = engine.update_escalation(escalation.id, EscalationUpdate(priority="same_day"))
        assert updated.priority.value == "same_day"
        assert updated.status == EscalationStatus.OPEN


class TestTenantUpdates:
    def test_update_tenant(self, engine, tenant):
        updated = engine.update_tenant(tenant.id, TenantUpdate(status="negotiating", reliability=7))
        assert updated.status.value == "negotiating"
        assert updated.reliability == 7

    def test_update_missing_tenant(self, engine, store):
        with pytest.raises(NotFoundError):
            engine.update_tenant("missing", TenantUpdate(notes="x"))
        assert store.list(EntityKind.TENANT) == []

    def test_update_command_rejects_unknown_fields(self):
        with pytest.raises(ValueError):
            TenantUpdate.model_validate({"balance": 10})

    def test_explicit_null_fails_validation(self, engine, tenant):
        with pytest.raises(ValidationException):
            engine.update_tenant(tenant.id, TenantUpdate.model_validate({"name": None}))
