"""
State transition service for conversations, payment plans and escalations.

Every operator decision goes through here. Each transition checks its
precondition and writes its result inside a single store mutation, so two
decisions racing on the same record cannot both succeed against a stale
state.
"""
from typing import Dict, FrozenSet, List, Optional

from app.core.exceptions import InvalidTransitionError, NotFoundError
from app.core.logging import get_logger, log_business_event
from app.models.schemas import (
    Conversation,
    ConversationStatus,
    Escalation,
    EscalationStatus,
    PaymentPlan,
    PaymentPlanStatus,
    Tenant,
    utcnow,
)
from app.schemas.approval import ConversationUpdate
from app.schemas.escalation import EscalationUpdate
from app.schemas.payment_plan import PaymentPlanUpdate
from app.schemas.tenant import TenantUpdate
from app.services.store import EntityKind, EntityStore, merge_fields, with_message_approval
from app.utils.classification import BULK_APPROVAL_CONFIDENCE, is_bulk_approvable

logger = get_logger(__name__)


CONVERSATION_TRANSITIONS: Dict[ConversationStatus, FrozenSet[ConversationStatus]] = {
    ConversationStatus.ACTIVE: frozenset({ConversationStatus.COMPLETED, ConversationStatus.ESCALATED}),
    ConversationStatus.COMPLETED: frozenset({ConversationStatus.ESCALATED}),
    ConversationStatus.ESCALATED: frozenset(),
}

PAYMENT_PLAN_TRANSITIONS: Dict[PaymentPlanStatus, FrozenSet[PaymentPlanStatus]] = {
    PaymentPlanStatus.PROPOSED: frozenset({PaymentPlanStatus.APPROVED, PaymentPlanStatus.DENIED}),
    PaymentPlanStatus.APPROVED: frozenset(),
    PaymentPlanStatus.DENIED: frozenset(),
    PaymentPlanStatus.ACTIVE: frozenset(),
    PaymentPlanStatus.COMPLETED: frozenset(),
}

ESCALATION_TRANSITIONS: Dict[EscalationStatus, FrozenSet[EscalationStatus]] = {
    EscalationStatus.OPEN: frozenset({EscalationStatus.IN_PROGRESS, EscalationStatus.RESOLVED}),
    EscalationStatus.IN_PROGRESS: frozenset({EscalationStatus.RESOLVED}),
    EscalationStatus.RESOLVED: frozenset(),
}

PLAN_TERM_FIELDS = frozenset({
    "weekly_amount",
    "duration",
    "total_amount",
    "start_date",
    "includes_late_fees",
    "coverage",
})


def _check_transition(kind: EntityKind, entity_id: str, table, current, target) -> bool:
    """
    Validate a status change.

    Returns:
        False when ``target`` equals ``current`` (nothing to do), True when
        the move is allowed

    Raises:
        InvalidTransitionError: If the move is not allowed
    """
    if current == target:
        return False
    if target not in table.get(current, frozenset()):
        raise InvalidTransitionError(kind.value, entity_id, current.value, target.value)
    return True


class TransitionEngine:
    """Applies operator decisions to the entity store."""

    def __init__(self, store: EntityStore, bulk_threshold: int = BULK_APPROVAL_CONFIDENCE):
        self.store = store
        self.bulk_threshold = bulk_threshold

    def _require(self, kind: EntityKind, entity_id: str):
        record = self.store.get(kind, entity_id)
        if record is None:
            raise NotFoundError(kind.value, entity_id)
        return record

    def _mutate(self, kind: EntityKind, entity_id: str, fn):
        updated = self.store.mutate(kind, entity_id, fn)
        if updated is None:
            raise NotFoundError(kind.value, entity_id)
        return updated

    # Conversations
    def set_message_approval(self, conversation_id: str, message_id: str, value: bool) -> Conversation:
        """Set the approval flag on a single message."""
        conversation = self.store.set_message_approval(conversation_id, message_id, value)
        if conversation is None:
            raise NotFoundError(EntityKind.CONVERSATION.value, conversation_id)
        logger.info(
            "Message approval flag set",
            conversation_id=conversation_id,
            message_id=message_id,
            needs_approval=value,
        )
        return conversation

    def approve_conversation(self, conversation_id: str) -> Conversation:
        """
        Approve every AI draft waiting in a conversation.

        Clears ``needs_approval`` on each flagged message and leaves the
        conversation status alone. Approving an already approved
        conversation changes nothing.

        Raises:
            NotFoundError: If the conversation does not exist
        """
        conversation = self._require(EntityKind.CONVERSATION, conversation_id)
        flagged = [message.id for message in conversation.messages if message.needs_approval]

        for message_id in flagged:
            conversation = self.set_message_approval(conversation_id, message_id, False)

        log_business_event(
            "conversation_approved",
            conversation_id=conversation_id,
            tenant_id=conversation.tenant_id,
            cleared_messages=len(flagged),
        )
        return conversation

    def reject_conversation(self, conversation_id: str) -> Conversation:
        """
        Reject a conversation's drafts by escalating it.

        Message flags are left as they are, so a later approve does not
        undo the escalation.
        """
        conversation = self._transition_conversation(conversation_id, ConversationStatus.ESCALATED)
        log_business_event(
            "conversation_rejected",
            conversation_id=conversation_id,
            tenant_id=conversation.tenant_id,
        )
        return conversation

    def bulk_approve(self, threshold: Optional[int] = None) -> List[str]:
        """
        Approve every pending conversation whose confidence meets ``threshold``.

        Only active conversations qualify; an escalated conversation needs an
        explicit decision.

        Args:
            threshold: Minimum confidence; defaults to the configured bulk threshold

        Returns:
            Ids of the conversations that were approved
        """
        threshold = self.bulk_threshold if threshold is None else threshold
        approved = []
        for conversation in self.store.list(EntityKind.CONVERSATION):
            if not conversation.has_pending_approval:
                continue
            if conversation.status != ConversationStatus.ACTIVE:
                continue
            if not is_bulk_approvable(conversation.confidence, threshold):
                continue
            self.approve_conversation(conversation.id)
            approved.append(conversation.id)

        log_business_event("bulk_approval", threshold=threshold, approved_count=len(approved))
        return approved

    def update_conversation(self, conversation_id: str, command: ConversationUpdate) -> Conversation:
        """
        Apply a PATCH to a conversation.

        A status change follows the conversation state machine. Message
        entries only toggle approval flags. Status, fields and flags are
        written in one store mutation; an unknown message id writes nothing.
        """
        changes = command.changes()
        message_patches = command.messages or []
        changes.pop("messages", None)
        target = changes.pop("status", None)

        def apply(conversation: Conversation) -> Conversation:
            fields = dict(changes)
            if target is not None:
                _check_transition(
                    EntityKind.CONVERSATION,
                    conversation_id,
                    CONVERSATION_TRANSITIONS,
                    conversation.status,
                    ConversationStatus(target),
                )
                fields["status"] = target
            updated = merge_fields(conversation, fields)
            for patch in message_patches:
                updated = with_message_approval(updated, patch.id, patch.needs_approval)
            return updated

        conversation = self._mutate(EntityKind.CONVERSATION, conversation_id, apply)
        if message_patches:
            logger.info(
                "Message approval flags set",
                conversation_id=conversation_id,
                message_ids=[patch.id for patch in message_patches],
            )

        if target is not None:
            log_business_event(
                "conversation_status_changed",
                conversation_id=conversation_id,
                status=conversation.status.value,
            )
        return conversation

    def _transition_conversation(self, conversation_id: str, target: ConversationStatus) -> Conversation:
        def apply(conversation: Conversation) -> Conversation:
            if not _check_transition(
                EntityKind.CONVERSATION,
                conversation_id,
                CONVERSATION_TRANSITIONS,
                conversation.status,
                target,
            ):
                return conversation
            return conversation.model_copy(update={"status": target})

        return self._mutate(EntityKind.CONVERSATION, conversation_id, apply)

    # Payment plans
    def approve_plan(self, plan_id: str) -> PaymentPlan:
        """Approve a proposed payment plan."""
        return self._decide_plan(plan_id, PaymentPlanStatus.APPROVED)

    def deny_plan(self, plan_id: str) -> PaymentPlan:
        """Deny a proposed payment plan."""
        return self._decide_plan(plan_id, PaymentPlanStatus.DENIED)

    def _decide_plan(self, plan_id: str, target: PaymentPlanStatus) -> PaymentPlan:
        changed = []

        def apply(plan: PaymentPlan) -> PaymentPlan:
            if not _check_transition(
                EntityKind.PAYMENT_PLAN, plan_id, PAYMENT_PLAN_TRANSITIONS, plan.status, target
            ):
                return plan
            changed.append(plan.status)
            return plan.model_copy(update={"status": target})

        plan = self._mutate(EntityKind.PAYMENT_PLAN, plan_id, apply)
        if changed:
            log_business_event(
                f"payment_plan_{target.value}",
                plan_id=plan_id,
                tenant_id=plan.tenant_id,
                previous_status=changed[0].value,
            )
        return plan

    def update_payment_plan(self, plan_id: str, command: PaymentPlanUpdate) -> PaymentPlan:
        """
        Apply a PATCH to a payment plan.

        Term fields can only change while the plan is still proposed. Terms
        are applied before any status decision in the same request.
        """
        changes = command.changes()
        target = changes.pop("status", None)
        terms = sorted(PLAN_TERM_FIELDS.intersection(changes))

        def apply(plan: PaymentPlan) -> PaymentPlan:
            if terms and plan.status != PaymentPlanStatus.PROPOSED:
                raise InvalidTransitionError(
                    EntityKind.PAYMENT_PLAN.value,
                    plan_id,
                    plan.status.value,
                    f"edit {', '.join(terms)}",
                )
            updated = merge_fields(plan, changes)
            if target is not None and _check_transition(
                EntityKind.PAYMENT_PLAN,
                plan_id,
                PAYMENT_PLAN_TRANSITIONS,
                plan.status,
                PaymentPlanStatus(target),
            ):
                updated = updated.model_copy(update={"status": PaymentPlanStatus(target)})
            return updated

        plan = self._mutate(EntityKind.PAYMENT_PLAN, plan_id, apply)
        if target is not None:
            log_business_event(
                "payment_plan_status_changed",
                plan_id=plan_id,
                tenant_id=plan.tenant_id,
                status=plan.status.value,
            )
        return plan

    # Escalations
    def resolve_escalation(self, escalation_id: str) -> Escalation:
        """
        Resolve an escalation and stamp ``resolved_at``.

        Resolving an escalation that is already resolved keeps its original
        resolution time.
        """
        return self._transition_escalation(escalation_id, EscalationStatus.RESOLVED, {})

    def update_escalation(self, escalation_id: str, command: EscalationUpdate) -> Escalation:
        """Apply a PATCH to an escalation. The server always sets ``resolved_at`` itself."""
        changes = command.changes()
        if changes.pop("resolved_at", None) is not None:
            logger.debug("Ignoring client resolvedAt", escalation_id=escalation_id)
        target = changes.pop("status", None)
        return self._transition_escalation(
            escalation_id,
            EscalationStatus(target) if target is not None else None,
            changes,
        )

    def _transition_escalation(
        self, escalation_id: str, target: Optional[EscalationStatus], changes: Dict
    ) -> Escalation:
        changed = []

        def apply(escalation: Escalation) -> Escalation:
            updated = merge_fields(escalation, changes)
            if target is None or not _check_transition(
                EntityKind.ESCALATION,
                escalation_id,
                ESCALATION_TRANSITIONS,
                escalation.status,
                target,
            ):
                return updated
            update = {"status": target}
            if target == EscalationStatus.RESOLVED:
                update["resolved_at"] = max(utcnow(), escalation.created_at)
            changed.append(escalation.status)
            return updated.model_copy(update=update)

        escalation = self._mutate(EntityKind.ESCALATION, escalation_id, apply)
        if changed:
            log_business_event(
                f"escalation_{target.value}",
                escalation_id=escalation_id,
                tenant_id=escalation.tenant_id,
                previous_status=changed[0].value,
            )
        return escalation

    # Tenants
    def update_tenant(self, tenant_id: str, command: TenantUpdate) -> Tenant:
        """Apply a PATCH to a tenant record."""
        changes = command.changes()
        tenant = self._mutate(EntityKind.TENANT, tenant_id, lambda current: merge_fields(current, changes))
        logger.info("Tenant updated", tenant_id=tenant_id, fields=sorted(changes))
        return tenant
