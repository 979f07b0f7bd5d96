"""
Triage aggregation over the entity store.

Read-only projections used by the dashboard: headline counts, the
collections queue, and the approval, payment plan and escalation review
lists. Nothing here is cached; every call reads the store as it is now.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from app.core.exceptions import NotFoundError
from app.core.logging import get_logger, performance_timing
from app.models.schemas import (
    ConversationStatus,
    EscalationPriority,
    EscalationStatus,
    PaymentPlanStatus,
    Tenant,
    TenantPriority,
    TenantStatus,
)
from app.schemas.approval import (
    ConcerningMessagesResponse,
    PendingApproval,
    PendingApprovalsResponse,
)
from app.schemas.dashboard import DashboardStatsResponse
from app.schemas.escalation import EscalationGroup, EscalationItem, OpenEscalationsResponse
from app.schemas.payment_plan import PaymentPlanReview, PendingPaymentPlansResponse
from app.schemas.tenant import CollectionsQueueResponse, PriorityCounts, QueueSort
from app.services.store import EntityKind, EntityStore
from app.utils.classification import (
    BULK_APPROVAL_CONFIDENCE,
    confidence_tier,
    coverage_is_complete,
    escalation_priority_label,
    escalation_type_glyph,
    escalation_type_label,
    find_concerning_messages,
    is_bulk_approvable,
    payment_plan_risk,
    risk_label,
    tenant_priority_rank,
)

logger = get_logger(__name__)

# Reliability assumed for a plan whose tenant record is missing
UNKNOWN_RELIABILITY = 1


@dataclass
class TriageStats:
    pending: int
    active: int
    approval: int
    escalated: int
    total_tenants: int
    total_owed: Decimal

    def to_response(self) -> DashboardStatsResponse:
        return DashboardStatsResponse(
            pending=self.pending,
            active=self.active,
            approval=self.approval,
            escalated=self.escalated,
            total_tenants=self.total_tenants,
            total_owed=float(self.total_owed),
        )


class TriageAggregator:
    """Computes dashboard views from a store snapshot."""

    def __init__(self, store: EntityStore, bulk_threshold: int = BULK_APPROVAL_CONFIDENCE):
        self.store = store
        self.bulk_threshold = bulk_threshold

    def _tenants_by_id(self) -> Dict[str, Tenant]:
        return {tenant.id: tenant for tenant in self.store.list(EntityKind.TENANT)}

    def dashboard_stats(self) -> TriageStats:
        """
        Headline counts for the dashboard.

        ``active`` counts tenants in progress, ``approval`` counts
        conversations holding at least one draft that needs approval and
        ``escalated`` counts open escalations.
        """
        with performance_timing("dashboard_stats"):
            tenants = self.store.list(EntityKind.TENANT)
            conversations = self.store.list(EntityKind.CONVERSATION)
            escalations = self.store.list(EntityKind.ESCALATION)

            return TriageStats(
                pending=sum(1 for tenant in tenants if tenant.status == TenantStatus.PENDING),
                active=sum(1 for tenant in tenants if tenant.status == TenantStatus.IN_PROGRESS),
                approval=sum(1 for conversation in conversations if conversation.has_pending_approval),
                escalated=sum(1 for escalation in escalations if escalation.status == EscalationStatus.OPEN),
                total_tenants=len(tenants),
                total_owed=sum((tenant.amount_owed for tenant in tenants), Decimal("0")),
            )

    def priority_counts(self) -> PriorityCounts:
        counts = {priority.value: 0 for priority in TenantPriority}
        for tenant in self.store.list(EntityKind.TENANT):
            counts[tenant.priority.value] += 1
        return PriorityCounts(**counts)

    def collections_queue(
        self,
        priority: Optional[TenantPriority] = None,
        status: Optional[TenantStatus] = None,
        sort_by: QueueSort = QueueSort.PRIORITY,
    ) -> CollectionsQueueResponse:
        """
        Filtered and sorted list of tenants to work through.

        Args:
            priority: Only tenants with this priority
            status: Only tenants with this status
            sort_by: ``priority`` (high first, then most overdue),
                ``amount`` (largest balance first) or ``days_late``
                (most overdue first)
        """
        tenants = self.store.list(EntityKind.TENANT)
        if priority is not None:
            tenants = [tenant for tenant in tenants if tenant.priority == priority]
        if status is not None:
            tenants = [tenant for tenant in tenants if tenant.status == status]

        sort_by = QueueSort(sort_by)
        if sort_by == QueueSort.AMOUNT:
            tenants.sort(key=lambda tenant: tenant.amount_owed, reverse=True)
        elif sort_by == QueueSort.DAYS_LATE:
            tenants.sort(key=lambda tenant: tenant.days_late, reverse=True)
        else:
            tenants.sort(key=lambda tenant: (tenant_priority_rank(tenant.priority), -tenant.days_late))

        return CollectionsQueueResponse(
            tenants=tenants,
            total=len(tenants),
            priority_counts=self.priority_counts(),
        )

    def pending_approvals(self) -> PendingApprovalsResponse:
        """Conversations with drafts awaiting approval, highest confidence first."""
        tenants = self._tenants_by_id()
        items = []
        for conversation in self.store.list(EntityKind.CONVERSATION):
            if not conversation.has_pending_approval:
                continue
            items.append(PendingApproval(
                conversation=conversation,
                tenant=tenants.get(conversation.tenant_id),
                confidence_tier=confidence_tier(conversation.confidence),
                bulk_approvable=(
                    conversation.status == ConversationStatus.ACTIVE
                    and is_bulk_approvable(conversation.confidence, self.bulk_threshold)
                ),
                pending_messages=[m for m in conversation.messages if m.needs_approval],
            ))
        items.sort(key=lambda item: item.conversation.confidence or 0, reverse=True)

        return PendingApprovalsResponse(
            items=items,
            total=len(items),
            bulk_eligible=sum(1 for item in items if item.bulk_approvable),
            bulk_threshold=self.bulk_threshold,
        )

    def pending_payment_plans(self) -> PendingPaymentPlansResponse:
        """Proposed plans with their risk classification."""
        tenants = self._tenants_by_id()
        items = []
        for plan in self.store.list(EntityKind.PAYMENT_PLAN):
            if plan.status != PaymentPlanStatus.PROPOSED:
                continue
            tenant = tenants.get(plan.tenant_id)
            if tenant is None:
                logger.warning("Payment plan tenant missing", plan_id=plan.id, tenant_id=plan.tenant_id)
            reliability = tenant.reliability if tenant else UNKNOWN_RELIABILITY
            risk = payment_plan_risk(plan.coverage, reliability)
            items.append(PaymentPlanReview(
                plan=plan,
                tenant=tenant,
                risk=risk,
                risk_label=risk_label(risk),
                coverage_complete=coverage_is_complete(plan.coverage),
            ))
        return PendingPaymentPlansResponse(items=items, total=len(items))

    def open_escalations_by_priority(self) -> OpenEscalationsResponse:
        """Open escalations grouped by urgency, most urgent group first."""
        tenants = self._tenants_by_id()
        grouped: Dict[EscalationPriority, List[EscalationItem]] = {
            priority: [] for priority in EscalationPriority
        }
        for escalation in self.store.list(EntityKind.ESCALATION):
            if escalation.status != EscalationStatus.OPEN:
                continue
            grouped[escalation.priority].append(EscalationItem(
                escalation=escalation,
                tenant=tenants.get(escalation.tenant_id),
                type_label=escalation_type_label(escalation.type),
                type_glyph=escalation_type_glyph(escalation.type),
            ))

        groups = [
            EscalationGroup(
                priority=priority,
                label=escalation_priority_label(priority),
                count=len(items),
                items=items,
            )
            for priority, items in grouped.items()
        ]
        return OpenEscalationsResponse(groups=groups, total=sum(group.count for group in groups))

    def concerning_messages(self, conversation_id: str) -> ConcerningMessagesResponse:
        conversation = self.store.get(EntityKind.CONVERSATION, conversation_id)
        if conversation is None:
            raise NotFoundError(EntityKind.CONVERSATION.value, conversation_id)
        return ConcerningMessagesResponse(
            conversation_id=conversation_id,
            messages=find_concerning_messages(conversation.messages),
            has_translations=any(m.original_content for m in conversation.messages),
        )
