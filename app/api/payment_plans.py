"""
Payment Plan API Endpoints

Review proposed payment plans and record approve/deny decisions.
"""

from typing import List

from fastapi import APIRouter, Depends

from app.core.dependencies import get_store, get_transition_engine, get_triage_aggregator
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.models.schemas import PaymentPlan
from app.schemas.payment_plan import PaymentPlanUpdate, PendingPaymentPlansResponse
from app.services.store import EntityKind, EntityStore
from app.services.transition_service import TransitionEngine
from app.services.triage_service import TriageAggregator

logger = get_logger(__name__)

router = APIRouter(prefix="/api/payment-plans", tags=["payment-plans"])


@router.get("", response_model=List[PaymentPlan])
async def list_payment_plans(store: EntityStore = Depends(get_store)):
    return store.list(EntityKind.PAYMENT_PLAN)


@router.get("/pending", response_model=PendingPaymentPlansResponse)
async def list_pending_payment_plans(aggregator: TriageAggregator = Depends(get_triage_aggregator)):
    """
    Get proposed payment plans with their risk assessment.

    Risk combines the plan's coverage with the tenant's reliability score.
    """
    return aggregator.pending_payment_plans()


@router.get("/tenant/{tenant_id}", response_model=List[PaymentPlan])
async def list_tenant_payment_plans(tenant_id: str, store: EntityStore = Depends(get_store)):
    return store.list_by_tenant(EntityKind.PAYMENT_PLAN, tenant_id)


@router.get("/{plan_id}", response_model=PaymentPlan)
async def get_payment_plan(plan_id: str, store: EntityStore = Depends(get_store)):
    plan = store.get(EntityKind.PAYMENT_PLAN, plan_id)
    if plan is None:
        raise NotFoundError(EntityKind.PAYMENT_PLAN.value, plan_id)
    return plan


@router.patch("/{plan_id}", response_model=PaymentPlan)
async def update_payment_plan(
    plan_id: str,
    command: PaymentPlanUpdate,
    engine: TransitionEngine = Depends(get_transition_engine),
):
    """
    Update a payment plan.

    Terms can only be edited while the plan is proposed; a status of
    approved or denied records the decision.
    """
    logger.info("Payment plan update requested", plan_id=plan_id, fields=sorted(command.changes()))
    return engine.update_payment_plan(plan_id, command)


@router.post("/{plan_id}/approve", response_model=PaymentPlan)
async def approve_payment_plan(plan_id: str, engine: TransitionEngine = Depends(get_transition_engine)):
    return engine.approve_plan(plan_id)


@router.post("/{plan_id}/deny", response_model=PaymentPlan)
async def deny_payment_plan(plan_id: str, engine: TransitionEngine = Depends(get_transition_engine)):
    return engine.deny_plan(plan_id)
