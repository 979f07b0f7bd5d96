"""
Risk and priority classification for the collections dashboard.

Every function here is pure: no I/O, no store access, and identical inputs
always give identical outputs. Lookups accept raw strings as well as enum
members and fall back to a sensible default for unknown values.
"""
from enum import Enum
from typing import Iterable, List, Optional, Union

from app.models.schemas import (
    EscalationPriority,
    EscalationType,
    Message,
    MessageSender,
    TenantPriority,
)

# Display tiers for AI confidence (0-100)
AUTO_APPROVABLE_CONFIDENCE = 90
REVIEW_CONFIDENCE = 70

# Eligibility for "approve all valid". Deliberately lower than the display
# threshold; the two are separate settings.
BULK_APPROVAL_CONFIDENCE = 85

# Payment plan risk thresholds
LOW_RISK_MIN_COVERAGE = 95
LOW_RISK_MIN_RELIABILITY = 7
MEDIUM_RISK_MIN_COVERAGE = 80
MEDIUM_RISK_MIN_RELIABILITY = 5

CONCERNING_KEYWORDS = ("threat", "lawyer", "sue", "legal", "angry")
CONCERNING_MARKERS = ("!!!",)


class ConfidenceTier(str, Enum):
    AUTO_APPROVABLE = "auto_approvable"
    REVIEW = "review"
    LOW = "low"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


RISK_LABELS = {
    RiskLevel.LOW: "Auto-Approvable",
    RiskLevel.MEDIUM: "Review",
    RiskLevel.HIGH: "High Risk",
}

ESCALATION_PRIORITY_LABELS = {
    EscalationPriority.IMMEDIATE: "IMMEDIATE ATTENTION",
    EscalationPriority.SAME_DAY: "SAME DAY RESPONSE",
    EscalationPriority.NEXT_BUSINESS_DAY: "NEXT BUSINESS DAY",
}

ESCALATION_TYPE_GLYPHS = {
    EscalationType.PHONE_FAILED: "📞",
    EscalationType.THREATENING: "🚨",
    EscalationType.AMOUNT_DISPUTE: "⚠️",
    EscalationType.COMPLEX_SITUATION: "🔄",
    EscalationType.NO_RESPONSE: "ℹ️",
}
UNKNOWN_TYPE_GLYPH = "❓"

TENANT_PRIORITY_RANKS = {
    TenantPriority.HIGH: 0,
    TenantPriority.MEDIUM: 1,
    TenantPriority.LOW: 2,
}


def _value(item: Union[Enum, str, None]) -> str:
    if isinstance(item, Enum):
        return item.value
    return item or ""


def confidence_tier(confidence: Optional[int]) -> ConfidenceTier:
    """
    Map an AI confidence score (0-100) to its display tier.

    Args:
        confidence: Confidence score; None counts as 0

    Returns:
        auto_approvable at 90 and above, review from 70 to 89, low below 70
    """
    score = confidence or 0
    if score >= AUTO_APPROVABLE_CONFIDENCE:
        return ConfidenceTier.AUTO_APPROVABLE
    if score >= REVIEW_CONFIDENCE:
        return ConfidenceTier.REVIEW
    return ConfidenceTier.LOW


def is_bulk_approvable(confidence: Optional[int], threshold: int = BULK_APPROVAL_CONFIDENCE) -> bool:
    """Whether a pending response qualifies for bulk approval."""
    return bool(confidence) and confidence >= threshold


def payment_plan_risk(coverage: int, reliability: int) -> RiskLevel:
    """
    Classify a payment plan's default risk.

    The low-risk test runs first, so a plan meeting both the low and medium
    thresholds is low risk.

    Args:
        coverage: Percent of the owed balance the plan covers
        reliability: Tenant reliability score (1-10)
    """
    if coverage >= LOW_RISK_MIN_COVERAGE and reliability >= LOW_RISK_MIN_RELIABILITY:
        return RiskLevel.LOW
    if coverage >= MEDIUM_RISK_MIN_COVERAGE and reliability >= MEDIUM_RISK_MIN_RELIABILITY:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def risk_label(risk: Union[RiskLevel, str, None]) -> str:
    try:
        return RISK_LABELS[RiskLevel(_value(risk))]
    except ValueError:
        return "Unknown"


def coverage_is_complete(coverage: int) -> bool:
    return coverage >= 100


def escalation_type_label(escalation_type: Union[EscalationType, str, None]) -> str:
    return _value(escalation_type).upper().replace("_", " ")


def escalation_priority_label(priority: Union[EscalationPriority, str, None]) -> str:
    """Heading shown for an escalation priority group."""
    try:
        return ESCALATION_PRIORITY_LABELS[EscalationPriority(_value(priority))]
    except ValueError:
        return _value(priority).upper().replace("_", " ")


def escalation_type_glyph(escalation_type: Union[EscalationType, str, None]) -> str:
    try:
        return ESCALATION_TYPE_GLYPHS[EscalationType(_value(escalation_type))]
    except ValueError:
        return UNKNOWN_TYPE_GLYPH


def tenant_priority_rank(priority: Union[TenantPriority, str, None]) -> int:
    """Sort key for the collections queue: high first, unknown last."""
    try:
        return TENANT_PRIORITY_RANKS[TenantPriority(_value(priority))]
    except ValueError:
        return len(TENANT_PRIORITY_RANKS)


def is_concerning(message: Message) -> bool:
    """Tenant message that reads as hostile or legally charged."""
    if message.sender != MessageSender.TENANT:
        return False
    lowered = message.content.lower()
    if any(keyword in lowered for keyword in CONCERNING_KEYWORDS):
        return True
    return any(marker in message.content for marker in CONCERNING_MARKERS)


def find_concerning_messages(messages: Iterable[Message]) -> List[Message]:
    """Filter a thread down to the tenant messages an operator should review."""
    return [message for message in messages if is_concerning(message)]
