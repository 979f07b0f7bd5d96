"""
Models package for the Collections Triage Service.
"""
from .schemas import Conversation, Escalation, Message, PaymentPlan, Tenant

__all__ = ["Conversation", "Escalation", "Message", "PaymentPlan", "Tenant"]
