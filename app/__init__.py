"""Collections Triage Service

This service backs the property-management collections dashboard:
- Keeps tenants, conversations, payment plans and escalations
- Classifies tenant priority, payment plan risk and AI confidence tiers
- Applies operator decisions (approve/reject/resolve) as state transitions
- Computes queue statistics for the dashboard summaries
"""

__version__ = "1.0.0"
