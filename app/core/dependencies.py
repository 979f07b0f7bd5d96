"""
Dependency injection for FastAPI application.

The entity store lives on ``app.state``; services are built per request
around it, so each application instance (and each test) works on its own
store.
"""

from fastapi import Depends, Request

from app.core.config import Settings
from app.services.store import EntityStore
from app.services.transition_service import TransitionEngine
from app.services.triage_service import TriageAggregator


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was created with."""
    return request.app.state.settings


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_transition_engine(
    store: EntityStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> TransitionEngine:
    """Get transition engine bound to the application store."""
    return TransitionEngine(store, bulk_threshold=settings.bulk_approval_confidence)


def get_triage_aggregator(
    store: EntityStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> TriageAggregator:
    """Get triage aggregator bound to the application store."""
    return TriageAggregator(store, bulk_threshold=settings.bulk_approval_confidence)
