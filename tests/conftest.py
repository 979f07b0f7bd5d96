"""
Pytest configuration and fixtures for the Collections Triage Service.
"""
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app
from app.models.schemas import Message
from app.services.seed import seed_demo_data
from app.services.store import EntityKind, EntityStore


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests: no demo data, no CORS."""
    return Settings(seed_demo_data=False, enable_cors=False, log_level="WARNING")


@pytest.fixture
def store() -> EntityStore:
    """Empty store, one per test."""
    return EntityStore()


@pytest.fixture
def seeded_store(store) -> EntityStore:
    """Store loaded with the demo portfolio."""
    seed_demo_data(store)
    return store


@pytest.fixture
def app(test_settings, store):
    return create_app(settings=test_settings, store=store)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """
    Create a test client for the FastAPI application.

    Each test gets its own application and store.
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def tenant_fields() -> dict:
    """Valid intake fields for a tenant."""
    return {
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
    }


@pytest.fixture
def tenant(store, tenant_fields):
    return store.create(EntityKind.TENANT, tenant_fields)


@pytest.fixture
def make_conversation(store, tenant):
    """Factory for conversations owned by ``tenant``."""

    def _make(confidence=85, status="active", flags=(None, None, True), tenant_id=None):
        messages = [
            Message(
                sender="ai" if index % 2 == 0 else "tenant",
                content=f"message {index}",
                needs_approval=flag,
            )
            for index, flag in enumerate(flags)
        ]
        return store.create(EntityKind.CONVERSATION, {
            "tenant_id": tenant_id or tenant.id,
            "messages": messages,
            "status": status,
            "confidence": confidence,
        })

    return _make


@pytest.fixture
def conversation(make_conversation):
    """Conversation with one AI draft awaiting approval."""
    return make_conversation()


@pytest.fixture
def payment_plan(store, tenant):
    return store.create(EntityKind.PAYMENT_PLAN, {
        "tenant_id": tenant.id,
        "weekly_amount": Decimal("75.00"),
        "duration": 8,
        "total_amount": Decimal("600.00"),
        "start_date": "2025-01-12",
        "coverage": 100,
    })


@pytest.fixture
def escalation(store, tenant):
    return store.create(EntityKind.ESCALATION, {
        "tenant_id": tenant.id,
        "type": "phone_failed",
        "priority": "immediate",
        "description": "Primary phone failed after 3 attempts",
    })
