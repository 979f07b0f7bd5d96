"""
Tests for escalation API endpoints.
"""
from datetime import datetime

from fastapi import status

from app.services.store import EntityKind


class TestEscalationsAPI:
    """Escalation listing and resolution"""

    def test_list_escalations(self, client, escalation):
        response = client.get("/api/escalations")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data[0]["id"] == escalation.id
        assert data[0]["type"] == "phone_failed"
        assert data[0]["resolvedAt"] is None

    def test_get_missing_escalation(self, client):
        response = client.get("/api/escalations/missing")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "Escalation not found"}

    def test_open_grouped_by_priority(self, client, escalation):
        response = client.get("/api/escalations/open")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 1
        immediate = data["groups"][0]
        assert immediate["priority"] == "immediate"
        assert immediate["label"] == "IMMEDIATE ATTENTION"
        assert immediate["items"][0]["typeGlyph"] == "📞"
        assert immediate["items"][0]["tenant"]["name"] == "Maria Rodriguez"

    def test_resolve(self, client, escalation):
        """Resolve stamps resolvedAt no earlier than createdAt"""
        response = client.post(f"/api/escalations/{escalation.id}/resolve")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "resolved"
        assert datetime.fromisoformat(data["resolvedAt"]) >= datetime.fromisoformat(data["createdAt"])

    def test_resolve_twice_is_idempotent(self, client, escalation):
        first = client.post(f"/api/escalations/{escalation.id}/resolve").json()
        second = client.post(f"/api/escalations/{escalation.id}/resolve").json()
        assert second["resolvedAt"] == first["resolvedAt"]

    def test_resolved_not_listed_as_open(self, client, escalation):
        client.post(f"/api/escalations/{escalation.id}/resolve")
        assert client.get("/api/escalations/open").json()["total"] == 0

    def test_patch_resolve_with_client_timestamp(self, client, escalation):
        """A client resolvedAt is accepted but the server time is recorded"""
        response = client.patch(
            f"/api/escalations/{escalation.id}",
            json={"status": "resolved", "resolvedAt": "2001-01-01T00:00:00"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert not response.json()["resolvedAt"].startswith("2001")

    def test_patch_reopen_conflicts(self, client, escalation):
        client.post(f"/api/escalations/{escalation.id}/resolve")
        response = client.patch(f"/api/escalations/{escalation.id}", json={"status": "open"})
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_patch_unknown_field(self, client, store, escalation):
        response = client.patch(f"/api/escalations/{escalation.id}", json={"type": "threatening"})

        assert response.status_code == 422
        assert store.get(EntityKind.ESCALATION, escalation.id) == escalation

    def test_patch_missing(self, client, store):
        response = client.patch("/api/escalations/missing", json={"status": "resolved"})
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert store.list(EntityKind.ESCALATION) == []
