"""
Tests for tenant API endpoints.
"""
from decimal import Decimal

from fastapi import status

from app.services.store import EntityKind


class TestTenantsAPI:
    """Tenant listing, lookup and updates"""

    def test_list_tenants_camel_case(self, client, tenant):
        """Tenants are serialized with camelCase keys"""
        response = client.get("/api/tenants")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data) == 1
        assert data[0]["id"] == tenant.id
        assert data[0]["daysLate"] == 47
        assert Decimal(str(data[0]["amountOwed"])) == Decimal("1247.00")
        assert "createdAt" in data[0]

    def test_get_tenant(self, client, tenant):
        response = client.get(f"/api/tenants/{tenant.id}")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "Maria Rodriguez"

    def test_get_missing_tenant(self, client):
        """Unknown ids return 404 with an error body"""
        response = client.get("/api/tenants/missing")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "Tenant not found"}

    def test_patch_tenant(self, client, store, tenant):
        """PATCH merges the given fields"""
        response = client.patch(
            f"/api/tenants/{tenant.id}",
            json={"status": "negotiating", "notes": "Prefers texts"},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "negotiating"
        assert data["notes"] == "Prefers texts"
        assert data["name"] == tenant.name
        assert store.get(EntityKind.TENANT, tenant.id).notes == "Prefers texts"

    def test_patch_missing_tenant(self, client, store):
        """PATCH on an unknown id is 404 and inserts nothing"""
        response = client.patch("/api/tenants/missing", json={"notes": "x"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert store.list(EntityKind.TENANT) == []

    def test_patch_unknown_field_rejected(self, client, store, tenant):
        """Unknown fields return 422 and leave the record untouched"""
        response = client.patch(f"/api/tenants/{tenant.id}", json={"id": "hijack", "notes": "x"})

        assert response.status_code == 422
        assert "error" in response.json()
        assert store.get(EntityKind.TENANT, tenant.id) == tenant

    def test_patch_out_of_range_rejected(self, client, tenant):
        response = client.patch(f"/api/tenants/{tenant.id}", json={"reliability": 11})
        assert response.status_code == 422

    def test_correlation_id_echoed(self, client, tenant):
        """The correlation header is passed through"""
        response = client.get("/api/tenants", headers={"X-Correlation-ID": "test-correlation-123"})
        assert response.headers["X-Correlation-ID"] == "test-correlation-123"

    def test_correlation_id_generated(self, client):
        response = client.get("/api/tenants")
        assert response.headers.get("X-Correlation-ID")


class TestCollectionsQueueAPI:
    """Collections queue endpoint"""

    def test_queue_filters_and_counts(self, client, store, tenant_fields):
        store.create(EntityKind.TENANT, {**tenant_fields, "name": "A", "priority": "high", "days_late": 10})
        store.create(EntityKind.TENANT, {**tenant_fields, "name": "B", "priority": "high", "days_late": 60})
        store.create(EntityKind.TENANT, {**tenant_fields, "name": "C", "priority": "low"})

        response = client.get("/api/tenants/queue", params={"priority": "high"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [t["name"] for t in data["tenants"]] == ["B", "A"]
        assert data["total"] == 2
        assert data["priorityCounts"] == {"high": 2, "medium": 0, "low": 1}

    def test_queue_sort_by_amount(self, client, store, tenant_fields):
        store.create(EntityKind.TENANT, {**tenant_fields, "name": "Small", "amount_owed": Decimal("10.00")})
        store.create(EntityKind.TENANT, {**tenant_fields, "name": "Large", "amount_owed": Decimal("999.00")})

        response = client.get("/api/tenants/queue", params={"sort_by": "amount"})
        assert [t["name"] for t in response.json()["tenants"]] == ["Large", "Small"]

    def test_queue_rejects_unknown_filter_value(self, client):
        response = client.get("/api/tenants/queue", params={"priority": "urgent"})
        assert response.status_code == 422
        assert "error" in response.json()
