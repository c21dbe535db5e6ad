"""
Test HTTP Channels

Abilities and audit-log routers served through the FastAPI app.
"""

import csv
from io import StringIO

import pytest
from fastapi.testclient import TestClient

from assistify_agent.config.schema import ApiKeyConfig, AppConfig, AuditConfig, AuthConfig
from assistify_agent.core.ability_registry import AbilityRegistry
from assistify_agent.data.models.audit import AuditStatus
from assistify_agent.server import build_services, create_app


ADMIN_KEY = "admin-key"
CUSTOMER_KEY = "customer-key"


def build_registry():
    registry = AbilityRegistry()
    registry.register("afw/orders/get", {
        "name": "Get Order",
        "description": "Get order details",
        "category": "orders",
        "permission": "read",
        "handler": lambda args: {"id": args["order_id"], "status": "processing"},
        "parameters": {"order_id": {"type": "integer", "required": True, "description": "Order ID"}},
    })
    registry.register("afw/orders/refund", {
        "name": "Refund Order",
        "category": "orders",
        "handler": lambda args: {"refunded": args["order_id"]},
        "requires_confirmation": True,
        "is_destructive": True,
        "parameters": {"order_id": {"type": "integer", "required": True}},
    })
    registry.register("afw/orders/sync", {
        "name": "Sync Orders",
        "category": "orders",
        "handler": lambda args: 1 / 0,
    })
    return registry


@pytest.fixture
def services(tmp_path):
    config = AppConfig(
        working_dir=tmp_path,
        audit=AuditConfig(max_per_page=5),
        auth=AuthConfig(api_keys={
            ADMIN_KEY: ApiKeyConfig(actor_id=1, actor_type="admin", display_name="Shop Manager"),
            CUSTOMER_KEY: ApiKeyConfig(actor_id=42, actor_type="customer"),
        }),
    )
    return build_services(config, registry=build_registry())


@pytest.fixture
def client(services):
    return TestClient(create_app(services=services, run_retention=False))


def as_admin():
    return {"x-api-key": ADMIN_KEY}


def as_customer():
    return {"x-api-key": CUSTOMER_KEY}


class TestAbilitiesRouter:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["abilities"] == 4

    def test_list_is_scoped_to_actor(self, client):
        admin_ids = [a["id"] for a in client.get("/abilities", headers=as_admin()).json()["abilities"]]
        customer = client.get("/abilities", headers=as_customer()).json()

        assert "afw/orders/refund" in admin_ids
        assert [a["id"] for a in customer["abilities"]] == ["afw/orders/get", "afw/store/list-abilities"]
        assert customer["abilities"][0]["category_label"] == "Orders"
        assert customer["categories"]["orders"] == "Orders"

    def test_schema(self, client):
        schema = client.get("/abilities/schema", headers=as_customer()).json()

        assert schema[0]["name"] == "afw/orders/get"
        assert schema[0]["parameters"]["required"] == ["order_id"]

    def test_guest_gets_empty_schema(self, client):
        assert client.get("/abilities/schema").json() == []

    def test_unknown_key_is_guest(self, client):
        response = client.post(
            "/abilities/execute",
            json={"ability_id": "afw/orders/get", "params": {"order_id": 1}},
            headers={"x-api-key": "wrong"},
        )
        assert response.status_code == 403

    def test_execute(self, client, services):
        response = client.post(
            "/abilities/execute",
            json={"ability_id": "afw/orders/get", "params": {"order_id": 7}},
            headers={**as_customer(), "x-session-id": "chat-7"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "result": {"id": 7, "status": "processing"}}
        record = services.repository.query()[0]
        assert record.actor_id == 42
        assert record.session_id == "chat-7"
        assert record.ip_address == "testclient"

    @pytest.mark.parametrize("payload, status, code", [
        ({"ability_id": "afw/orders/missing"}, 404, "ability_not_found"),
        ({"ability_id": "afw/orders/get"}, 400, "missing_parameter"),
        ({"ability_id": "afw/orders/get", "params": {"order_id": "latest"}}, 400, "invalid_parameter"),
        ({"ability_id": "afw/orders/sync"}, 500, "ability_error"),
    ])
    def test_execute_errors(self, client, payload, status, code):
        response = client.post("/abilities/execute", json=payload, headers=as_admin())

        assert response.status_code == status
        assert response.json()["detail"]["code"] == code

    def test_customer_forbidden(self, client, services):
        response = client.post(
            "/abilities/execute",
            json={"ability_id": "afw/orders/refund", "params": {"order_id": 7}},
            headers=as_customer(),
        )

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "ability_forbidden"
        assert services.repository.count() == 0

    def test_destructive_ability_needs_confirmation(self, client, services):
        response = client.post(
            "/abilities/execute",
            json={"ability_id": "afw/orders/refund", "params": {"order_id": 7}},
            headers=as_admin(),
        )

        body = response.json()
        assert body["success"] is True
        assert body["requires_confirmation"] is True
        assert body["confirmation_code"] == "REFUND"
        assert services.repository.count() == 0

        bad = client.post("/abilities/confirm", json={"token": body["confirmation_token"], "code": "NO"},
                          headers=as_admin())
        assert bad.status_code == 400

        done = client.post("/abilities/confirm", json={"token": body["confirmation_token"], "code": "REFUND"},
                           headers=as_admin())
        assert done.json() == {"success": True, "result": {"refunded": 7}}

        replay = client.post("/abilities/confirm", json={"token": body["confirmation_token"], "code": "REFUND"},
                             headers=as_admin())
        assert replay.status_code == 410

    def test_cancel(self, client):
        token = client.post(
            "/abilities/execute",
            json={"ability_id": "afw/orders/refund", "params": {"order_id": 7}},
            headers=as_admin(),
        ).json()["confirmation_token"]

        assert client.post("/abilities/cancel", json={"token": token}, headers=as_admin()).json() == {"success": True}
        assert client.post("/abilities/cancel", json={"token": token}, headers=as_admin()).json() == {"success": False}


class TestAuditRouter:

    def seed(self, client, count=7):
        for order_id in range(1, count + 1):
            client.post(
                "/abilities/execute",
                json={"ability_id": "afw/orders/get", "params": {"order_id": order_id}},
                headers=as_admin(),
            )

    def test_requires_manage_permission(self, client):
        assert client.get("/audit-logs", headers=as_customer()).status_code == 403
        assert client.get("/audit-logs/stats").status_code == 403
        assert client.get("/audit-logs/export", headers=as_customer()).status_code == 403

    def test_paged_listing(self, client):
        self.seed(client)

        body = client.get("/audit-logs", params={"per_page": 50, "page": 2}, headers=as_admin()).json()

        assert body["total"] == 7
        assert body["per_page"] == 5
        assert body["total_pages"] == 2
        assert [r["object_id"] for r in body["records"]] == [2, 1]

    def test_filters(self, client):
        self.seed(client, count=3)
        client.post("/abilities/execute", json={"ability_id": "afw/orders/sync"}, headers=as_admin())

        failed = client.get("/audit-logs", params={"status": "failed"}, headers=as_admin()).json()
        searched = client.get("/audit-logs", params={"search": "#2"}, headers=as_admin()).json()
        none = client.get("/audit-logs", params={"category": "coupons"}, headers=as_admin()).json()

        assert [r["ability_id"] for r in failed["records"]] == ["afw/orders/sync"]
        assert [r["description"] for r in searched["records"]] == ["Viewed order details #2"]
        assert none["total"] == 0

    def test_sort_whitelist(self, client):
        self.seed(client, count=3)

        body = client.get("/audit-logs", params={"order_by": "1; DROP TABLE audit_log", "order": "ASC"},
                          headers=as_admin()).json()

        assert [r["object_id"] for r in body["records"]] == [3, 2, 1]

    def test_invalid_status_rejected(self, client):
        assert client.get("/audit-logs", params={"status": "exploded"}, headers=as_admin()).status_code == 422

    def test_invalid_date_rejected(self, client):
        assert client.get("/audit-logs", params={"date_from": "yesterday"}, headers=as_admin()).status_code == 400

    def test_out_of_range_object_id_is_store_unavailable(self, client):
        response = client.get("/audit-logs", params={"object_id": 10**20}, headers=as_admin())
        assert response.status_code == 503

    def test_out_of_range_order_id_still_executes(self, client):
        response = client.post(
            "/abilities/execute",
            json={"ability_id": "afw/orders/get", "params": {"order_id": 10**20}},
            headers=as_admin(),
        )

        assert response.status_code == 200
        assert client.get("/audit-logs", headers=as_admin()).json()["total"] == 1

    def test_date_filter(self, client):
        self.seed(client, count=2)

        body = client.get("/audit-logs", params={"date_from": "2000-01-01", "date_to": "2000-01-02"},
                          headers=as_admin()).json()

        assert body["total"] == 0

    def test_stats(self, client):
        self.seed(client, count=2)

        stats = client.get("/audit-logs/stats", params={"days": 7}, headers=as_admin()).json()

        assert stats["total"] == 2
        assert stats["period_days"] == 7
        assert stats["by_status"] == {AuditStatus.SUCCESS.value: 2}
        assert stats["by_category"] == [{"category": "orders", "count": 2}]

    def test_stats_days_bounds(self, client):
        assert client.get("/audit-logs/stats", params={"days": 0}, headers=as_admin()).status_code == 422
        assert client.get("/audit-logs/stats", params={"days": 366}, headers=as_admin()).status_code == 422

    def test_export(self, client):
        self.seed(client, count=2)

        response = client.get("/audit-logs/export", params={"category": "orders"}, headers=as_admin())

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "assistify-audit-log-" in response.headers["content-disposition"]
        rows = list(csv.reader(StringIO(response.text)))
        assert rows[0][0] == "ID"
        assert len(rows) == 3
