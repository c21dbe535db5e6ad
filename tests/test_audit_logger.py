"""
Test Audit Logger
"""

import pytest

from assistify_agent.core.audit_logger import (
    AuditLogger,
    describe,
    object_id_from,
    object_type_for,
)
from assistify_agent.core.auth.principal import ActorType
from assistify_agent.data.models.audit import AuditStatus


class TestDescriptions:

    @pytest.mark.parametrize("ability_id, params, expected", [
        ("afw/orders/get", {"order_id": 123}, "Viewed order details #123"),
        ("afw/orders/list", {}, "Listed orders"),
        ("afw/coupons/delete", {"coupon_id": "9"}, "Deleted coupon #9"),
        ("afw/products/update", {"product_id": 0, "id": 31}, "Updated product #31"),
        ("afw/bookings/get", {"booking_id": 4}, "Executed ability: afw/bookings/get #4"),
        ("demo/echo", {"msg": "hi"}, "Executed ability: demo/echo"),
    ])
    def test_describe(self, ability_id, params, expected):
        assert describe(ability_id, params) == expected

    @pytest.mark.parametrize("params, expected", [
        ({"order_id": 12}, 12),
        ({"order_id": "12"}, 12),
        ({"order_id": -5}, 5),
        ({"order_id": 12.9}, 12),
        ({"order_id": "abc", "product_id": 7}, 7),
        ({"order_id": 0}, None),
        ({}, None),
        (None, None),
        ("order 12", None),
        ({"order_id": "1e400"}, None),
        ({"order_id": 10**20, "product_id": 7}, 7),
        ({"order_id": 2**63 - 1}, 2**63 - 1),
    ])
    def test_object_id_from(self, params, expected):
        assert object_id_from(params) == expected

    def test_object_type_for(self):
        assert object_type_for("afw/orders/refund") == "order"
        assert object_type_for("afw/memberships/get") == "membership"
        assert object_type_for("afw/content/product-title") is None


class TestAuditLogger:

    def test_log_defaults_to_system_actor(self, audit, repository):
        record_id = audit.log("cleanup", "store", description="Pruned audit log")

        record = repository.get(record_id)
        assert record.actor_type == ActorType.SYSTEM
        assert record.actor_id == 0
        assert record.status == AuditStatus.SUCCESS

    def test_log_uses_actor_origin(self, audit, repository, admin):
        record = repository.get(audit.log("get", "orders", actor=admin))

        assert record.actor_id == 1
        assert record.ip_address == "10.0.0.1"

    def test_explicit_origin_overrides_actor(self, audit, repository, admin):
        record_id = audit.log("get", "orders", actor=admin, ip_address="192.0.2.1", session_id="s-9")
        record = repository.get(record_id)

        assert record.ip_address == "192.0.2.1"
        assert record.session_id == "s-9"

    def test_clock_is_used(self, repository, base_time):
        audit = AuditLogger(repository, clock=lambda: base_time)
        record = repository.get(audit.log("get", "orders"))
        assert record.created_at == base_time

    def test_log_ability(self, audit, repository, customer):
        record_id = audit.log_ability(
            "afw/orders/get",
            {"order_id": 55},
            {"id": 55, "status": "completed"},
            AuditStatus.SUCCESS,
            customer,
        )

        record = repository.get(record_id)
        assert record.action_type == "get"
        assert record.action_category == "orders"
        assert record.description == "Viewed order details #55"
        assert record.object_type == "order"
        assert record.object_id == 55
        assert record.result == {"id": 55, "status": "completed"}

    def test_content_generation(self, audit, repository, admin):
        record = repository.get(audit.log_content_generation("product description", 88, actor=admin))

        assert record.action_type == "content_generate"
        assert record.action_category == "content"
        assert record.description == "Generated AI product description"
        assert record.object_type == "post"
        assert record.object_id == 88

    def test_image_generation(self, audit, repository, admin):
        record = repository.get(audit.log_image_generation("red sneakers on white", actor=admin))

        assert record.action_type == "image_generate"
        assert record.action_category == "image"
        assert record.parameters == {"prompt": "red sneakers on white"}
        assert record.object_type == "attachment"
        assert record.object_id is None

    def test_failed_status(self, audit, repository):
        record_id = audit.log_content_generation("meta description", 0, status=AuditStatus.FAILED)
        assert repository.get(record_id).status == AuditStatus.FAILED

    def test_disabled_logger(self, repository):
        audit = AuditLogger(repository, enabled=False)

        assert audit.log("get", "orders") is None
        assert repository.count() == 0
