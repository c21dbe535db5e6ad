"""
Shared fixtures: isolated registry, audit store and dispatcher per test.
"""

from datetime import datetime, timedelta, timezone

import pytest

from assistify_agent.core.ability_engine import AbilityDispatcher
from assistify_agent.core.ability_registry import AbilityRegistry
from assistify_agent.core.audit_logger import AuditLogger
from assistify_agent.core.auth.principal import Actor, ActorType
from assistify_agent.data.models.audit import AuditRecord, AuditStatus
from assistify_agent.data.repos.audit import AuditRepository


BASE_TIME = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def repository(tmp_path):
    return AuditRepository(tmp_path / "audit.db")


@pytest.fixture
def audit(repository):
    return AuditLogger(repository)


@pytest.fixture
def registry():
    return AbilityRegistry()


@pytest.fixture
def dispatcher(registry, audit):
    return AbilityDispatcher(registry, audit=audit)


@pytest.fixture
def admin():
    return Actor.create(1, ActorType.ADMIN, display_name="Shop Manager", ip_address="10.0.0.1")


@pytest.fixture
def customer():
    return Actor.create(42, ActorType.CUSTOMER, display_name="Jane")


@pytest.fixture
def guest():
    return Actor.guest_actor(ip_address="203.0.113.9")


@pytest.fixture
def make_record():
    """Factory for audit records at BASE_TIME + ``minutes``"""

    def _make(minutes=0, **overrides):
        fields = {
            "actor_id": 1,
            "actor_type": ActorType.ADMIN,
            "action_type": "get",
            "action_category": "orders",
            "description": "Viewed order details",
            "ability_id": "afw/orders/get",
            "status": AuditStatus.SUCCESS,
            "created_at": BASE_TIME + timedelta(minutes=minutes),
        }
        fields.update(overrides)
        return AuditRecord(**fields)

    return _make


@pytest.fixture
def base_time():
    return BASE_TIME
