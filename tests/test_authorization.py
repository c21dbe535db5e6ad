"""
Test Authorization

Policy engine decisions and the ability-level gate.
"""

import pytest

from assistify_agent.core.ability import Ability, CallableHandler, PERMISSION_MANAGE, PERMISSION_READ
from assistify_agent.core.auth.policy import (
    AuthorizationGate,
    PolicyDecision,
    PolicyEngine,
    PolicyRule,
)
from assistify_agent.core.auth.principal import Actor, ActorType
from assistify_agent.core.errors import Forbidden


def make_ability(permission):
    return Ability(
        id="afw/orders/get",
        name="Get Order",
        handler=CallableHandler(lambda args: None),
        permission=permission,
    )


class TestPolicyEngine:
    """Default rule set"""

    def setup_method(self):
        self.engine = PolicyEngine()

    def test_admin_holds_manage(self):
        admin = Actor.create(1, ActorType.ADMIN)
        decision, rule = self.engine.evaluate(admin, PERMISSION_MANAGE)

        assert decision == PolicyDecision.ALLOW
        assert rule == "allow-role-grant"

    def test_customer_reads_but_cannot_manage(self):
        customer = Actor.create(42, ActorType.CUSTOMER)

        assert self.engine.has_permission(customer, PERMISSION_READ)
        assert not self.engine.has_permission(customer, PERMISSION_MANAGE)

    def test_guest_denied_by_default(self):
        decision, rule = self.engine.evaluate(Actor.guest_actor(), PERMISSION_READ)

        assert decision == PolicyDecision.DENY
        assert rule == "default-deny"

    def test_system_actor_allowed_everything(self):
        assert self.engine.has_permission(Actor.system_actor(), "delete_everything")

    def test_explicit_grant(self):
        guest = Actor.create(0, ActorType.GUEST, permissions={"read"})
        decision, rule = self.engine.evaluate(guest, PERMISSION_READ)

        assert decision == PolicyDecision.ALLOW
        assert rule == "allow-explicit-grant"

    def test_role_grant_override(self):
        engine = PolicyEngine(role_grants={"customer": []})
        assert not engine.has_permission(Actor.create(42, ActorType.CUSTOMER), PERMISSION_READ)

    def test_custom_rule_priority(self):
        self.engine.add_rule(PolicyRule(
            rule_id="deny-refunds-for-id-13",
            description="Blocked account",
            condition=lambda ctx: ctx.actor.actor_id == 13,
            decision=PolicyDecision.DENY,
            priority=5,
        ))

        blocked = Actor.create(13, ActorType.ADMIN)
        assert self.engine.evaluate(blocked, PERMISSION_MANAGE) == (PolicyDecision.DENY, "deny-refunds-for-id-13")


class StaticChecker:
    """Injected platform check"""

    def __init__(self, granted):
        self.granted = set(granted)
        self.calls = []

    def has_permission(self, actor, permission):
        self.calls.append((actor.actor_id, permission))
        return permission in self.granted


class TestAuthorizationGate:

    def test_uses_ability_permission(self):
        checker = StaticChecker({"edit_products"})
        gate = AuthorizationGate(checker)
        actor = Actor.create(3, ActorType.ADMIN)

        gate.authorize(actor, make_ability("edit_products"))

        assert checker.calls == [(3, "edit_products")]

    def test_forbidden(self):
        gate = AuthorizationGate(StaticChecker(set()))

        with pytest.raises(Forbidden) as exc:
            gate.authorize(Actor.create(3, ActorType.ADMIN), make_ability(PERMISSION_MANAGE))

        assert exc.value.http_status == 403
        assert exc.value.permission == PERMISSION_MANAGE
        assert exc.value.ability_id == "afw/orders/get"

    def test_default_checker_is_policy_engine(self):
        gate = AuthorizationGate()
        assert isinstance(gate.checker, PolicyEngine)
        assert gate.is_allowed(Actor.create(1, ActorType.ADMIN), make_ability(PERMISSION_MANAGE))
        assert not gate.is_allowed(Actor.guest_actor(), make_ability(PERMISSION_READ))


class TestActor:

    def test_round_trip(self):
        actor = Actor.create(9, ActorType.CUSTOMER, {"read"}, ip_address="1.2.3.4", session_id="s-1")
        assert Actor.from_dict(actor.to_dict()) == actor

    def test_with_origin(self):
        actor = Actor.create(9, ActorType.ADMIN).with_origin("5.6.7.8", "sess")
        assert actor.ip_address == "5.6.7.8"
        assert actor.session_id == "sess"
        assert actor.actor_id == 9

    def test_is_authenticated(self):
        assert Actor.create(9, ActorType.CUSTOMER).is_authenticated
        assert Actor.system_actor().is_authenticated
        assert not Actor.guest_actor().is_authenticated
