"""
Authorization Policy Engine

Implements ability-level authorization with:
- Policy rules evaluated in priority order (first match wins)
- A default policy for system / explicit grants / role grants
- AuthorizationGate, the dispatcher-facing check built on a
  ``has_permission(actor, permission)`` collaborator
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Protocol, Tuple

from ..ability import Ability, PERMISSION_MANAGE, PERMISSION_READ
from ..errors import Forbidden
from .principal import Actor, ActorType

logger = logging.getLogger(__name__)


class PolicyDecision(str, Enum):
    """Authorization decision"""
    ALLOW = "allow"
    DENY = "deny"


@dataclass
class AuthorizationContext:
    """Context for authorization decisions"""
    actor: Actor
    permission: str
    role_grants: FrozenSet[str] = field(default_factory=frozenset)


@dataclass
class PolicyRule:
    """
    A single policy rule.

    Rules are evaluated in order. First matching rule wins.
    """
    rule_id: str
    description: str
    condition: Callable[[AuthorizationContext], bool]
    decision: PolicyDecision
    priority: int = 100  # Lower = higher priority

    def evaluate(self, context: AuthorizationContext) -> Optional[PolicyDecision]:
        if self.condition(context):
            logger.debug(f"Rule {self.rule_id} matched: {self.description}")
            return self.decision
        return None


# Permissions each actor type holds without an explicit grant
DEFAULT_ROLE_GRANTS: Dict[ActorType, FrozenSet[str]] = {
    ActorType.ADMIN: frozenset({PERMISSION_MANAGE, PERMISSION_READ}),
    ActorType.CUSTOMER: frozenset({PERMISSION_READ}),
    ActorType.GUEST: frozenset(),
    ActorType.SYSTEM: frozenset(),
}


class PermissionChecker(Protocol):
    """Platform capability check injected into the gate"""

    def has_permission(self, actor: Actor, permission: str) -> bool:
        ...


class PolicyEngine:
    """
    Default PermissionChecker.

    Evaluates the rule list for ``(actor, permission)``:
    1. system actor holds every permission
    2. explicit grants carried on the actor
    3. role grants for the actor type
    4. default deny
    """

    def __init__(self, role_grants: Optional[Mapping[ActorType, FrozenSet[str]]] = None):
        self.role_grants: Dict[ActorType, FrozenSet[str]] = dict(DEFAULT_ROLE_GRANTS)
        if role_grants:
            self.role_grants.update({ActorType(k): frozenset(v) for k, v in role_grants.items()})
        self.rules: List[PolicyRule] = []
        self._create_default_rules()

    def _create_default_rules(self) -> None:
        self.add_rule(PolicyRule(
            rule_id="allow-system",
            description="System actor has all permissions",
            condition=lambda ctx: ctx.actor.actor_type == ActorType.SYSTEM,
            decision=PolicyDecision.ALLOW,
            priority=1,
        ))
        self.add_rule(PolicyRule(
            rule_id="allow-explicit-grant",
            description="Permission granted to the actor by the platform",
            condition=lambda ctx: ctx.permission in ctx.actor.permissions,
            decision=PolicyDecision.ALLOW,
            priority=10,
        ))
        self.add_rule(PolicyRule(
            rule_id="allow-role-grant",
            description="Permission implied by actor type",
            condition=lambda ctx: ctx.permission in ctx.role_grants,
            decision=PolicyDecision.ALLOW,
            priority=20,
        ))
        self.add_rule(PolicyRule(
            rule_id="default-deny",
            description="No authorization rule matched",
            condition=lambda ctx: True,
            decision=PolicyDecision.DENY,
            priority=999,
        ))

    def add_rule(self, rule: PolicyRule) -> None:
        self.rules.append(rule)
        self.rules.sort(key=lambda r: r.priority)

    def evaluate(self, actor: Actor, permission: str) -> Tuple[PolicyDecision, str]:
        """Return (decision, rule_id) for the first matching rule"""
        context = AuthorizationContext(
            actor=actor,
            permission=permission,
            role_grants=self.role_grants.get(actor.actor_type, frozenset()),
        )
        for rule in self.rules:
            decision = rule.evaluate(context)
            if decision is not None:
                return decision, rule.rule_id
        return PolicyDecision.DENY, "no-rule"

    def has_permission(self, actor: Actor, permission: str) -> bool:
        decision, _ = self.evaluate(actor, permission)
        return decision == PolicyDecision.ALLOW


class AuthorizationGate:
    """Maps an ability to its required permission and checks the actor"""

    def __init__(self, checker: Optional[PermissionChecker] = None):
        self.checker = checker or PolicyEngine()

    def is_allowed(self, actor: Actor, ability: Ability) -> bool:
        return bool(self.checker.has_permission(actor, ability.permission))

    def authorize(self, actor: Actor, ability: Ability) -> None:
        """Raise Forbidden unless ``actor`` holds ``ability.permission``"""
        if not self.is_allowed(actor, ability):
            logger.warning(
                f"Authorization DENY: {ability.id} for actor {actor.actor_id} "
                f"({actor.actor_type.value}) - missing {ability.permission}"
            )
            raise Forbidden(ability.id, ability.permission)
