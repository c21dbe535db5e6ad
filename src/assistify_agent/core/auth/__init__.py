"""
Assistify Authorization

- Actor: who is invoking an ability (admin, customer, guest, system)
- PolicyEngine: default permission checker (system / explicit / role grants)
- AuthorizationGate: ability-level check used by dispatcher and exporter
"""

from .principal import Actor, ActorType
from .policy import (
    AuthorizationContext,
    AuthorizationGate,
    DEFAULT_ROLE_GRANTS,
    PermissionChecker,
    PolicyDecision,
    PolicyEngine,
    PolicyRule,
)

__all__ = [
    "Actor",
    "ActorType",
    "AuthorizationContext",
    "AuthorizationGate",
    "DEFAULT_ROLE_GRANTS",
    "PermissionChecker",
    "PolicyDecision",
    "PolicyEngine",
    "PolicyRule",
]
