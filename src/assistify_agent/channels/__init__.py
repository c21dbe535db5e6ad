"""
HTTP channels for the Assistify agent.

- abilities router: schema export, dispatch, confirmations
- audit router: paged audit log, statistics, CSV export
"""

from .abilities_router import create_abilities_router
from .audit_router import create_audit_router
from .auth import ActorResolver, actor_dependency

__all__ = [
    "ActorResolver",
    "actor_dependency",
    "create_abilities_router",
    "create_audit_router",
]
