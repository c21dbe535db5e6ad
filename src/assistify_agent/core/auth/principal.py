"""
Actor Identity Model

The actor is the principal on whose behalf an ability is dispatched:
- ActorType: closed set of actor kinds (admin, customer, guest, system)
- Actor: identity plus the permissions granted to it by the host platform
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

from ...data.models.audit import ActorType


@dataclass(frozen=True)
class Actor:
    """
    Principal making a request.

    ``actor_id`` is 0 for unauthenticated and system actors.
    ``permissions`` holds capability tokens granted by the platform; the
    policy engine may grant more based on ``actor_type``.
    """
    actor_id: int = 0
    actor_type: ActorType = ActorType.GUEST
    display_name: Optional[str] = None
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    ip_address: Optional[str] = None
    session_id: Optional[str] = None

    @classmethod
    def create(
        cls,
        actor_id: int,
        actor_type: ActorType,
        permissions: Iterable[str] = (),
        **kwargs
    ) -> "Actor":
        return cls(
            actor_id=int(actor_id or 0),
            actor_type=ActorType(actor_type),
            permissions=frozenset(permissions),
            **kwargs
        )

    @classmethod
    def system_actor(cls) -> "Actor":
        """Create the system actor (for scheduled and internal operations)"""
        return cls(actor_id=0, actor_type=ActorType.SYSTEM, display_name="System")

    @classmethod
    def guest_actor(cls, ip_address: Optional[str] = None) -> "Actor":
        """Create an unauthenticated actor"""
        return cls(actor_id=0, actor_type=ActorType.GUEST, display_name="Guest", ip_address=ip_address)

    @property
    def is_authenticated(self) -> bool:
        return self.actor_id > 0 or self.actor_type == ActorType.SYSTEM

    def with_origin(self, ip_address: Optional[str], session_id: Optional[str] = None) -> "Actor":
        """Copy of this actor bound to a request origin"""
        return Actor(
            actor_id=self.actor_id,
            actor_type=self.actor_type,
            display_name=self.display_name,
            permissions=self.permissions,
            ip_address=ip_address,
            session_id=session_id or self.session_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary"""
        return {
            "actor_id": self.actor_id,
            "actor_type": self.actor_type.value,
            "display_name": self.display_name,
            "permissions": sorted(self.permissions),
            "ip_address": self.ip_address,
            "session_id": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Actor":
        """Deserialize from dictionary"""
        return cls(
            actor_id=int(data.get("actor_id") or 0),
            actor_type=ActorType(data.get("actor_type", ActorType.GUEST.value)),
            display_name=data.get("display_name"),
            permissions=frozenset(data.get("permissions") or ()),
            ip_address=data.get("ip_address"),
            session_id=data.get("session_id"),
        )
