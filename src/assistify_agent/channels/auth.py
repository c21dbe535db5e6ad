"""
Request Authentication

Resolves the calling actor from the ``x-api-key`` header. Keys are
configured in ``auth.api_keys``; requests without a known key run as a
guest actor bound to the client address.
"""

from __future__ import annotations

import hmac
import logging
from typing import Callable, Mapping, Optional

from fastapi import Header, HTTPException, Request

from ..config.schema import ApiKeyConfig
from ..core.auth.policy import PermissionChecker
from ..core.auth.principal import Actor, ActorType

logger = logging.getLogger(__name__)


class ActorResolver:
    """Maps API keys to actors."""

    def __init__(self, api_keys: Optional[Mapping[str, ApiKeyConfig]] = None):
        self.api_keys = dict(api_keys or {})

    def resolve(
        self,
        api_key: Optional[str],
        ip_address: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> Actor:
        if api_key:
            for key, cfg in self.api_keys.items():
                if hmac.compare_digest(key.encode(), api_key.encode()):
                    return Actor.create(
                        cfg.actor_id,
                        ActorType(cfg.actor_type),
                        cfg.permissions,
                        display_name=cfg.display_name,
                        ip_address=ip_address,
                        session_id=session_id,
                    )
            logger.warning(f"Unknown API key from {ip_address}")
        return Actor.guest_actor(ip_address=ip_address).with_origin(ip_address, session_id)


def actor_dependency(resolver: ActorResolver) -> Callable[..., Actor]:
    """FastAPI dependency returning the calling actor"""

    def get_actor(
        request: Request,
        x_api_key: Optional[str] = Header(None, alias="x-api-key"),
        x_session_id: Optional[str] = Header(None, alias="x-session-id"),
    ) -> Actor:
        ip_address = request.client.host if request.client else None
        return resolver.resolve(x_api_key, ip_address, x_session_id)

    return get_actor


def require_permission(actor: Actor, checker: PermissionChecker, permission: str) -> None:
    """Raise 403 unless ``actor`` holds ``permission``"""
    if not checker.has_permission(actor, permission):
        raise HTTPException(status_code=403, detail="You do not have permission to access this resource.")
