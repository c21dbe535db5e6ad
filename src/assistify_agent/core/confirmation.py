"""
Action Confirmation

Caller-side enforcement of the advisory ``requires_confirmation`` and
``is_destructive`` flags. A flagged ability is not executed directly:
a one-time token is issued and the ability runs only when the same
actor confirms it (typing a code for destructive actions) before the
token expires.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional
import logging
import secrets
import threading
import time

from ..data.models.audit import AuditStatus
from ..data.repos.base import StoreError
from .ability import Ability, split_ability_id
from .ability_engine import AbilityDispatcher
from .audit_logger import AuditLogger
from .auth.principal import Actor
from .errors import AbilityError, ConfirmationError

logger = logging.getLogger(__name__)


DEFAULT_TTL_SECONDS = 300


class ConfirmationLevel(str, Enum):
    SINGLE = "single"   # Yes / no
    DOUBLE = "double"   # Must type a confirmation code


# Typed confirmation codes by action verb
CONFIRMATION_CODES = {
    "refund": "REFUND",
    "cancel": "CANCEL",
    "delete": "DELETE",
    "terminate": "TERMINATE",
}

ACTION_TITLES = {
    ("orders", "refund"): "Process Refund",
    ("orders", "cancel"): "Cancel Order",
    ("coupons", "create"): "Create Coupon",
    ("coupons", "delete"): "Delete Coupon",
    ("products", "update"): "Update Product",
    ("products", "create"): "Create Product",
    ("products", "delete"): "Delete Product",
    ("subscriptions", "pause"): "Pause Subscription",
    ("subscriptions", "cancel"): "Cancel Subscription",
    ("bookings", "cancel"): "Cancel Booking",
    ("memberships", "cancel"): "Cancel Membership",
}

DESTRUCTIVE_WARNINGS = {
    ("orders", "refund"): "This will process a refund and cannot be easily undone. The customer will be refunded.",
    ("orders", "cancel"): "This will cancel the order. Inventory may be restocked.",
    ("coupons", "delete"): "This will permanently delete the coupon.",
    ("products", "delete"): "This will move the product to trash.",
    ("subscriptions", "cancel"): "This will cancel the subscription. The customer will lose access.",
    ("bookings", "cancel"): "This will cancel the booking. The customer will be notified.",
    ("memberships", "cancel"): "This will cancel the membership. The customer will lose access.",
}


def confirmation_code(ability_id: str) -> str:
    """Code a user must type to confirm a destructive ability"""
    _, action = split_ability_id(ability_id)
    verb = action.split("-", 1)[0]
    return CONFIRMATION_CODES.get(verb, "CONFIRM")


def warning_message(ability_id: str, level: ConfirmationLevel) -> str:
    if level == ConfirmationLevel.DOUBLE:
        return DESTRUCTIVE_WARNINGS.get(
            split_ability_id(ability_id),
            "This action cannot be easily undone. Please confirm.",
        )
    return "Please confirm this action."


def action_summary(ability_id: str, params: Mapping[str, Any]) -> Dict[str, Any]:
    """Title plus short details for the confirmation prompt"""
    details: List[str] = []
    for key, label in (("order_id", "Order"), ("subscription_id", "Subscription"), ("booking_id", "Booking")):
        if params.get(key):
            details.append(f"{label} #{params[key]}")
    if params.get("amount"):
        details.append(f"Amount: {params['amount']}")
    if params.get("code"):
        details.append(f"Code: {params['code']}")

    return {
        "title": ACTION_TITLES.get(split_ability_id(ability_id), "Confirm Action"),
        "details": details,
        "params": dict(params),
    }


@dataclass
class PendingConfirmation:
    """A confirmation awaiting the actor's answer"""
    token: str
    ability_id: str
    params: Dict[str, Any]
    actor: Actor
    level: ConfirmationLevel
    created_at: float
    expires_at: float
    session_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def belongs_to(self, actor: Actor) -> bool:
        return self.actor.actor_id == actor.actor_id and self.actor.actor_type == actor.actor_type


class ConfirmationManager:
    """
    Issues, honors and cancels confirmation tokens.

    Tokens are held in memory, expire after ``ttl_seconds`` and are
    removed on first use (confirm or cancel).
    """

    def __init__(
        self,
        dispatcher: AbilityDispatcher,
        audit: Optional[AuditLogger] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.dispatcher = dispatcher
        self.audit = audit
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._pending: Dict[str, PendingConfirmation] = {}
        self._lock = threading.Lock()

    @staticmethod
    def level_for(ability: Ability) -> Optional[ConfirmationLevel]:
        if ability.is_destructive:
            return ConfirmationLevel.DOUBLE
        if ability.requires_confirmation:
            return ConfirmationLevel.SINGLE
        return None

    def create(
        self,
        ability_id: str,
        params: Optional[Mapping[str, Any]],
        actor: Actor,
        session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Open a confirmation for ``ability_id`` if its flags call for one.

        Returns ``{"requires_confirmation": False}`` for unflagged abilities.

        Raises:
            AbilityNotFound / Forbidden: as for a direct dispatch
        """
        ability = self.dispatcher.resolve(ability_id, actor)
        level = self.level_for(ability)
        if level is None:
            return {"requires_confirmation": False}

        params = dict(params or {})
        now = self.clock()
        pending = PendingConfirmation(
            token=secrets.token_urlsafe(24),
            ability_id=ability_id,
            params=params,
            actor=actor,
            level=level,
            created_at=now,
            expires_at=now + self.ttl_seconds,
            session_id=session_id or actor.session_id,
        )
        with self._lock:
            self._purge_expired(now)
            self._pending[pending.token] = pending

        logger.info(f"Confirmation required ({level.value}) for {ability_id} by actor {actor.actor_id}")

        response = {
            "requires_confirmation": True,
            "confirmation_token": pending.token,
            "level": level.value,
            "action_summary": action_summary(ability_id, params),
            "warning_message": warning_message(ability_id, level),
            "expires_in": self.ttl_seconds,
        }
        if level == ConfirmationLevel.DOUBLE:
            response["confirmation_code"] = confirmation_code(ability_id)
        return response

    def confirm(self, token: str, actor: Actor, code: str = "") -> Any:
        """
        Execute a pending confirmation.

        Raises:
            ConfirmationError: unknown/expired token, different actor, or
                wrong confirmation code
            AbilityError: the dispatch itself failed
        """
        now = self.clock()
        with self._lock:
            pending = self._pending.get(token)
            if pending is None or pending.is_expired(now):
                self._pending.pop(token, None)
                raise ConfirmationError(
                    "confirmation_expired",
                    "This confirmation has expired. Please try again.",
                )
            if not pending.belongs_to(actor):
                raise ConfirmationError(
                    "confirmation_invalid_user",
                    "This confirmation belongs to a different user.",
                )
            if pending.level == ConfirmationLevel.DOUBLE:
                expected = confirmation_code(pending.ability_id)
                if (code or "").strip().upper() != expected:
                    raise ConfirmationError(
                        "confirmation_code_invalid",
                        f'Invalid confirmation code. Please type "{expected}" to confirm.',
                    )
            del self._pending[token]

        try:
            result = self.dispatcher.execute(pending.ability_id, pending.params, actor)
        except AbilityError as e:
            self._record(pending, actor, "confirmed_action", AuditStatus.FAILED, e.message)
            raise

        self._record(pending, actor, "confirmed_action", AuditStatus.SUCCESS, result)
        return result

    def cancel(self, token: str, actor: Optional[Actor] = None) -> bool:
        """Drop a pending confirmation; returns whether one was found"""
        with self._lock:
            pending = self._pending.get(token)
            if pending is None:
                return False
            if actor is not None and not pending.belongs_to(actor):
                return False
            del self._pending[token]

        self._record(pending, actor or pending.actor, "cancelled_action", AuditStatus.CANCELLED, None)
        logger.info(f"Confirmation cancelled for {pending.ability_id}")
        return True

    def pending_count(self) -> int:
        with self._lock:
            self._purge_expired(self.clock())
            return len(self._pending)

    def _purge_expired(self, now: float) -> None:
        expired = [token for token, pending in self._pending.items() if pending.is_expired(now)]
        for token in expired:
            del self._pending[token]

    def _record(
        self,
        pending: PendingConfirmation,
        actor: Actor,
        action_type: str,
        status: AuditStatus,
        result: Any,
    ) -> None:
        if self.audit is None:
            return
        category, _ = split_ability_id(pending.ability_id)
        verb = "Confirmed and executed" if action_type == "confirmed_action" else "Cancelled action"
        try:
            self.audit.log(
                action_type=action_type,
                action_category=category,
                actor=actor,
                status=status,
                description=f"{verb}: {pending.ability_id}",
                ability_id=pending.ability_id,
                parameters=pending.params,
                result=result,
                session_id=pending.session_id,
            )
        except StoreError as e:
            logger.warning(f"Audit write failed for {action_type} {pending.ability_id}: {e}")
