"""
Audit Logger

Writer side of the audit trail. Turns dispatch outcomes and other agent
actions into AuditRecords and appends them to the AuditRepository.
"""

from typing import Any, Callable, Mapping, Optional
import logging

from ..data.models.audit import AuditRecord, AuditStatus, utc_now
from ..data.repos.audit import AuditRepository
from .ability import split_ability_id
from .auth.principal import Actor

logger = logging.getLogger(__name__)


# Human-readable descriptions by (category, action)
ACTION_DESCRIPTIONS = {
    "orders": {
        "get": "Viewed order details",
        "list": "Listed orders",
        "search": "Searched orders",
        "update-status": "Updated order status",
        "refund": "Processed order refund",
        "add-note": "Added order note",
    },
    "products": {
        "get": "Viewed product details",
        "list": "Listed products",
        "search": "Searched products",
        "update": "Updated product",
        "create": "Created product",
    },
    "customers": {
        "get": "Viewed customer details",
        "list": "Listed customers",
        "search": "Searched customers",
    },
    "coupons": {
        "get": "Viewed coupon details",
        "list": "Listed coupons",
        "create": "Created coupon",
        "update": "Updated coupon",
        "delete": "Deleted coupon",
    },
    "content": {
        "product-title": "Generated product title",
        "product-description": "Generated product description",
        "short-description": "Generated short description",
        "meta-description": "Generated meta description",
        "product-tags": "Generated product tags",
    },
    "image": {
        "text-to-image": "Generated image from text",
        "featured-image": "Generated featured image",
        "product-image": "Generated product image",
        "edit": "Edited image with AI",
        "remove-background": "Removed image background",
    },
}

OBJECT_TYPES = {
    "orders": "order",
    "products": "product",
    "customers": "customer",
    "coupons": "coupon",
    "subscriptions": "subscription",
    "bookings": "booking",
    "memberships": "membership",
}

# Largest value an SQLite INTEGER column holds
MAX_OBJECT_ID = 2**63 - 1

# Parameter keys that identify the primary object, in priority order
OBJECT_ID_KEYS = (
    "order_id",
    "product_id",
    "customer_id",
    "coupon_id",
    "subscription_id",
    "booking_id",
    "membership_id",
    "id",
)


def object_type_for(ability_id: str) -> Optional[str]:
    category, _ = split_ability_id(ability_id)
    return OBJECT_TYPES.get(category)


def object_id_from(parameters: Any) -> Optional[int]:
    """First truthy id-like parameter, as a non-negative integer"""
    if not isinstance(parameters, Mapping):
        return None
    for key in OBJECT_ID_KEYS:
        value = parameters.get(key)
        if not value:
            continue
        try:
            object_id = abs(value if isinstance(value, int) else int(float(value)))
        except (TypeError, ValueError, OverflowError):
            continue
        if object_id <= MAX_OBJECT_ID:
            return object_id
    return None


def describe(ability_id: str, parameters: Any = None) -> str:
    category, action = split_ability_id(ability_id)
    description = ACTION_DESCRIPTIONS.get(category, {}).get(action, f"Executed ability: {ability_id}")
    object_id = object_id_from(parameters)
    if object_id:
        description += f" #{object_id}"
    return description


class AuditLogger:
    """
    Appends audit records.

    One instance is constructed at startup and shared by the dispatcher,
    the confirmation manager and the HTTP layer.
    """

    def __init__(
        self,
        repository: AuditRepository,
        enabled: bool = True,
        clock: Callable[[], Any] = utc_now,
    ):
        self.repository = repository
        self.enabled = enabled
        self.clock = clock

    def write(self, record: AuditRecord) -> Optional[int]:
        """
        Persist a record and return its id (None when auditing is disabled).

        Raises:
            StoreError: the repository could not persist the record
        """
        if not self.enabled:
            return None
        record_id = self.repository.insert(record)
        logger.debug(f"Audit record {record_id}: {record.action_category}/{record.action_type} {record.status.value}")
        return record_id

    def log(
        self,
        action_type: str,
        action_category: str,
        actor: Optional[Actor] = None,
        status: AuditStatus = AuditStatus.SUCCESS,
        **fields
    ) -> Optional[int]:
        """Write a record for an arbitrary agent action"""
        actor = actor or Actor.system_actor()
        record = AuditRecord(
            actor_id=actor.actor_id,
            actor_type=actor.actor_type,
            action_type=action_type,
            action_category=action_category or "general",
            status=AuditStatus(status),
            ip_address=fields.pop("ip_address", actor.ip_address),
            session_id=fields.pop("session_id", actor.session_id),
            created_at=self.clock(),
            **fields
        )
        return self.write(record)

    def log_ability(
        self,
        ability_id: str,
        parameters: Any,
        result: Any,
        status: AuditStatus,
        actor: Optional[Actor] = None,
    ) -> Optional[int]:
        """Write the terminal record for one ability dispatch"""
        category, action = split_ability_id(ability_id)
        return self.log(
            action_type=action,
            action_category=category,
            actor=actor,
            status=status,
            description=describe(ability_id, parameters),
            ability_id=ability_id,
            parameters=parameters,
            result=result,
            object_type=object_type_for(ability_id),
            object_id=object_id_from(parameters),
        )

    def log_content_generation(
        self,
        content_type: str,
        object_id: Optional[int],
        status: AuditStatus = AuditStatus.SUCCESS,
        actor: Optional[Actor] = None,
    ) -> Optional[int]:
        return self.log(
            action_type="content_generate",
            action_category="content",
            actor=actor,
            status=status,
            description=f"Generated AI {content_type}",
            object_type="post",
            object_id=object_id or None,
        )

    def log_image_generation(
        self,
        prompt: str,
        object_id: Optional[int] = None,
        status: AuditStatus = AuditStatus.SUCCESS,
        actor: Optional[Actor] = None,
    ) -> Optional[int]:
        return self.log(
            action_type="image_generate",
            action_category="image",
            actor=actor,
            status=status,
            description="Generated AI image",
            parameters={"prompt": prompt},
            object_type="attachment",
            object_id=object_id or None,
        )


__all__ = [
    "ACTION_DESCRIPTIONS",
    "AuditLogger",
    "OBJECT_ID_KEYS",
    "OBJECT_TYPES",
    "describe",
    "object_id_from",
    "object_type_for",
]
