"""
Audit Models

Immutable audit records written once per ability dispatch, and the
filter set accepted by the audit query surface.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ActorType(str, Enum):
    """Kind of actor invoking an ability."""
    ADMIN = "admin"          # Store administrator / shop manager
    CUSTOMER = "customer"    # Logged-in customer
    GUEST = "guest"          # Unauthenticated visitor
    SYSTEM = "system"        # Scheduled jobs and internal callers


class AuditStatus(str, Enum):
    """Outcome recorded for a dispatch attempt."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AuditRecord(BaseModel):
    """
    One audit log entry.

    ``parameters`` and ``result`` hold arbitrary JSON-compatible payloads;
    the store encodes them as text. ``id`` is assigned by the store.
    """
    id: Optional[int] = None
    actor_id: int = 0
    actor_type: ActorType = ActorType.GUEST

    # What happened
    action_type: str
    action_category: str
    description: str = ""
    ability_id: Optional[str] = None
    parameters: Optional[Any] = None
    result: Optional[Any] = None
    status: AuditStatus = AuditStatus.PENDING

    # Request origin
    ip_address: Optional[str] = None
    session_id: Optional[str] = None

    # Denormalized object reference
    object_type: Optional[str] = None
    object_id: Optional[int] = None

    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    model_config = {"frozen": True}


class CategoryCount(BaseModel):
    category: str
    count: int


class DailyCount(BaseModel):
    date: str  # YYYY-MM-DD (UTC)
    count: int


class AuditStatistics(BaseModel):
    """Aggregates over the records created in the last ``period_days``."""
    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_category: list[CategoryCount] = Field(default_factory=list)
    by_actor_type: dict[str, int] = Field(default_factory=dict)
    daily_trend: list[DailyCount] = Field(default_factory=list)
    period_days: int = 30


class AuditFilters(BaseModel):
    """
    Optional, AND-combined filters for audit queries.

    ``search`` is a case-insensitive substring match against the
    description or the ability id.
    """
    record_id: Optional[int] = None
    actor_id: Optional[int] = None
    actor_type: Optional[ActorType] = None
    action_type: Optional[str] = None
    action_category: Optional[str] = None
    status: Optional[AuditStatus] = None
    object_type: Optional[str] = None
    object_id: Optional[int] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None

    @field_validator("action_type", "action_category", "object_type", "search", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value
