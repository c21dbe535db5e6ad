"""Data models for the audit log."""

from .audit import (
    ActorType,
    AuditFilters,
    AuditRecord,
    AuditStatistics,
    AuditStatus,
    CategoryCount,
    DailyCount,
    utc_now,
)

__all__ = [
    "ActorType",
    "AuditFilters",
    "AuditRecord",
    "AuditStatistics",
    "AuditStatus",
    "CategoryCount",
    "DailyCount",
    "utc_now",
]
