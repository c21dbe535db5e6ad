"""
Data layer for the Assistify agent.

Contains the audit record models and the SQLite repository that stores
and queries them.
"""

from .models import ActorType, AuditFilters, AuditRecord, AuditStatistics, AuditStatus
from .repos import AuditRepository

__all__ = [
    "ActorType",
    "AuditFilters",
    "AuditRecord",
    "AuditStatistics",
    "AuditStatus",
    "AuditRepository",
]
