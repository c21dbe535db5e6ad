"""Repositories for audit persistence."""

from .base import Repository, StoreError, TIMESTAMP_FORMAT, format_timestamp, parse_timestamp
from .audit import AuditRepository, CSV_HEADER, SORT_KEYS, resolve_order

__all__ = [
    "Repository",
    "StoreError",
    "TIMESTAMP_FORMAT",
    "format_timestamp",
    "parse_timestamp",
    "AuditRepository",
    "CSV_HEADER",
    "SORT_KEYS",
    "resolve_order",
]
