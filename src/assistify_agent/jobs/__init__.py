"""Background jobs."""

from .retention import RetentionJob

__all__ = ["RetentionJob"]
