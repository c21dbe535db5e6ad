"""
Audit Retention Job

Deletes audit records older than the configured retention period,
once on demand or on a recurring interval inside the server's event loop.
"""

import asyncio
import logging
from typing import Optional

from ..data.repos.audit import AuditRepository
from ..data.repos.base import StoreError

logger = logging.getLogger(__name__)


class RetentionJob:
    """Scheduled ``cleanup(retention_days)`` over the audit store."""

    def __init__(
        self,
        repository: AuditRepository,
        retention_days: int = 90,
        interval_seconds: float = 24 * 60 * 60,
    ):
        self.repository = repository
        self.retention_days = retention_days
        self.interval_seconds = interval_seconds
        self.last_deleted: Optional[int] = None
        self.runs = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        """Run one cleanup pass; returns rows deleted"""
        deleted = self.repository.cleanup(self.retention_days)
        self.last_deleted = deleted
        self.runs += 1
        return deleted

    async def _loop(self) -> None:
        while True:
            try:
                await asyncio.to_thread(self.run_once)
            except StoreError as e:
                logger.error(f"Audit retention cleanup failed: {e}")
            except Exception:
                logger.exception("Audit retention cleanup raised")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Start the recurring cleanup on the running event loop"""
        if self.is_running:
            return
        logger.info(
            f"Starting audit retention job: {self.retention_days} days, "
            f"every {self.interval_seconds:.0f}s"
        )
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Audit retention job stopped")
