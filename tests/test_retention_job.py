"""
Test Audit Retention Job
"""

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from assistify_agent.data.models.audit import utc_now
from assistify_agent.data.repos.base import StoreError
from assistify_agent.jobs.retention import RetentionJob


class TestRunOnce:

    def test_deletes_expired_records(self, repository, make_record):
        now = utc_now()
        repository.insert(make_record(created_at=now - timedelta(days=120)))
        repository.insert(make_record(created_at=now - timedelta(days=1)))

        job = RetentionJob(repository, retention_days=90)

        assert job.run_once() == 1
        assert job.last_deleted == 1
        assert job.runs == 1
        assert repository.count() == 1


class TestScheduling:

    @pytest.mark.asyncio
    async def test_start_runs_cleanup_and_stop_cancels(self, repository):
        job = RetentionJob(repository, retention_days=90, interval_seconds=3600)

        job.start()
        assert job.is_running
        for _ in range(50):
            if job.runs:
                break
            await asyncio.sleep(0.01)

        await job.stop()

        assert job.runs == 1
        assert not job.is_running

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, repository):
        job = RetentionJob(repository, interval_seconds=3600)

        job.start()
        task = job._task
        job.start()

        assert job._task is task
        await job.stop()

    @pytest.mark.asyncio
    async def test_store_errors_do_not_stop_the_loop(self):
        repository = MagicMock()
        repository.cleanup.side_effect = StoreError("database is locked")
        job = RetentionJob(repository, interval_seconds=0.01)

        job.start()
        for _ in range(100):
            if repository.cleanup.call_count >= 2:
                break
            await asyncio.sleep(0.01)

        assert job.is_running
        await job.stop()
        assert repository.cleanup.call_count >= 2

    @pytest.mark.asyncio
    async def test_stop_without_start(self, repository):
        await RetentionJob(repository).stop()

    @pytest.mark.asyncio
    async def test_unexpected_errors_do_not_stop_the_loop(self):
        repository = MagicMock()
        repository.cleanup.side_effect = ValueError("retention_days must be >= 0")
        job = RetentionJob(repository, retention_days=-1, interval_seconds=0.01)

        job.start()
        for _ in range(100):
            if repository.cleanup.call_count >= 2:
                break
            await asyncio.sleep(0.01)

        assert job.is_running
        await job.stop()
        assert repository.cleanup.call_count >= 2
        assert not job.is_running
