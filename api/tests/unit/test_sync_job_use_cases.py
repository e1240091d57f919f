"""
Tests de los jobs de sync en background (estado observable por polling).
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from storemap.application.use_cases.sync_job_use_cases import JOB_RETENTION, SyncJobUseCases, _JobState
from storemap.application.use_cases.sync_use_cases import SyncResult
from storemap.domain.entities.store import SyncMode


class _FakeRunner:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.release = asyncio.Event()
        self.modes = []

    async def run(self, mode: SyncMode) -> SyncResult:
        self.modes.append(mode)
        await self.release.wait()
        if self.error:
            raise self.error
        return SyncResult(mode=mode, stores_saved=2, shipments_saved=4)


async def _wait_until_done(use_cases: SyncJobUseCases, job_id: str):
    for _ in range(100):
        job = await use_cases.get_job(job_id)
        if job.status != "running":
            return job
        await asyncio.sleep(0.01)
    raise AssertionError("el job no terminó")


@pytest.mark.asyncio
async def test_start_returns_running_job_immediately_then_succeeds() -> None:
    runner = _FakeRunner()
    use_cases = SyncJobUseCases(runner)

    job = await use_cases.start(SyncMode.INCREMENTAL)
    assert job.status == "running"
    assert job.mode == "incremental"

    runner.release.set()
    done = await _wait_until_done(use_cases, job.job_id)

    assert done.status == "success"
    assert done.completed_at is not None
    assert "4 despachos" in done.message
    assert runner.modes == [SyncMode.INCREMENTAL]


@pytest.mark.asyncio
async def test_failed_job_exposes_error() -> None:
    runner = _FakeRunner(RuntimeError("planilla privada"))
    use_cases = SyncJobUseCases(runner)

    job = await use_cases.start(SyncMode.FULL)
    runner.release.set()
    done = await _wait_until_done(use_cases, job.job_id)

    assert done.status == "failed"
    assert done.error == "planilla privada"


@pytest.mark.asyncio
async def test_unknown_job_raises_key_error() -> None:
    with pytest.raises(KeyError):
        await SyncJobUseCases(_FakeRunner()).get_job("no-existe")


def _old_job(job_id: str, status: str, completed: bool) -> _JobState:
    long_ago = datetime.now(timezone.utc) - JOB_RETENTION - timedelta(hours=1)
    return _JobState(
        job_id=job_id,
        mode="full",
        status=status,
        message="",
        created_at=long_ago,
        updated_at=long_ago,
        completed_at=long_ago if completed else None,
    )


@pytest.mark.asyncio
async def test_start_evicts_jobs_finished_long_ago() -> None:
    SyncJobUseCases._jobs["job-viejo"] = _old_job("job-viejo", "success", completed=True)
    SyncJobUseCases._jobs["job-colgado"] = _old_job("job-colgado", "running", completed=False)
    runner = _FakeRunner()
    use_cases = SyncJobUseCases(runner)

    job = await use_cases.start(SyncMode.INCREMENTAL)
    try:
        with pytest.raises(KeyError):
            await use_cases.get_job("job-viejo")
        assert (await use_cases.get_job("job-colgado")).status == "running"
        assert (await use_cases.get_job(job.job_id)).status == "running"
    finally:
        runner.release.set()
        await _wait_until_done(use_cases, job.job_id)
        SyncJobUseCases._jobs.pop("job-colgado", None)
