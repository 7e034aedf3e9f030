"""Interval and cron-based scheduler for the reconciliation jobs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiosqlite
from croniter import croniter

from selfpm.jobs.base import Job, SweepReport
from selfpm.utils.logging import get_logger

log = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS job_runs (
    name TEXT PRIMARY KEY,
    last_run TEXT NOT NULL,
    processed INTEGER NOT NULL,
    failures INTEGER NOT NULL
);
"""

CRON_POLL_SECONDS = 30


@dataclass
class Schedule:
    """When a job runs: every ``interval`` seconds, or on a cron expression."""

    job: Job
    interval: float | None = None
    cron: str | None = None
    initial_delay: float = 0.0

    def __post_init__(self) -> None:
        if (self.interval is None) == (self.cron is None):
            raise ValueError(f"{self.job.name}: give exactly one of interval or cron")
        if self.cron is not None and not croniter.is_valid(self.cron):
            raise ValueError(f"Invalid cron expression: {self.cron}")

    @property
    def description(self) -> str:
        if self.cron is not None:
            return f"cron {self.cron}"
        return f"every {self.interval:g}s"


@dataclass
class JobState:
    name: str
    schedule: str
    last_run: datetime | None
    processed: int
    failures: int


def _now() -> datetime:
    # Local time, like the cron expressions are written in
    return datetime.now().astimezone()


class Scheduler:
    def __init__(self, schedules: list[Schedule], data_dir: Path) -> None:
        names = [s.job.name for s in schedules]
        if len(names) != len(set(names)):
            raise ValueError("Job names must be unique")
        self._schedules = schedules
        self._data_dir = data_dir
        self._db: aiosqlite.Connection | None = None
        self._running = False
        self._started_at: datetime | None = None
        self._tasks: list[asyncio.Task[None]] = []

    async def start(self) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self._data_dir / "scheduler.db"))
        await self._db.executescript(_SCHEMA)
        await self._db.commit()

        self._running = True
        self._started_at = _now()
        for schedule in self._schedules:
            loop = self._cron_loop if schedule.cron is not None else self._interval_loop
            self._tasks.append(
                asyncio.create_task(loop(schedule), name=f"job-{schedule.job.name}")
            )
            log.info("job_scheduled", job=schedule.job.name, schedule=schedule.description)
        log.info("scheduler_started", jobs=len(self._schedules))

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        if self._db:
            await self._db.close()
            self._db = None

    async def run_job(self, job: Job) -> SweepReport:
        """Run one sweep in a worker thread and record its outcome."""
        log.info("job_starting", job=job.name)
        started = _now()
        report = await asyncio.to_thread(job.run)
        await self._record(job.name, started, report)
        log.info(
            "job_finished",
            job=job.name,
            processed=report.processed,
            failures=len(report.failures),
        )
        return report

    # Each job has its own loop; a run is never started while the previous
    # one of the same job is still going.

    async def _interval_loop(self, schedule: Schedule) -> None:
        assert schedule.interval is not None
        await asyncio.sleep(schedule.initial_delay)
        loop = asyncio.get_running_loop()
        while self._running:
            started = loop.time()
            try:
                await self.run_job(schedule.job)
            except Exception:
                log.exception("job_run_error", job=schedule.job.name)
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, schedule.interval - elapsed))

    async def _cron_loop(self, schedule: Schedule) -> None:
        await asyncio.sleep(schedule.initial_delay)
        while self._running:
            try:
                if await self._cron_due(schedule):
                    await self.run_job(schedule.job)
            except Exception:
                log.exception("job_run_error", job=schedule.job.name)
            await asyncio.sleep(CRON_POLL_SECONDS)

    async def _cron_due(self, schedule: Schedule) -> bool:
        assert schedule.cron is not None
        last_run = await self._last_run(schedule.job.name)
        # A job that never ran counts from scheduler start, so a restart
        # does not fire it right away.
        base = last_run or self._started_at or _now()
        next_time = croniter(schedule.cron, base).get_next(datetime)
        return next_time <= _now()

    async def _last_run(self, name: str) -> datetime | None:
        assert self._db is not None
        cursor = await self._db.execute(
            "SELECT last_run FROM job_runs WHERE name = ?", (name,)
        )
        row = await cursor.fetchone()
        return datetime.fromisoformat(row[0]) if row else None

    async def _record(self, name: str, started: datetime, report: SweepReport) -> None:
        if self._db is None:
            return
        await self._db.execute(
            "INSERT INTO job_runs (name, last_run, processed, failures) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(name) DO UPDATE SET last_run = excluded.last_run, "
            "processed = excluded.processed, failures = excluded.failures",
            (name, started.isoformat(), report.processed, len(report.failures)),
        )
        await self._db.commit()

    async def list_jobs(self) -> list[JobState]:
        assert self._db is not None
        cursor = await self._db.execute(
            "SELECT name, last_run, processed, failures FROM job_runs"
        )
        rows = {row[0]: row for row in await cursor.fetchall()}
        states = []
        for schedule in self._schedules:
            row = rows.get(schedule.job.name)
            states.append(
                JobState(
                    name=schedule.job.name,
                    schedule=schedule.description,
                    last_run=datetime.fromisoformat(row[1]) if row else None,
                    processed=row[2] if row else 0,
                    failures=row[3] if row else 0,
                )
            )
        return states
