"""
Output scheduler: a single asyncio task firing interval jobs (Calculator snapshots and window sweeps) on ticks aligned to the scheduler's start time rather than to event arrival.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from config import settings

log = logging.getLogger(__name__)


@dataclass
class ScheduledJob:
    name: str
    interval: float
    action: Callable[[float], Any]
    next_due: float = math.inf
    fired: int = 0
    failures: int = 0
    skipped: int = 0


class OutputScheduler:
    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        idle_seconds: Optional[float] = None,
    ) -> None:
        self._clock = clock
        self._idle = settings.scheduler_idle_seconds if idle_seconds is None else idle_seconds
        self._jobs: Dict[str, ScheduledJob] = {}
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None
        self._started_at: Optional[float] = None

    @property
    def started_at(self) -> Optional[float]:
        return self._started_at

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def jobs(self) -> List[ScheduledJob]:
        with self._lock:
            return list(self._jobs.values())

    def _align(self, job: ScheduledJob, now: float) -> None:
        if self._started_at is None:
            job.next_due = math.inf
            return
        elapsed = max(0.0, now - self._started_at)
        ticks = math.floor(elapsed / job.interval) + 1
        job.next_due = self._started_at + ticks * job.interval

    def every(self, name: str, interval: float, action: Callable[[float], Any]) -> ScheduledJob:
        if interval <= 0:
            raise ValueError(f"interval for job {name!r} must be positive")
        job = ScheduledJob(name=name, interval=float(interval), action=action)
        with self._lock:
            self._align(job, self._clock())
            self._jobs[name] = job
        return job

    def cancel(self, name: str) -> None:
        with self._lock:
            self._jobs.pop(name, None)

    def start_clock(self, now: Optional[float] = None) -> None:
        with self._lock:
            self._started_at = self._clock() if now is None else now
            for job in self._jobs.values():
                self._align(job, self._started_at)

    def run_due(self, now: Optional[float] = None) -> int:
        """Fire every job whose tick has arrived; returns how many fired.

        A job that fell behind by several ticks fires once and resumes on the
        next aligned tick.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            due = [job for job in self._jobs.values() if job.next_due <= now]
        fired = 0
        for job in due:
            try:
                job.action(now)
                job.fired += 1
                fired += 1
            except Exception:
                job.failures += 1
                log.exception("Scheduled job %s failed", job.name)
            missed = math.floor((now - job.next_due) / job.interval)
            if missed > 0:
                job.skipped += missed
                log.debug("Scheduled job %s skipped %d ticks", job.name, missed)
            with self._lock:
                self._align(job, now)
        return fired

    def next_delay(self, now: Optional[float] = None) -> float:
        if now is None:
            now = self._clock()
        with self._lock:
            upcoming = min((job.next_due for job in self._jobs.values()), default=math.inf)
        return max(0.0, min(upcoming - now, self._idle))

    async def _run(self) -> None:
        while True:
            self.run_due()
            await asyncio.sleep(self.next_delay())

    async def start(self) -> None:
        if self.running:
            return
        self.start_clock()
        self._task = asyncio.create_task(self._run())
        log.info("Output scheduler started with %d jobs", len(self._jobs))

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        log.info("Output scheduler stopped")
