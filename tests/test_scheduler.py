"""
Test wall-clock aligned interval scheduling.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
import math

import pytest

from engine.scheduler import OutputScheduler


def test_jobs_wait_for_clock_start(clock):
    scheduler = OutputScheduler(clock=clock)
    fired = []
    job = scheduler.every("tick", 10, fired.append)
    assert job.next_due == math.inf
    clock.advance(100)
    assert scheduler.run_due() == 0


def test_ticks_aligned_to_start(clock):
    scheduler = OutputScheduler(clock=clock)
    fired = []
    scheduler.every("tick", 10, fired.append)
    scheduler.start_clock()
    start = clock()

    clock.advance(9)
    assert scheduler.run_due() == 0
    clock.advance(1)
    assert scheduler.run_due() == 1
    clock.advance(3)
    assert scheduler.run_due() == 0
    clock.advance(7)
    assert scheduler.run_due() == 1
    assert fired == [start + 10, start + 20]


def test_tick_with_no_data_still_fires(clock):
    scheduler = OutputScheduler(clock=clock)
    calls = []
    scheduler.every("snapshot", 5, lambda now: calls.append(now))
    scheduler.start_clock()
    for _ in range(3):
        clock.advance(5)
        scheduler.run_due()
    assert len(calls) == 3


def test_late_job_fires_once_and_skips_missed_ticks(clock):
    scheduler = OutputScheduler(clock=clock)
    calls = []
    job = scheduler.every("tick", 10, calls.append)
    scheduler.start_clock()
    start = clock()
    clock.advance(35)
    assert scheduler.run_due() == 1
    assert job.skipped == 2
    assert job.next_due == start + 40


def test_job_added_after_start_is_aligned(clock):
    scheduler = OutputScheduler(clock=clock)
    scheduler.start_clock()
    start = clock()
    clock.advance(12)
    job = scheduler.every("late", 5, lambda now: None)
    assert job.next_due == start + 15


def test_failing_action_is_logged_not_raised(clock):
    scheduler = OutputScheduler(clock=clock)

    def boom(now):
        raise RuntimeError("broken")

    job = scheduler.every("boom", 1, boom)
    scheduler.start_clock()
    clock.advance(1)
    assert scheduler.run_due() == 0
    assert job.failures == 1
    clock.advance(1)
    scheduler.run_due()
    assert job.failures == 2


def test_invalid_interval_rejected(clock):
    with pytest.raises(ValueError):
        OutputScheduler(clock=clock).every("bad", 0, lambda now: None)


def test_cancel_and_next_delay(clock):
    scheduler = OutputScheduler(clock=clock, idle_seconds=1.0)
    scheduler.every("tick", 0.25, lambda now: None)
    scheduler.start_clock()
    assert scheduler.next_delay() == pytest.approx(0.25)
    scheduler.cancel("tick")
    assert scheduler.jobs() == []
    assert scheduler.next_delay() == 1.0


@pytest.mark.asyncio
async def test_start_and_stop_background_task():
    calls = []
    scheduler = OutputScheduler(idle_seconds=0.01)
    scheduler.every("tick", 0.01, calls.append)
    await scheduler.start()
    assert scheduler.running
    await asyncio.sleep(0.1)
    await scheduler.stop()
    assert not scheduler.running
    assert calls
