"""
Queues KPI outputs and publishes them off the admission path.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from typing import Any, Dict, Optional

from config import settings
from connectors.base import Publisher
from connectors.bus import BusPublisher, LogPublisher
from connectors.exceptions import PublishError
from engine.base import Output
from store import outputs as output_store

log = logging.getLogger(__name__)


class OutputDispatcher:
    """Hands engine outputs to publishers without blocking the engine.

    ``submit`` may be called from any thread; the output is queued on the
    dispatcher's event loop and published by a single background task.
    """

    def __init__(
        self,
        bus: Optional[Publisher] = None,
        fallback: Optional[Publisher] = None,
        queue_size: Optional[int] = None,
        drain_timeout: float = 5.0,
    ) -> None:
        self._bus = bus or BusPublisher()
        self._fallback = fallback or LogPublisher()
        self._queue_size = settings.dispatcher_queue_size if queue_size is None else queue_size
        self._drain_timeout = drain_timeout
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._counters: Dict[str, int] = {"submitted": 0, "published": 0, "failed": 0, "dropped": 0}
        self._counter_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _count(self, key: str) -> None:
        with self._counter_lock:
            self._counters[key] += 1

    def stats(self) -> Dict[str, Any]:
        with self._counter_lock:
            counters = dict(self._counters)
        counters["queued"] = self._queue.qsize() if self._queue is not None else 0
        return counters

    async def start(self) -> None:
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._task = asyncio.create_task(self._run())

    def submit(self, output: Output) -> None:
        loop = self._loop
        if loop is None or self._task is None or loop.is_closed():
            self._count("dropped")
            log.debug("Dispatcher not running; dropping output of %s", getattr(output, "kpi", "?"))
            return
        self._count("submitted")
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._enqueue(output)
        else:
            loop.call_soon_threadsafe(self._enqueue, output)

    def _enqueue(self, output: Output) -> None:
        if self._queue is None:
            self._count("dropped")
            return
        try:
            self._queue.put_nowait(output)
        except asyncio.QueueFull:
            self._count("dropped")
            log.warning("Output queue full; dropping output of KPI %s", output.kpi)

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            output = await self._queue.get()
            try:
                await self.deliver(output)
            finally:
                self._queue.task_done()

    async def deliver(self, output: Output) -> None:
        payload = output.to_payload()
        publisher = self._bus if output.server else self._fallback
        try:
            await publisher.publish(output.publication_id, output.server, payload)
            self._count("published")
        except PublishError as exc:
            self._count("failed")
            log.warning("Publishing %s for KPI %s failed: %s", output.name, output.kpi, exc)
        except Exception:
            self._count("failed")
            log.exception("Unexpected error publishing %s for KPI %s", output.name, output.kpi)
        await output_store.save_latest(output.kpi, payload)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            if self._queue is not None:
                try:
                    await asyncio.wait_for(self._queue.join(), timeout=self._drain_timeout)
                except asyncio.TimeoutError:
                    log.warning("Output queue not drained within %.1fs; %d outputs lost",
                                self._drain_timeout, self._queue.qsize())
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._loop = None
        await self._bus.aclose()
        await self._fallback.aclose()
