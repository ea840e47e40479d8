"""
Process-wide KPI runtime: definition loading, event routing, and engine lifecycle.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from config import settings
from engine.aggregation import AggregationEngine
from engine.base import KpiEngine
from engine.enums import Trigger
from engine.errors import ConfigurationError
from engine.kpi import build_engine, load_definitions
from engine.models import Event
from engine.scheduler import OutputScheduler
from services.dispatcher import OutputDispatcher

log = logging.getLogger(__name__)

DefinitionSource = Union[str, Path, Mapping[str, Any], Sequence[Any]]


class KpiRuntime:
    """Owns every KPI engine of the process together with the scheduler and dispatcher.

    Events are routed by type name to each engine declaring that type; every
    engine keeps its own windows, so KPIs never share mutable state.
    """

    def __init__(
        self,
        dispatcher: Optional[OutputDispatcher] = None,
        scheduler: Optional[OutputScheduler] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._clock = clock
        self.dispatcher = dispatcher or OutputDispatcher()
        self.scheduler = scheduler or OutputScheduler(clock=clock)
        self._engines: Dict[str, KpiEngine] = {}
        self._routes: Dict[str, List[KpiEngine]] = {}
        self.failures: Dict[str, str] = {}
        self._unknown_events = 0
        self._rejected_events = 0
        self._inflight = 0
        self._accepting = False
        self._started = False
        self._gate = threading.Condition()

    @property
    def started(self) -> bool:
        return self._started

    @property
    def engines(self) -> Dict[str, KpiEngine]:
        return dict(self._engines)

    def engine(self, name: str) -> KpiEngine:
        return self._engines[name]

    def configure(self, source: DefinitionSource) -> None:
        try:
            result = load_definitions(source)
        except ConfigurationError as exc:
            log.error("KPI definitions unusable: %s", exc)
            self.failures["<definitions>"] = str(exc)
            return
        for label, exc in result.failures.items():
            self.failures[label] = str(exc)
        for definition in result.definitions:
            try:
                engine = build_engine(definition, sink=self.dispatcher.submit, clock=self._clock)
            except ConfigurationError as exc:
                log.error("KPI %s not activated: %s", definition.name, exc)
                self.failures[definition.name] = str(exc)
                continue
            self.add_engine(engine)

    def add_engine(self, engine: KpiEngine) -> None:
        if engine.name in self._engines:
            raise ConfigurationError("duplicate KPI name", kpi=engine.name)
        self._engines[engine.name] = engine
        for type_name in engine.declared_types:
            self._routes.setdefault(type_name, []).append(engine)
        if self._started:
            self._schedule(engine)
        log.info("KPI %s activated (%s, types=%s)", engine.name, engine.kind.value, sorted(engine.declared_types))

    def _schedule(self, engine: KpiEngine) -> None:
        sweep_every = min(engine.store.smallest_window_seconds, settings.sweep_interval_max_seconds)
        self.scheduler.every(f"{engine.name}:sweep", sweep_every, engine.sweep)
        if isinstance(engine, AggregationEngine) and engine.spec.trigger is Trigger.interval:
            self.scheduler.every(f"{engine.name}:snapshot", engine.spec.output_seconds, engine.emit_snapshot)

    def admit(self, event: Event) -> int:
        """Route one inbound event; returns how many engines received it."""
        targets = self._routes.get(event.type_name)
        if not targets:
            with self._gate:
                self._unknown_events += 1
            log.debug("No KPI declares event type %s; dropped", event.type_name)
            return 0
        with self._gate:
            if not self._accepting:
                self._rejected_events += 1
                return 0
            self._inflight += 1
        try:
            if event.arrival_timestamp is None:
                event = event.stamped(self._clock())
            for engine in targets:
                try:
                    engine.admit(event)
                except Exception:
                    log.exception("KPI %s failed to process %s event", engine.name, event.type_name)
            return len(targets)
        finally:
            with self._gate:
                self._inflight -= 1
                if self._inflight == 0:
                    self._gate.notify_all()

    async def start(self) -> None:
        if self._started:
            return
        await self.dispatcher.start()
        for engine in self._engines.values():
            self._schedule(engine)
        await self.scheduler.start()
        with self._gate:
            self._accepting = True
        self._started = True
        log.info("KPI runtime started: %d active, %d failed", len(self._engines), len(self.failures))

    def _drain(self, timeout: float) -> bool:
        with self._gate:
            return self._gate.wait_for(lambda: self._inflight == 0, timeout=timeout)

    async def stop(self, drain_timeout: float = 5.0) -> None:
        """Stop scheduling, let in-flight admissions finish, then release windows."""
        with self._gate:
            self._accepting = False
        await self.scheduler.stop()
        if not await asyncio.to_thread(self._drain, drain_timeout):
            log.warning("In-flight admissions still running after %.1fs", drain_timeout)
        for engine in self._engines.values():
            engine.close()
        await self.dispatcher.stop()
        self._started = False
        log.info("KPI runtime stopped")

    def status(self) -> Dict[str, Any]:
        with self._gate:
            unknown, rejected = self._unknown_events, self._rejected_events
        return {
            "started": self._started,
            "kpis": {name: engine.stats() for name, engine in self._engines.items()},
            "failed": dict(self.failures),
            "unknown_events": unknown,
            "rejected_events": rejected,
            "dispatcher": self.dispatcher.stats(),
        }


_runtime: Optional[KpiRuntime] = None


def get_runtime() -> KpiRuntime:
    global _runtime
    if _runtime is None:
        _runtime = KpiRuntime()
    return _runtime


def set_runtime(runtime: Optional[KpiRuntime]) -> None:
    global _runtime
    _runtime = runtime
