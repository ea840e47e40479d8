"""
Aggregation engine for the Calculator KPI pattern: joins a start stream and an end stream on their correlation keys inside their time windows and keeps population mean and standard deviation of ``end.value - start.value`` over the pairs that are still live.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, List, Optional

from config import CALCULATOR_KEY_FIELD, CALCULATOR_VALUE_FIELD
from engine.aggregation.state import AggregateState
from engine.base import KpiEngine, Output, Sink
from engine.enums import KpiKind, Trigger
from engine.matching import matches
from engine.models import AggregateSnapshotEvent, AggregateSpec, Event
from engine.window import WindowEntry, WindowStore

log = logging.getLogger(__name__)


class AggregationEngine(KpiEngine):
    """Calculator over a start/end stream pair.

    Both windows and the aggregate share one guard. Pairing reads the
    opposite window and folds, while eviction from either window retracts
    under the window lock, so a single guard taken before any window lock
    keeps the lock order fixed. Different KPIs never share it.
    """

    kind = KpiKind.calculator

    def __init__(
        self,
        name: str,
        spec: AggregateSpec,
        sink: Optional[Sink] = None,
        clock: Callable[[], float] = time.time,
        publication_id: str = "",
        server: str = "",
    ) -> None:
        super().__init__(name, sink=sink, clock=clock, publication_id=publication_id, server=server)
        self.spec = spec
        self._lock = threading.RLock()
        self._state = AggregateState()
        self._store = WindowStore(
            {spec.start.type_name: spec.start, spec.end.type_name: spec.end},
            clock=clock,
            on_evict=self._on_evict,
        )

    @property
    def state(self) -> AggregateState:
        return self._state

    def _on_evict(self, name: str, entries: List[WindowEntry]) -> None:
        with self._lock:
            self._state.retract(entry.seq for entry in entries)

    def _pair(self, entry: WindowEntry, now: float) -> int:
        event = entry.event
        mode = self.spec.match_mode
        value = event.value(CALCULATOR_VALUE_FIELD)
        folded = 0
        if event.type_name == self.spec.start.type_name:
            partners = self._store.entries(self.spec.end.type_name, lambda other: matches(other, event, mode), now)
            for partner in partners:
                if self._state.fold(entry.seq, partner.seq, partner.event.value(CALCULATOR_VALUE_FIELD) - value):
                    folded += 1
        else:
            partners = self._store.entries(self.spec.start.type_name, lambda other: matches(other, event, mode), now)
            for partner in partners:
                if self._state.fold(partner.seq, entry.seq, value - partner.event.value(CALCULATOR_VALUE_FIELD)):
                    folded += 1
        return folded

    def admit(self, event: Event) -> List[Output]:
        now = self.now()
        if not self.declares(event.type_name):
            self._count("dropped_unknown")
            log.debug("KPI %s: dropping event of undeclared type %s", self.name, event.type_name)
            return []
        try:
            finite = math.isfinite(event.value(CALCULATOR_VALUE_FIELD))
        except (KeyError, TypeError, ValueError):
            finite = False
        if not finite:
            self._count("dropped_malformed")
            log.debug("KPI %s: %s event without finite numeric %r", self.name, event.type_name, CALCULATOR_VALUE_FIELD)
            return []
        event = self._stamp(event.keyed(CALCULATOR_KEY_FIELD), now)

        with self._lock:
            entries = self._store.admit(event, now)
            if not entries:
                self._count("dropped_late")
                return []
            self._count("admitted")
            folded = self._pair(entries[0], now)

        if folded and self.spec.trigger is Trigger.immediate:
            outputs: List[Output] = [self.snapshot(now)]
            self._emit(outputs)
            return outputs
        return []

    def sweep(self, now: Optional[float] = None) -> int:
        with self._lock:
            return super().sweep(now)

    def snapshot(self, now: Optional[float] = None) -> AggregateSnapshotEvent:
        """Aggregate over the pairs whose both events are inside their windows at ``now``."""
        if now is None:
            now = self.now()
        with self._lock:
            self._store.sweep(now)
            snap = self._state.snapshot()
        return AggregateSnapshotEvent(
            kpi=self.name,
            name=self.spec.output_name,
            timestamp=now,
            avg=snap.avg,
            stddev=snap.stddev,
            count=snap.count,
            publication_id=self.publication_id,
            server=self.server,
        )

    def emit_snapshot(self, now: Optional[float] = None) -> AggregateSnapshotEvent:
        output = self.snapshot(now)
        self._emit([output])
        return output

    def close(self) -> None:
        with self._lock:
            super().close()
            self._state.clear()
