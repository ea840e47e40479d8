"""
Shared plumbing for KPI engines: clock stamping, drop counters, and hand-off of outputs to the publishing sink.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
import time
from typing import Any, Callable, Dict, List, Optional, Union

from engine.enums import KpiKind
from engine.errors import ConfigurationError
from engine.models import AggregateSnapshotEvent, CorrelatedEvent, Event
from engine.window import WindowStore

log = logging.getLogger(__name__)

Output = Union[CorrelatedEvent, AggregateSnapshotEvent]
Sink = Callable[[Output], None]

_COUNTERS = (
    "admitted",
    "dropped_unknown",
    "dropped_late",
    "dropped_malformed",
    "filtered",
    "emitted",
    "sink_errors",
)


class KpiEngine(ABC):
    kind: KpiKind

    def __init__(
        self,
        name: str,
        sink: Optional[Sink] = None,
        clock: Callable[[], float] = time.time,
        publication_id: str = "",
        server: str = "",
    ) -> None:
        if not str(name or "").strip():
            raise ConfigurationError("KPI name is required")
        self.name = name
        self.publication_id = publication_id or name
        self.server = server
        self._sink = sink
        self._clock = clock
        self._counters: Dict[str, int] = {key: 0 for key in _COUNTERS}
        self._counter_lock = threading.Lock()
        self._store: WindowStore

    @property
    def store(self) -> WindowStore:
        return self._store

    @property
    def declared_types(self) -> set[str]:
        return self._store.type_names

    def declares(self, type_name: str) -> bool:
        return self._store.declares(type_name)

    def now(self) -> float:
        return self._clock()

    def _count(self, key: str, amount: int = 1) -> None:
        with self._counter_lock:
            self._counters[key] += amount

    def _stamp(self, event: Event, now: float) -> Event:
        if event.arrival_timestamp is None:
            return event.stamped(now)
        return event

    def _emit(self, outputs: List[Output]) -> None:
        if not outputs:
            return
        self._count("emitted", len(outputs))
        if self._sink is None:
            return
        for output in outputs:
            try:
                self._sink(output)
            except Exception as exc:
                self._count("sink_errors")
                log.warning("KPI %s: output sink failed: %s", self.name, exc, exc_info=True)

    @abstractmethod
    def admit(self, event: Event) -> List[Output]: ...

    def sweep(self, now: Optional[float] = None) -> int:
        return self._store.sweep(self.now() if now is None else now)

    def close(self) -> None:
        self._store.close()

    def stats(self) -> Dict[str, Any]:
        with self._counter_lock:
            counters = dict(self._counters)
        return {
            "kind": self.kind.value,
            "publication_id": self.publication_id,
            "server": self.server,
            "types": sorted(self.declared_types),
            "windows": self._store.sizes(),
            "counters": counters,
        }
