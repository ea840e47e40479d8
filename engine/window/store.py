"""
Sliding time windows holding recently admitted events per declared stream, with lazy pruning on admission and a periodic sweep that reports evicted entries to an optional listener.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import itertools
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Mapping, Optional

from engine.errors import UnknownEventType
from engine.models import Event, EventSpec

Predicate = Callable[[Event], bool]
EvictListener = Callable[[str, List["WindowEntry"]], None]


@dataclass(frozen=True)
class WindowEntry:
    seq: int
    timestamp: float
    event: Event


class Window:
    """Time-ordered buffer for one EventSpec.

    Every mutation and every read happens under the window's own lock, so a
    reader never observes a partially pruned or partially inserted buffer.
    """

    def __init__(self, name: str, spec: EventSpec, on_evict: Optional[EvictListener] = None) -> None:
        self.name = name
        self.spec = spec
        self._entries: Deque[WindowEntry] = deque()
        self._lock = threading.RLock()
        self._on_evict = on_evict

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def _cutoff(self, now: float) -> float:
        return now - self.spec.window_seconds

    def _evict(self, now: float) -> List[WindowEntry]:
        cutoff = self._cutoff(now)
        evicted: List[WindowEntry] = []
        while self._entries and self._entries[0].timestamp < cutoff:
            evicted.append(self._entries.popleft())
        if evicted and self._on_evict is not None:
            self._on_evict(self.name, evicted)
        return evicted

    def admit(self, event: Event, seq: int, now: float) -> Optional[WindowEntry]:
        ts = event.arrival_timestamp if event.arrival_timestamp is not None else now
        with self._lock:
            self._evict(now)
            if ts < self._cutoff(now):
                return None
            entry = WindowEntry(seq=seq, timestamp=ts, event=event)
            if not self._entries or ts >= self._entries[-1].timestamp:
                self._entries.append(entry)
                return entry
            # out of order but still in window; late arrivals land near the tail
            idx = len(self._entries)
            while idx > 0 and self._entries[idx - 1].timestamp > ts:
                idx -= 1
            self._entries.insert(idx, entry)
            return entry

    def entries(self, now: float, predicate: Optional[Predicate] = None) -> List[WindowEntry]:
        cutoff = self._cutoff(now)
        with self._lock:
            return [
                e for e in self._entries
                if e.timestamp >= cutoff and (predicate is None or predicate(e.event))
            ]

    def sweep(self, now: float) -> List[WindowEntry]:
        with self._lock:
            return self._evict(now)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class WindowStore:
    """Windows keyed by name, created lazily on the first admitted event.

    ``specs`` maps a window name to its EventSpec. The name is usually the
    event type name; a self-joined stream gets a distinct alias so that the
    same event type can be retained under two different windows.
    """

    def __init__(
        self,
        specs: Mapping[str, EventSpec],
        clock: Callable[[], float] = time.time,
        on_evict: Optional[EvictListener] = None,
    ) -> None:
        self._specs: Dict[str, EventSpec] = dict(specs)
        self._windows: Dict[str, Window] = {}
        self._registry_lock = threading.Lock()
        self._seq = itertools.count(1)
        self._seq_lock = threading.Lock()
        self._clock = clock
        self._on_evict = on_evict

    @property
    def names(self) -> List[str]:
        return list(self._specs)

    @property
    def type_names(self) -> set[str]:
        return {spec.type_name for spec in self._specs.values()}

    @property
    def smallest_window_seconds(self) -> float:
        return min(spec.window_seconds for spec in self._specs.values())

    def spec(self, name: str) -> EventSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownEventType(name) from None

    def declares(self, type_name: str) -> bool:
        return any(spec.type_name == type_name for spec in self._specs.values())

    def window(self, name: str) -> Window:
        existing = self._windows.get(name)
        if existing is not None:
            return existing
        spec = self.spec(name)
        with self._registry_lock:
            existing = self._windows.get(name)
            if existing is None:
                existing = Window(name, spec, on_evict=self._on_evict)
                self._windows[name] = existing
            return existing

    def _next_seq(self) -> int:
        with self._seq_lock:
            return next(self._seq)

    def admit(self, event: Event, now: Optional[float] = None) -> List[WindowEntry]:
        """Insert ``event`` into every window declared for its type.

        Raises UnknownEventType when no window is declared for the event's type.
        Returns the entries created; an empty list means the event was
        already outside every target window.
        """
        if now is None:
            now = self._clock()
        targets = [name for name, spec in self._specs.items() if spec.type_name == event.type_name]
        if not targets:
            raise UnknownEventType(event.type_name)
        admitted: List[WindowEntry] = []
        for name in targets:
            entry = self.window(name).admit(event, self._next_seq(), now)
            if entry is not None:
                admitted.append(entry)
        return admitted

    def entries(self, name: str, predicate: Optional[Predicate] = None, now: Optional[float] = None) -> List[WindowEntry]:
        self.spec(name)
        window = self._windows.get(name)
        if window is None:
            return []
        return window.entries(self._clock() if now is None else now, predicate)

    def query(self, name: str, predicate: Optional[Predicate] = None, now: Optional[float] = None) -> List[Event]:
        return [entry.event for entry in self.entries(name, predicate, now)]

    def sweep(self, now: Optional[float] = None) -> int:
        if now is None:
            now = self._clock()
        return sum(len(window.sweep(now)) for window in list(self._windows.values()))

    def sizes(self) -> Dict[str, int]:
        return {name: len(self._windows[name]) if name in self._windows else 0 for name in self._specs}

    def close(self) -> None:
        """Release every window once in-flight mutations have finished."""
        with self._registry_lock:
            windows = list(self._windows.values())
            self._windows.clear()
        for window in windows:
            with window.lock:
                window.clear()
