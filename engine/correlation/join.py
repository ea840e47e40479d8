"""
Correlation join for the Aggregator KPI pattern: each admitted primary event is inner-joined against the current contents of every secondary window, keeping only secondary events whose origin key equals that secondary's own subscription key, and one correlated output is emitted per combination of the cross product.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import itertools
import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

from config import ORIGIN_FIELD
from engine.base import KpiEngine, Output, Sink
from engine.enums import KpiKind, MatchMode
from engine.errors import UnknownEventType
from engine.matching import matches
from engine.models import CorrelatedEvent, CorrelationSpec, Event
from engine.window import WindowStore

log = logging.getLogger(__name__)

Combination = Tuple[Tuple[str, Event], ...]


def cross_join(groups: Sequence[Tuple[str, List[Event]]]) -> List[Combination]:
    """Cartesian product of the matched events of every alias.

    Inner-join semantics: a single empty group yields no combinations.
    """
    if not groups or any(not events for _, events in groups):
        return []
    aliases = [alias for alias, _ in groups]
    return [tuple(zip(aliases, combo)) for combo in itertools.product(*(events for _, events in groups))]


def _key_filter(subscription_key: str) -> Callable[[Event], bool]:
    def _accept(event: Event) -> bool:
        return matches(event, subscription_key, MatchMode.exact)
    return _accept


class CorrelationJoinEngine(KpiEngine):
    kind = KpiKind.aggregator

    def __init__(
        self,
        name: str,
        spec: CorrelationSpec,
        sink: Optional[Sink] = None,
        clock: Callable[[], float] = time.time,
        publication_id: str = "",
        server: str = "",
    ) -> None:
        super().__init__(name, sink=sink, clock=clock, publication_id=publication_id, server=server)
        self.spec = spec
        windows = {spec.primary.type_name: spec.primary}
        windows.update(dict(spec.aliases))
        self._store = WindowStore(windows, clock=clock)
        self._primary_window = spec.primary.type_name

    def join(self, primary: Event, now: Optional[float] = None) -> List[CorrelatedEvent]:
        if now is None:
            now = self.now()
        groups = [
            (alias, self._store.query(alias, _key_filter(secondary.subscription_key), now))
            for alias, secondary in self.spec.aliases
        ]
        return [
            CorrelatedEvent(
                kpi=self.name,
                name=self.spec.output_name,
                timestamp=now,
                primary=primary,
                secondaries=combination,
                publication_id=self.publication_id,
                server=self.server,
            )
            for combination in cross_join(groups)
        ]

    def admit(self, event: Event) -> List[Output]:
        now = self.now()
        if not self.declares(event.type_name):
            self._count("dropped_unknown")
            log.debug("KPI %s: dropping event of undeclared type %s", self.name, event.type_name)
            return []
        event = self._stamp(event.keyed(ORIGIN_FIELD), now)
        primary = self.spec.primary

        results: List[Output] = []
        # a late primary triggers no join; a longer Correlated_ window may still keep it
        if event.type_name == primary.type_name and now - event.arrival_timestamp <= primary.window_seconds:
            if matches(event, primary.subscription_key, self.spec.primary_match):
                results.extend(self.join(event, now))
            else:
                self._count("filtered")

        # a self-joined primary enters its Correlated_ window only after its own join
        try:
            entries = self._store.admit(event, now)
        except UnknownEventType:
            self._count("dropped_unknown")
            return []
        if entries:
            self._count("admitted")
        else:
            self._count("dropped_late")

        self._emit(results)
        return results
