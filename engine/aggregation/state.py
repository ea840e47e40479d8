"""
Live start/end pair deltas and the statistics computed over them.

Each pair's delta is remembered by the sequence numbers of its two window
entries, so evicting either entry retracts exactly that pair. Folding the
same pair twice is a no-op. Snapshots are computed from the deltas that are
live at that moment, never from sums an evicted pair once contributed to.
The state is not thread-safe on its own; the owning engine guards it.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

import numpy as np

PairKey = Tuple[int, int]


@dataclass(frozen=True)
class Snapshot:
    count: int
    avg: Optional[float]
    stddev: float


class AggregateState:
    __slots__ = ("_pairs", "_by_seq")

    def __init__(self) -> None:
        self._pairs: Dict[PairKey, float] = {}
        self._by_seq: Dict[int, Set[PairKey]] = {}

    @property
    def count(self) -> int:
        return len(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __contains__(self, pair: PairKey) -> bool:
        return pair in self._pairs

    def deltas(self) -> List[float]:
        return list(self._pairs.values())

    def fold(self, start_seq: int, end_seq: int, delta: float) -> bool:
        pair = (start_seq, end_seq)
        if pair in self._pairs:
            return False
        self._pairs[pair] = float(delta)
        self._by_seq.setdefault(start_seq, set()).add(pair)
        self._by_seq.setdefault(end_seq, set()).add(pair)
        return True

    def retract(self, seqs: Iterable[int]) -> int:
        removed = 0
        for seq in seqs:
            for pair in self._by_seq.pop(seq, ()):
                if self._pairs.pop(pair, None) is None:
                    continue
                other = pair[1] if pair[0] == seq else pair[0]
                partners = self._by_seq.get(other)
                if partners is not None:
                    partners.discard(pair)
                    if not partners:
                        del self._by_seq[other]
                removed += 1
        return removed

    def snapshot(self) -> Snapshot:
        """Population mean and standard deviation of the live deltas."""
        if not self._pairs:
            return Snapshot(count=0, avg=None, stddev=0.0)
        values = np.fromiter(self._pairs.values(), dtype=float, count=len(self._pairs))
        return Snapshot(count=int(values.size), avg=float(values.mean()), stddev=float(values.std()))

    def clear(self) -> None:
        self._pairs.clear()
        self._by_seq.clear()
