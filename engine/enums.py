"""
Enumerations for Time Units, Key Match Modes, KPI Kinds and Output Triggers

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from enum import Enum

from engine.errors import ConfigurationError

_UNIT_ALIASES = {
    "seconds": "seconds", "second": "seconds", "sec": "seconds", "s": "seconds",
    "minutes": "minutes", "minute": "minutes", "min": "minutes", "m": "minutes",
    "hours": "hours", "hour": "hours", "h": "hours",
}

_UNIT_SECONDS = {"seconds": 1.0, "minutes": 60.0, "hours": 3600.0}


class TimeUnit(str, Enum):
    seconds = "seconds"
    minutes = "minutes"
    hours = "hours"

    @classmethod
    def parse(cls, raw: object) -> TimeUnit:
        if isinstance(raw, TimeUnit):
            return raw
        canonical = _UNIT_ALIASES.get(str(raw or "").strip().lower())
        if canonical is None:
            raise ConfigurationError(f"unknown time unit {raw!r}")
        return cls(canonical)

    def to_seconds(self, value: float) -> float:
        return float(value) * _UNIT_SECONDS[self.value]


class MatchMode(str, Enum):
    exact = "exact"
    pattern = "pattern"


class KpiKind(str, Enum):
    aggregator = "aggregator"
    calculator = "calculator"


class Trigger(str, Enum):
    immediate = "immediate"
    interval = "interval"
