"""
Immutable stream definitions and event records flowing through the KPI engine: the per-stream EventSpec with its retention window, the CorrelationSpec and AggregateSpec describing the two supported KPI patterns, admitted input Events, and the CorrelatedEvent and AggregateSnapshotEvent outputs handed to publishers.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from config import (
    CALCULATOR_KEY_FIELD,
    CORRELATED_ALIAS_PREFIX,
    DEFAULT_AGGREGATOR_OUTPUT,
    DEFAULT_CALCULATOR_OUTPUT,
    ORIGIN_FIELD,
)
from engine.enums import MatchMode, TimeUnit, Trigger
from engine.errors import ConfigurationError


def _positive_int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{what} must be a positive integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{what} must be a positive integer, got {value!r}") from exc
    if number != value and str(number) != str(value).strip():
        raise ConfigurationError(f"{what} must be a positive integer, got {value!r}")
    if number <= 0:
        raise ConfigurationError(f"{what} must be a positive integer, got {value!r}")
    return number


@dataclass(frozen=True)
class EventSpec:
    type_name: str
    subscription_key: str
    window_unit: TimeUnit
    window_value: int

    def __post_init__(self) -> None:
        if not str(self.type_name or "").strip():
            raise ConfigurationError("event type name is required")
        if self.subscription_key is None:
            raise ConfigurationError(f"subscription key is required for {self.type_name!r}")
        object.__setattr__(self, "window_unit", TimeUnit.parse(self.window_unit))
        object.__setattr__(
            self, "window_value", _positive_int(self.window_value, f"window value of {self.type_name!r}")
        )

    @property
    def window_seconds(self) -> float:
        return self.window_unit.to_seconds(self.window_value)


@dataclass(frozen=True)
class CorrelationSpec:
    primary: EventSpec
    secondaries: Tuple[EventSpec, ...]
    output_name: str = DEFAULT_AGGREGATOR_OUTPUT
    primary_match: MatchMode = MatchMode.exact

    def __post_init__(self) -> None:
        secondaries = tuple(self.secondaries or ())
        if not secondaries:
            raise ConfigurationError("at least one secondary event must be declared")
        seen: set[str] = set()
        for spec in secondaries:
            if spec.type_name in seen:
                raise ConfigurationError(f"secondary event {spec.type_name!r} declared more than once")
            seen.add(spec.type_name)
        object.__setattr__(self, "secondaries", secondaries)
        object.__setattr__(self, "primary_match", MatchMode(self.primary_match))

    def alias_for(self, spec: EventSpec) -> str:
        if spec.type_name == self.primary.type_name:
            return CORRELATED_ALIAS_PREFIX + spec.type_name
        return spec.type_name

    @property
    def aliases(self) -> Tuple[Tuple[str, EventSpec], ...]:
        return tuple((self.alias_for(spec), spec) for spec in self.secondaries)


@dataclass(frozen=True)
class AggregateSpec:
    """Start/end stream pair of a Calculator together with its emission cadence."""

    start: EventSpec
    end: EventSpec
    output_unit: TimeUnit
    output_value: int
    output_name: str = DEFAULT_CALCULATOR_OUTPUT
    match_mode: MatchMode = MatchMode.pattern
    trigger: Trigger = Trigger.interval

    def __post_init__(self) -> None:
        if self.start.type_name == self.end.type_name:
            raise ConfigurationError("start and end events must have different type names")
        object.__setattr__(self, "output_unit", TimeUnit.parse(self.output_unit))
        object.__setattr__(self, "output_value", _positive_int(self.output_value, "output value"))
        object.__setattr__(self, "match_mode", MatchMode(self.match_mode))
        object.__setattr__(self, "trigger", Trigger(self.trigger))

    @property
    def output_seconds(self) -> float:
        return self.output_unit.to_seconds(self.output_value)


@dataclass(frozen=True)
class Event:
    type_name: str
    origin_key: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    arrival_timestamp: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields or {})))

    @classmethod
    def from_fields(
        cls,
        type_name: str,
        fields: Mapping[str, Any],
        origin_key: Optional[str] = None,
        arrival_timestamp: Optional[float] = None,
    ) -> Event:
        if origin_key is None:
            raw = fields.get(ORIGIN_FIELD, fields.get(CALCULATOR_KEY_FIELD, ""))
            origin_key = "" if raw is None else str(raw)
        return cls(type_name=type_name, origin_key=origin_key, fields=fields, arrival_timestamp=arrival_timestamp)

    def stamped(self, timestamp: float) -> Event:
        return dataclasses.replace(self, fields=dict(self.fields), arrival_timestamp=float(timestamp))

    def keyed(self, key_field: str) -> Event:
        """Re-key on ``key_field`` when the event carries it."""
        raw = self.fields.get(key_field)
        if raw is None or str(raw) == self.origin_key:
            return self
        return dataclasses.replace(self, origin_key=str(raw), fields=dict(self.fields))

    def value(self, name: str) -> float:
        return float(self.fields[name])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type_name,
            "origin_key": self.origin_key,
            "fields": dict(self.fields),
            "timestamp": self.arrival_timestamp,
        }


@dataclass(frozen=True)
class CorrelatedEvent:
    kpi: str
    name: str
    timestamp: float
    primary: Event
    secondaries: Tuple[Tuple[str, Event], ...]
    publication_id: str = ""
    server: str = ""

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "kpi": self.kpi,
            "event": self.name,
            "timestamp": self.timestamp,
            self.primary.type_name: self.primary.to_dict(),
        }
        for alias, event in self.secondaries:
            payload[alias] = event.to_dict()
        return payload


@dataclass(frozen=True)
class AggregateSnapshotEvent:
    kpi: str
    name: str
    timestamp: float
    avg: Optional[float]
    stddev: float
    count: int
    publication_id: str = ""
    server: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {
            "kpi": self.kpi,
            "event": self.name,
            "timestamp": self.timestamp,
            "avg": self.avg,
            "stddev": self.stddev,
            "count": self.count,
        }
