"""
Builds running KPI engines from validated definitions.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import time
from typing import Callable, Optional, Union

from config import settings
from engine.aggregation import AggregationEngine
from engine.base import KpiEngine, Sink
from engine.correlation import CorrelationJoinEngine
from engine.errors import ConfigurationError
from engine.kpi.definitions import AggregatorDefinition, CalculatorDefinition, EventDefinition
from engine.models import AggregateSpec, CorrelationSpec, EventSpec


def event_spec(definition: EventDefinition) -> EventSpec:
    return EventSpec(
        type_name=definition.name,
        subscription_key=definition.subscription_key,
        window_unit=definition.window_unit,
        window_value=definition.window_value,
    )


def correlation_spec(definition: AggregatorDefinition) -> CorrelationSpec:
    return CorrelationSpec(
        primary=event_spec(definition.primary),
        secondaries=tuple(event_spec(s) for s in definition.secondaries),
        output_name=definition.output_event,
        primary_match=definition.primary_match,
    )


def aggregate_spec(definition: CalculatorDefinition) -> AggregateSpec:
    def _stream(name: str) -> EventSpec:
        return EventSpec(
            type_name=name,
            subscription_key="",
            window_unit=definition.window_unit,
            window_value=definition.window_value,
        )

    return AggregateSpec(
        start=_stream(definition.start_event),
        end=_stream(definition.end_event),
        output_unit=definition.output_unit,
        output_value=definition.output_value,
        output_name=definition.output_event,
        match_mode=definition.match_mode,
        trigger=definition.trigger,
    )


def build_engine(
    definition: Union[AggregatorDefinition, CalculatorDefinition],
    sink: Optional[Sink] = None,
    clock: Callable[[], float] = time.time,
) -> KpiEngine:
    """Construct the engine for one definition or raise ConfigurationError."""
    server = definition.bus_server or settings.bus_url
    publication_id = definition.publication_id or definition.name
    try:
        if isinstance(definition, AggregatorDefinition):
            return CorrelationJoinEngine(
                definition.name,
                correlation_spec(definition),
                sink=sink,
                clock=clock,
                publication_id=publication_id,
                server=server,
            )
        if isinstance(definition, CalculatorDefinition):
            return AggregationEngine(
                definition.name,
                aggregate_spec(definition),
                sink=sink,
                clock=clock,
                publication_id=publication_id,
                server=server,
            )
    except ConfigurationError as exc:
        if exc.kpi is None:
            exc.kpi = definition.name
        raise
    except ValueError as exc:
        raise ConfigurationError(str(exc), kpi=definition.name) from exc
    raise ConfigurationError(f"unsupported KPI definition {type(definition).__name__}")
