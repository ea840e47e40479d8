"""
KPI definition documents: pydantic models for Aggregator and Calculator definitions and a loader that validates each entry on its own, so one broken definition never keeps the others from starting.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from config import (
    DEFAULT_AGGREGATOR_OUTPUT,
    DEFAULT_CALCULATOR_OUTPUT,
    DEFAULT_END_EVENT,
    DEFAULT_START_EVENT,
)
from engine.enums import MatchMode, Trigger
from engine.errors import ConfigurationError

log = logging.getLogger(__name__)


class EventDefinition(BaseModel):
    name: str = Field(min_length=1)
    subscription_key: str = ""
    window_unit: str = "seconds"
    window_value: int = 60


class _KpiDefinitionBase(BaseModel):
    name: str = Field(min_length=1)
    publication_id: Optional[str] = None
    bus_server: Optional[str] = None

    model_config = {"extra": "forbid"}


class AggregatorDefinition(_KpiDefinitionBase):
    kind: Literal["aggregator"] = "aggregator"
    primary: EventDefinition
    secondaries: List[EventDefinition] = Field(default_factory=list)
    output_event: str = DEFAULT_AGGREGATOR_OUTPUT
    primary_match: MatchMode = MatchMode.exact


class CalculatorDefinition(_KpiDefinitionBase):
    kind: Literal["calculator"] = "calculator"
    start_event: str = DEFAULT_START_EVENT
    end_event: str = DEFAULT_END_EVENT
    window_unit: str = "seconds"
    window_value: int = 60
    output_unit: str = "seconds"
    output_value: int = 10
    output_event: str = DEFAULT_CALCULATOR_OUTPUT
    match_mode: MatchMode = MatchMode.pattern
    trigger: Trigger = Trigger.interval


KpiDefinition = Annotated[
    Union[AggregatorDefinition, CalculatorDefinition],
    Field(discriminator="kind"),
]

_adapter: TypeAdapter = TypeAdapter(KpiDefinition)


@dataclass
class LoadResult:
    definitions: List[Union[AggregatorDefinition, CalculatorDefinition]] = field(default_factory=list)
    failures: Dict[str, ConfigurationError] = field(default_factory=dict)


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or str(exc)


def parse_definition(raw: Any) -> Union[AggregatorDefinition, CalculatorDefinition]:
    name = raw.get("name") if isinstance(raw, Mapping) else None
    try:
        return _adapter.validate_python(raw)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc), kpi=name) from exc


def _entries(source: Union[str, Path, Mapping[str, Any], Sequence[Any]]) -> List[Any]:
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"cannot read KPI definitions from {path}: {exc}") from exc
    else:
        document = source
    if isinstance(document, Mapping):
        document = document.get("kpis", [])
    if not isinstance(document, (list, tuple)):
        raise ConfigurationError("KPI definitions must be a list or an object with a 'kpis' list")
    return list(document)


def load_definitions(source: Union[str, Path, Mapping[str, Any], Sequence[Any]]) -> LoadResult:
    """Validate every KPI entry of ``source`` independently.

    ``source`` may be a path to a JSON document, the parsed document, or a
    bare list of entries. Entries that fail validation are reported in
    ``failures`` keyed by their name (or position when unnamed).
    """
    result = LoadResult()
    seen: set[str] = set()
    for idx, raw in enumerate(_entries(source)):
        label = raw.get("name") if isinstance(raw, Mapping) and raw.get("name") else f"#{idx}"
        try:
            definition = parse_definition(raw)
            if definition.name in seen:
                label = f"{definition.name}#{idx}"
                raise ConfigurationError("duplicate KPI name", kpi=definition.name)
        except ConfigurationError as exc:
            log.error("KPI definition %s rejected: %s", label, exc)
            result.failures[str(label)] = exc
            continue
        seen.add(definition.name)
        result.definitions.append(definition)
    return result
