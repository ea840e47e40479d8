"""
KPI definitions and the factory turning them into engines.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.kpi.definitions import (
    AggregatorDefinition,
    CalculatorDefinition,
    EventDefinition,
    LoadResult,
    load_definitions,
    parse_definition,
)
from engine.kpi.factory import build_engine

__all__ = [
    "AggregatorDefinition",
    "CalculatorDefinition",
    "EventDefinition",
    "LoadResult",
    "build_engine",
    "load_definitions",
    "parse_definition",
]
