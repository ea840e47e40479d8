"""
Engine Packages for the kpistream KPI Engine

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.enums import KpiKind, MatchMode, TimeUnit, Trigger
from engine.errors import ConfigurationError, KpiEngineError, UnknownEventType

__all__ = [
    "ConfigurationError",
    "KpiEngineError",
    "KpiKind",
    "MatchMode",
    "TimeUnit",
    "Trigger",
    "UnknownEventType",
]
