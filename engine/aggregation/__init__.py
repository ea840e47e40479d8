"""
Windowed statistics over paired start/end events (Calculator KPI pattern).

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.aggregation.calculator import AggregationEngine
from engine.aggregation.state import AggregateState, Snapshot

__all__ = ["AggregationEngine", "AggregateState", "Snapshot"]
