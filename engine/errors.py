"""
Exceptions raised by the KPI engine core.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Optional


class KpiEngineError(Exception):
    pass


class ConfigurationError(KpiEngineError):
    """Raised when a KPI definition cannot be turned into a running engine.

    Attributes:
        kpi: Name of the offending KPI definition, when known.
    """

    def __init__(self, message: str, kpi: Optional[str] = None) -> None:
        self.kpi = kpi
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.kpi:
            return f"{base} (kpi: {self.kpi})"
        return base


class UnknownEventType(KpiEngineError):
    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"no window declared for event type {type_name!r}")
