"""
Response models for the KPI API endpoints.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AdmitResponse(BaseModel):
    accepted: int
    routed: int
    unknown: List[str] = Field(default_factory=list)


class KpiSummary(BaseModel):
    name: str
    kind: str
    publication_id: str
    server: str
    types: List[str]
    windows: Dict[str, int]
    counters: Dict[str, int]


class KpiListResponse(BaseModel):
    kpis: List[KpiSummary]
    failed: Dict[str, str] = Field(default_factory=dict)


class LatestOutputResponse(BaseModel):
    kpi: str
    output: Dict[str, Any]


class WindowEventView(BaseModel):
    type: str
    origin_key: Optional[str]
    fields: Dict[str, Any]
    timestamp: Optional[float]


class WindowResponse(BaseModel):
    kpi: str
    window: str
    size: int
    events: List[WindowEventView]
