"""
KPI inspection routes: runtime status, latest published output, and live window contents.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from fastapi import APIRouter, HTTPException

from api.responses import (
    KpiListResponse,
    KpiSummary,
    LatestOutputResponse,
    WindowEventView,
    WindowResponse,
)
from api.routes.exception import handle_exceptions
from engine.base import KpiEngine
from services.kpi_runtime import get_runtime
from store import outputs as output_store

router = APIRouter(tags=["KPIs"])


def _engine_or_404(name: str) -> KpiEngine:
    try:
        return get_runtime().engine(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"KPI {name!r} is not active")


@router.get("/kpis", summary="List active KPIs with their counters and failed definitions")
@handle_exceptions
async def list_kpis() -> KpiListResponse:
    runtime = get_runtime()
    summaries = [
        KpiSummary(name=name, **engine.stats())
        for name, engine in sorted(runtime.engines.items())
    ]
    return KpiListResponse(kpis=summaries, failed=dict(runtime.failures))


@router.get("/kpis/{name}/latest", summary="Most recent output published by a KPI")
@handle_exceptions
async def latest_output(name: str) -> LatestOutputResponse:
    payload = await output_store.load_latest(name)
    if payload is None:
        raise HTTPException(status_code=404, detail=f"No output recorded for KPI {name!r}")
    return LatestOutputResponse(kpi=name, output=payload)


@router.get("/kpis/{name}/windows/{window}", summary="Events currently valid in one KPI window")
@handle_exceptions
async def window_contents(name: str, window: str) -> WindowResponse:
    engine = _engine_or_404(name)
    events = engine.store.query(window, now=engine.now())
    return WindowResponse(
        kpi=name,
        window=window,
        size=len(events),
        events=[WindowEventView(**event.to_dict()) for event in events],
    )
