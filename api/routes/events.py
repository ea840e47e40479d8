"""
Inbound event ingestion: routes single events or batches to every KPI declaring their type.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import List, Union

from fastapi import APIRouter, HTTPException

from api.requests import EventBatchRequest, EventRequest
from api.responses import AdmitResponse
from api.routes.exception import handle_exceptions
from services.kpi_runtime import get_runtime

router = APIRouter(tags=["Events"])


@router.post("/events", summary="Submit one event or a batch of events to the KPI engines")
@handle_exceptions
async def submit_events(req: Union[EventBatchRequest, EventRequest]) -> AdmitResponse:
    runtime = get_runtime()
    if not runtime.started:
        raise HTTPException(status_code=503, detail="KPI runtime is not running")

    items: List[EventRequest] = req.events if isinstance(req, EventBatchRequest) else [req]
    routed = 0
    unknown: List[str] = []
    for item in items:
        if runtime.admit(item.to_event()):
            routed += 1
        elif item.type not in unknown:
            unknown.append(item.type)
    return AdmitResponse(accepted=len(items), routed=routed, unknown=unknown)
