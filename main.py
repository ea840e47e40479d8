"""
Entry point for the KPI stream engine API server.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from api.routes import router
from api.security import InternalAuthMiddleware
from config import settings
from services.kpi_runtime import get_runtime
from store import client as store_client

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    runtime = get_runtime()
    runtime.configure(settings.definitions_path)
    if runtime.failures:
        log.warning("KPI definitions rejected: %s", runtime.failures)
    await runtime.start()
    try:
        yield
    finally:
        await runtime.stop()
        await store_client.close()


app = FastAPI(
    title="KPI Stream Engine",
    description="Windowed correlation and aggregation of event streams into KPI outputs.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(InternalAuthMiddleware)
app.include_router(router, prefix="/api/v1")


@app.get("/api/v1/ready", tags=["health"], summary="Runtime readiness check")
async def ready() -> JSONResponse:
    runtime = get_runtime()
    is_ready = runtime.started
    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={
            "ready": is_ready,
            "active": sorted(runtime.engines),
            "failed": dict(runtime.failures),
        },
    )


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
        access_log=True,
    )
