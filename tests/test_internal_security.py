"""
Test service-token authentication of internal API requests.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
import json

from starlette.responses import JSONResponse

from api.security import InternalAuthMiddleware
from config import settings


async def _run_request(path: str, headers: dict[str, str]):
    async def app(scope, receive, send):
        response = JSONResponse({"ok": True})
        await response(scope, receive, send)

    middleware = InternalAuthMiddleware(app)

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("ascii"),
        "query_string": b"",
        "headers": [(k.encode("latin1"), v.encode("latin1")) for k, v in headers.items()],
        "client": ("127.0.0.1", 12345),
        "server": ("testserver", 80),
    }

    messages: list[dict] = []

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message):
        messages.append(message)

    await middleware(scope, receive, send)

    status = next(m["status"] for m in messages if m["type"] == "http.response.start")
    body = b"".join(m.get("body", b"") for m in messages if m["type"] == "http.response.body")
    data = json.loads(body.decode("utf-8")) if body else {}
    return status, data


def test_auth_disabled_without_expected_token(monkeypatch):
    monkeypatch.setattr(settings, "expected_service_token", None)
    status, payload = asyncio.run(_run_request("/api/v1/kpis", headers={}))
    assert status == 200
    assert payload == {"ok": True}


def test_missing_service_token_rejected(monkeypatch):
    monkeypatch.setattr(settings, "expected_service_token", "internal-service-token")
    status, payload = asyncio.run(_run_request("/api/v1/kpis", headers={}))
    assert status == 401
    assert payload["detail"] == "Invalid service token"


def test_valid_service_token_accepted(monkeypatch):
    monkeypatch.setattr(settings, "expected_service_token", "internal-service-token")
    status, _ = asyncio.run(
        _run_request("/api/v1/events", headers={"x-service-token": "internal-service-token"})
    )
    assert status == 200


def test_ready_endpoint_is_public(monkeypatch):
    monkeypatch.setattr(settings, "expected_service_token", "internal-service-token")
    status, _ = asyncio.run(_run_request("/api/v1/ready", headers={}))
    assert status == 200
