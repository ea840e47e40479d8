"""
Service-token authentication for the KPI API.
"""

from __future__ import annotations

from hmac import compare_digest

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from config import settings


def authenticate_internal_request(request: Request) -> None:
    expected_service_token = settings.expected_service_token
    if not expected_service_token:
        return
    provided_service_token = request.headers.get("x-service-token", "")
    if not compare_digest(provided_service_token, expected_service_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid service token")


def _requires_internal_auth(path: str) -> bool:
    return path.startswith("/api/v1") and path != "/api/v1/ready"


class InternalAuthMiddleware:
    def __init__(self, app) -> None:
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        path = str(scope.get("path", ""))
        if not _requires_internal_auth(path):
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        try:
            authenticate_internal_request(request)
        except HTTPException as exc:
            response = JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
