"""
Exception translation decorator for KPI API route functions.

:func:`handle_exceptions` wraps an endpoint handler so that errors raised by
the engine reach the client as :class:`fastapi.HTTPException` responses.
HTTPExceptions raised by the handler pass through untouched. Unknown event
types map to ``404``, other engine errors (bad definitions, malformed events)
to ``400``, and anything else to ``500``.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import inspect
import logging
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from fastapi import HTTPException

from engine.errors import KpiEngineError, UnknownEventType

F = TypeVar("F", bound=Callable[..., Any])

log = logging.getLogger(__name__)


def _translate(exc: Exception) -> HTTPException:
    if isinstance(exc, UnknownEventType):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (KpiEngineError, ValueError)):
        return HTTPException(status_code=400, detail=str(exc))
    log.exception("Unhandled error in API route")
    return HTTPException(status_code=500, detail=str(exc))


def handle_exceptions(func: F) -> F:
    """Decorator that converts uncaught exceptions to HTTP errors.

    Works with both regular and async functions.
    """

    if inspect.iscoroutinefunction(func):
        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except Exception as exc:
                raise _translate(exc) from exc

        return cast(F, async_wrapper)

    @wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except HTTPException:
            raise
        except Exception as exc:
            raise _translate(exc) from exc

    return cast(F, sync_wrapper)
