"""
Retry helpers for publisher calls.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Tuple, Type

log = logging.getLogger(__name__)


async def call_with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    **kwargs: Any,
) -> Any:
    _attempt = 0
    _delay = delay
    while True:
        try:
            return await func(*args, **kwargs)
        except exceptions as exc:
            _attempt += 1
            if _attempt >= attempts:
                raise
            log.debug(
                "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                getattr(func, "__qualname__", func), _attempt, attempts, exc, _delay,
            )
            await asyncio.sleep(_delay)
            _delay *= backoff

