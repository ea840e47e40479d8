"""
HTTP publisher for KPI outputs, plus a logging publisher for KPIs without a bus server.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import logging
from typing import Any, Dict, Optional

import httpx

from config import settings
from connectors.base import Publisher
from connectors.exceptions import BusUnavailable, PublishRejected, PublishTimeout
from connectors.retry import call_with_retry

log = logging.getLogger(__name__)

PUBLISH_PATH = "/publications/{publication_id}"


class BusPublisher(Publisher):
    """Posts KPI outputs as JSON to the destination bus server.

    The server identifier is the bus base URL; the publication identifier
    selects the topic the output is published on.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        retry_backoff: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = settings.bus_timeout if timeout is None else timeout
        self.headers = headers or {}
        self.attempts = settings.publish_attempts if attempts is None else attempts
        self.retry_delay = settings.publish_retry_delay if retry_delay is None else retry_delay
        self.retry_backoff = settings.publish_retry_backoff if retry_backoff is None else retry_backoff
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def url_for(self, server: str, publication_id: str) -> str:
        return f"{str(server).rstrip('/')}{PUBLISH_PATH.format(publication_id=publication_id)}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def _post(self, url: str, payload: Dict[str, Any]) -> None:
        try:
            resp = await self._get_client().post(url, json=payload, headers=self.headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PublishRejected(f"Bus rejected publication [{e.response.status_code}]: {e.response.text}") from e
        except httpx.TimeoutException as e:
            raise PublishTimeout(f"Bus publish to {url} timed out") from e
        except httpx.RequestError as e:
            raise BusUnavailable(f"Cannot reach bus at {url}") from e

    async def publish(self, publication_id: str, server: str, payload: Dict[str, Any]) -> None:
        if not server:
            raise BusUnavailable(f"no bus server configured for publication {publication_id!r}")
        await call_with_retry(
            self._post,
            self.url_for(server, publication_id),
            payload,
            attempts=self.attempts,
            delay=self.retry_delay,
            backoff=self.retry_backoff,
            exceptions=(PublishTimeout, BusUnavailable),
        )

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()


class LogPublisher(Publisher):
    """Writes outputs to the log when no bus server is configured."""

    async def publish(self, publication_id: str, server: str, payload: Dict[str, Any]) -> None:
        log.info("publication=%s %s", publication_id, payload)
