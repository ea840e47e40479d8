"""
Test Suite for Store Client

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from store import client as store_client
from store.client import _fallback, redis_get, redis_set


@pytest.fixture
def no_redis(monkeypatch):
    async def _none():
        return None

    monkeypatch.setattr(store_client, "get_redis", _none)
    _fallback.clear()


@pytest.mark.asyncio
async def test_fallback_operations(no_redis):
    await redis_set("k1", "v1")
    assert await redis_get("k1") == "v1"
    await redis_set("k1", "v2")
    assert await redis_get("k1") == "v2"
    assert await redis_get("missing") is None


@pytest.mark.asyncio
async def test_fallback_is_bounded(no_redis, monkeypatch):
    monkeypatch.setattr(store_client, "_MAX_FALLBACK_SIZE", 2)
    await redis_set("a", "1")
    await redis_set("b", "2")
    await redis_set("c", "3")
    assert await redis_get("c") is None
    await redis_set("a", "updated")
    assert await redis_get("a") == "updated"


@pytest.mark.asyncio
async def test_redis_errors_fall_back_to_memory(no_redis, monkeypatch):
    class BrokenRedis:
        async def get(self, key):
            raise ConnectionError("down")

        async def set(self, key, value):
            raise ConnectionError("down")

        async def setex(self, key, ttl, value):
            raise ConnectionError("down")

    async def broken():
        return BrokenRedis()

    monkeypatch.setattr(store_client, "get_redis", broken)
    await redis_set("k", "v", ttl=10)
    assert _fallback["k"] == "v"
    assert await redis_get("k") == "v"
