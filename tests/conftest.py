import os
import sys
import pytest

# ensure workspace root is on sys.path so our application packages can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from store.client import _fallback


class FakeClock:
    """Manually advanced clock standing in for ``time.time``."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def clear_fallback(monkeypatch):
    """Wipe the in-memory redis fallback before and after each test and override
    the redis helpers so they always operate on the in-memory store.
    """
    _fallback.clear()

    import store.client as client
    import store.outputs as outputs

    async def fake_get(key: str):
        return _fallback.get(key)

    async def fake_set(key: str, value: str, ttl=None):
        _fallback[key] = value

    # outputs imported the helpers by name, so patch both modules
    for mod in (client, outputs):
        monkeypatch.setattr(mod, "redis_get", fake_get)
        monkeypatch.setattr(mod, "redis_set", fake_set)

    yield

    _fallback.clear()
