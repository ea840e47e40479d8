from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from store.client import redis_get, redis_set
from config import settings
from store import keys

log = logging.getLogger(__name__)


async def save_latest(kpi: str, payload: Dict[str, Any]) -> None:
    try:
        await redis_set(keys.latest_output(kpi), json.dumps(payload, default=str), ttl=settings.output_cache_ttl)
    except Exception as exc:
        log.debug("Output save failed %s: %s", kpi, exc)


async def load_latest(kpi: str) -> Optional[Dict[str, Any]]:
    try:
        raw = await redis_get(keys.latest_output(kpi))
        if raw:
            return json.loads(raw)
    except Exception as exc:
        log.debug("Output load failed %s: %s", kpi, exc)
    return None

