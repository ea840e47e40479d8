"""
Constants and configuration for kpistream.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import os
from typing import Optional

from pydantic_settings import BaseSettings


REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
OUTPUT_CACHE_TTL: int = int(os.getenv("OUTPUT_CACHE_TTL", "86400"))

KPISTREAM_DEFINITIONS_PATH = os.getenv("KPISTREAM_DEFINITIONS_PATH", "kpis.json")
KPISTREAM_BUS_URL = os.getenv("KPISTREAM_BUS_URL", "").rstrip("/")
KPISTREAM_BUS_TIMEOUT = float(os.getenv("KPISTREAM_BUS_TIMEOUT", "5"))

DEFAULT_AGGREGATOR_OUTPUT = "AggregatorEvent"
DEFAULT_CALCULATOR_OUTPUT = "AvgRtEvent"
DEFAULT_START_EVENT = "StartTime"
DEFAULT_END_EVENT = "EndTime"

# field names carried by inbound events, following the bus schema
ORIGIN_FIELD = "originID"
CALCULATOR_KEY_FIELD = "key"
CALCULATOR_VALUE_FIELD = "value"

CORRELATED_ALIAS_PREFIX = "Correlated_"


class Settings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 4322

    definitions_path: str = KPISTREAM_DEFINITIONS_PATH

    bus_url: str = KPISTREAM_BUS_URL
    bus_timeout: float = KPISTREAM_BUS_TIMEOUT
    publish_attempts: int = 3
    publish_retry_delay: float = 0.5
    publish_retry_backoff: float = 2.0

    # output dispatch between the engine core and the publishers
    dispatcher_queue_size: int = 10_000

    # window maintenance; sweeps never run less often than this
    sweep_interval_max_seconds: float = 30.0
    scheduler_idle_seconds: float = 1.0

    # optional internal auth; empty disables it
    expected_service_token: Optional[str] = None

    output_cache_ttl: int = OUTPUT_CACHE_TTL
    store_redis_retry_cooldown_seconds: float = 10.0
    store_fallback_max_items: int = 10_000

    model_config = {
        "env_prefix": "KPISTREAM_",
        "extra": "ignore",
    }


settings = Settings()
