"""
Key layout for cached KPI outputs.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import hashlib

PREFIX = "ks"


def _slug(value: str) -> str:
    # KPI names are free text; keys only need to be stable.
    return hashlib.sha256(value.encode()).hexdigest()[:32]


def latest_output(kpi: str) -> str:
    return f"{PREFIX}:kpi:{_slug(kpi)}:latest"
