"""
Key matching between event identity fields. EXACT compares origin keys for equality; PATTERN additionally lets either side carry ``*`` wildcards that match any substring, case-sensitively.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Union

from engine.enums import MatchMode
from engine.models import Event

WILDCARD = "*"

KeyLike = Union[str, Event]


def _key(value: KeyLike) -> str:
    if isinstance(value, Event):
        return value.origin_key
    return "" if value is None else str(value)


@lru_cache(maxsize=1024)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(".*".join(re.escape(part) for part in pattern.split(WILDCARD)), re.DOTALL)


def wildcard_match(text: str, pattern: str) -> bool:
    if WILDCARD not in pattern:
        return text == pattern
    return _compile(pattern).fullmatch(text) is not None


def matches(candidate: KeyLike, reference: KeyLike, mode: MatchMode = MatchMode.exact) -> bool:
    left = _key(candidate)
    right = _key(reference)
    if left == right:
        return True
    if MatchMode(mode) is MatchMode.exact:
        return False
    return wildcard_match(left, right) or wildcard_match(right, left)
