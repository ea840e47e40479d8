"""
Test enums used across the KPI engine.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from engine.enums import KpiKind, MatchMode, TimeUnit, Trigger
from engine.errors import ConfigurationError


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("seconds", TimeUnit.seconds),
        ("SEC", TimeUnit.seconds),
        ("s", TimeUnit.seconds),
        ("minute", TimeUnit.minutes),
        ("m", TimeUnit.minutes),
        (" Hours ", TimeUnit.hours),
        (TimeUnit.hours, TimeUnit.hours),
    ],
)
def test_time_unit_parse_accepts_aliases(raw, expected):
    assert TimeUnit.parse(raw) is expected


@pytest.mark.parametrize("raw", ["days", "", None, "ms"])
def test_time_unit_parse_rejects_unknown(raw):
    with pytest.raises(ConfigurationError):
        TimeUnit.parse(raw)


def test_time_unit_to_seconds():
    assert TimeUnit.seconds.to_seconds(30) == 30.0
    assert TimeUnit.minutes.to_seconds(2) == 120.0
    assert TimeUnit.hours.to_seconds(1) == 3600.0


def test_enum_values_are_strings():
    assert MatchMode("pattern") is MatchMode.pattern
    assert KpiKind.aggregator.value == "aggregator"
    assert Trigger("immediate") is Trigger.immediate
