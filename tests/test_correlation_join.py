"""
Test the Aggregator correlation join: inner cross join over secondary windows.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import pytest

from engine.correlation import CorrelationJoinEngine, cross_join
from engine.enums import MatchMode
from engine.errors import ConfigurationError
from engine.models import CorrelatedEvent, CorrelationSpec, Event, EventSpec


def _spec(name, key, value=60):
    return EventSpec(type_name=name, subscription_key=key, window_unit="seconds", window_value=value)


def _engine(clock, secondaries, primary=None, sink=None, **kwargs):
    spec = CorrelationSpec(
        primary=primary or _spec("Order", "P"),
        secondaries=tuple(secondaries),
        output_name="Correlated",
        **kwargs,
    )
    return CorrelationJoinEngine("checkout", spec, sink=sink, clock=clock)


def test_cross_join_product_and_inner_semantics():
    a = [Event("A", "x", {"i": i}) for i in range(2)]
    b = [Event("B", "y", {"i": i}) for i in range(3)]
    assert len(cross_join([("A", a), ("B", b)])) == 6
    assert cross_join([("A", a), ("B", [])]) == []
    assert cross_join([]) == []


def test_scenario_primary_joins_two_secondaries(clock):
    out = []
    engine = _engine(clock, [_spec("Payment", "K1"), _spec("Shipment", "K2")], sink=out.append)
    engine.admit(Event("Payment", "K1", {"amount": 10}))
    clock.advance(5)
    engine.admit(Event("Shipment", "K2", {"carrier": "ups"}))
    clock.advance(5)
    results = engine.admit(Event("Order", "P", {"id": 7}))

    assert len(results) == 1
    assert out == results
    correlated = results[0]
    assert isinstance(correlated, CorrelatedEvent)
    assert correlated.primary.fields["id"] == 7
    assert dict(correlated.secondaries)["Payment"].fields["amount"] == 10
    assert dict(correlated.secondaries)["Shipment"].fields["carrier"] == "ups"
    assert correlated.publication_id == "checkout"

    payload = correlated.to_payload()
    assert payload["event"] == "Correlated"
    assert set(payload) >= {"Order", "Payment", "Shipment"}


def test_product_count_equals_match_counts(clock):
    engine = _engine(clock, [_spec("Payment", "K1"), _spec("Shipment", "K2")])
    for i in range(2):
        engine.admit(Event("Payment", "K1", {"i": i}))
    for i in range(3):
        engine.admit(Event("Shipment", "K2", {"i": i}))
    engine.admit(Event("Shipment", "other", {}))
    assert len(engine.admit(Event("Order", "P", {}))) == 6


def test_no_output_when_any_secondary_missing(clock):
    engine = _engine(clock, [_spec("Payment", "K1"), _spec("Shipment", "K2")])
    engine.admit(Event("Payment", "K1", {}))
    engine.admit(Event("Shipment", "wrong-key", {}))
    assert engine.admit(Event("Order", "P", {})) == []
    assert engine.stats()["counters"]["emitted"] == 0


def test_expired_secondary_not_joined(clock):
    engine = _engine(clock, [_spec("Payment", "K1", value=10)])
    engine.admit(Event("Payment", "K1", {}))
    clock.advance(11)
    assert engine.admit(Event("Order", "P", {})) == []


def test_secondary_arriving_after_primary_does_not_emit(clock):
    engine = _engine(clock, [_spec("Payment", "K1")])
    assert engine.admit(Event("Order", "P", {})) == []
    assert engine.admit(Event("Payment", "K1", {})) == []


def test_primary_filtered_by_its_subscription_key(clock):
    engine = _engine(clock, [_spec("Payment", "K1")])
    engine.admit(Event("Payment", "K1", {}))
    assert engine.admit(Event("Order", "not-P", {})) == []
    assert engine.stats()["counters"]["filtered"] == 1


def test_primary_pattern_match(clock):
    engine = _engine(
        clock, [_spec("Payment", "K1")], primary=_spec("Order", "shop-*"), primary_match=MatchMode.pattern
    )
    engine.admit(Event("Payment", "K1", {}))
    assert len(engine.admit(Event("Order", "shop-9", {}))) == 1


def test_self_join_uses_alias_and_its_own_key(clock):
    engine = _engine(clock, [_spec("Order", "S")], primary=_spec("Order", "P"))
    assert engine.store.names == ["Order", "Correlated_Order"]

    engine.admit(Event("Order", "S", {"n": 1}))
    results = engine.admit(Event("Order", "P", {"n": 2}))
    assert len(results) == 1
    alias, secondary = results[0].secondaries[0]
    assert alias == "Correlated_Order"
    assert secondary.fields["n"] == 1


def test_self_join_never_matches_itself(clock):
    engine = _engine(clock, [_spec("Order", "P")], primary=_spec("Order", "P"))
    assert engine.admit(Event("Order", "P", {"n": 1})) == []
    results = engine.admit(Event("Order", "P", {"n": 2}))
    assert [dict(r.secondaries)["Correlated_Order"].fields["n"] for r in results] == [1]


def test_unknown_type_dropped_and_counted(clock):
    engine = _engine(clock, [_spec("Payment", "K1")])
    assert engine.admit(Event("Refund", "K1", {})) == []
    assert engine.stats()["counters"]["dropped_unknown"] == 1


def test_late_primary_dropped(clock):
    engine = _engine(clock, [_spec("Payment", "K1")])
    engine.admit(Event("Payment", "K1", {}))
    late = Event("Order", "P", {}).stamped(clock() - 120)
    assert engine.admit(late) == []
    assert engine.stats()["counters"]["dropped_late"] == 1


def test_sink_failure_does_not_break_admission(clock):
    def broken(_):
        raise RuntimeError("sink down")

    engine = _engine(clock, [_spec("Payment", "K1")], sink=broken)
    engine.admit(Event("Payment", "K1", {}))
    assert len(engine.admit(Event("Order", "P", {}))) == 1
    assert engine.stats()["counters"]["sink_errors"] == 1


def test_zero_secondaries_rejected():
    with pytest.raises(ConfigurationError):
        CorrelationSpec(primary=_spec("Order", "P"), secondaries=())


def test_duplicate_secondaries_rejected():
    with pytest.raises(ConfigurationError):
        CorrelationSpec(primary=_spec("Order", "P"), secondaries=(_spec("Payment", "a"), _spec("Payment", "b")))


def test_late_self_join_event_kept_by_longer_secondary_window(clock):
    engine = _engine(clock, [_spec("Tick", "S", value=60)], primary=_spec("Tick", "P", value=5))
    late = Event("Tick", "S", {"n": 1}).stamped(clock() - 10)
    assert engine.admit(late) == []
    assert engine.store.sizes() == {"Tick": 0, "Correlated_Tick": 1}
    assert engine.stats()["counters"]["admitted"] == 1
    assert engine.stats()["counters"]["dropped_late"] == 0

    results = engine.admit(Event("Tick", "P", {"n": 2}))
    assert len(results) == 1
    assert dict(results[0].secondaries)["Correlated_Tick"].fields["n"] == 1


def test_late_self_join_primary_does_not_trigger_join(clock):
    engine = _engine(clock, [_spec("Tick", "S", value=60)], primary=_spec("Tick", "P", value=5))
    engine.admit(Event("Tick", "S", {"n": 1}))
    late = Event("Tick", "P", {"n": 2}).stamped(clock() - 10)
    assert engine.admit(late) == []
    assert engine.store.sizes()["Correlated_Tick"] == 2


def test_routes_on_origin_id_field(clock):
    engine = _engine(clock, [_spec("Payment", "K1")])
    engine.admit(Event("Payment", "unrelated", {"originID": "K1", "key": "K9"}))
    results = engine.admit(Event.from_fields("Order", {"originID": "P", "key": "K9"}))
    assert len(results) == 1


def test_event_keyed_prefers_named_field():
    event = Event.from_fields("StartTime", {"originID": "req-1", "key": "svc1"})
    assert event.origin_key == "req-1"
    keyed = event.keyed("key")
    assert keyed.origin_key == "svc1"
    assert keyed.fields == event.fields
    assert event.keyed("originID") is event
    assert event.keyed("missing") is event
