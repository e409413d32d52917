"""Unit tests for the aggregation logic."""

from __future__ import annotations

from environment.runtime import Environment
from models.group import AggregationMode, HealthBand, SensorGroup
from services.aggregator import AggregationEngine, Aggregator, round_half_up


def _group(*addresses: str) -> SensorGroup:
    group = SensorGroup(display_name="co2_test")
    for index, address in enumerate(addresses):
        group.admit(address, f"CO2_{index}")
    group.bootstrapped = True
    return group


def _engine(group: SensorGroup) -> AggregationEngine:
    return AggregationEngine(Environment(), group)


def test_aggregate_empty_iterable_returns_default_summary() -> None:
    summary = Aggregator().aggregate([])

    assert summary.count == 0
    assert summary.min_value is None
    assert summary.max_value is None
    assert summary.mean_value is None
    assert summary.select(AggregationMode.MEAN) is None


def test_aggregate_computes_statistics() -> None:
    summary = Aggregator().aggregate([400.0, 800.0, 1200.0])

    assert summary.count == 3
    assert summary.min_value == 400.0
    assert summary.max_value == 1200.0
    assert summary.mean_value == 800.0


def test_select_by_mode() -> None:
    summary = Aggregator().aggregate([400.0, 800.0, 1200.0])

    assert summary.select(AggregationMode.MIN) == 400
    assert summary.select(AggregationMode.MAX) == 1200
    assert summary.select(AggregationMode.MEAN) == 800


def test_mean_rounds_half_up() -> None:
    assert Aggregator().aggregate([400.0, 401.0]).select(AggregationMode.MEAN) == 401
    assert Aggregator().aggregate([400.0, 400.0, 401.0]).select(AggregationMode.MEAN) == 400
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -3


def test_engine_skips_invalid_members() -> None:
    group = _group("a/CO2", "b/CO2", "c/CO2")
    engine = _engine(group)
    engine.handle_value(400, "a/CO2")
    engine.handle_value(800, "b/CO2")
    group.valid_flags[2] = False
    engine.handle_value(3000, "c/CO2")

    assert group.latest_values == [400.0, 800.0, 3000.0]
    assert engine.last_value == 600
    assert engine.last_band is HealthBand.ACCEPTABLE


def test_engine_keeps_previous_value_without_valid_members() -> None:
    group = _group("a/CO2", "b/CO2")
    engine = _engine(group)
    engine.handle_value(900, "a/CO2")
    assert engine.last_value == 900

    group.valid_flags[:] = [False, False]
    group.recompute_validity()

    assert engine.recompute() is None
    engine.handle_value(2000, "b/CO2")
    assert engine.last_value == 900
    assert engine.last_band is HealthBand.STALE_AIR


def test_repeated_value_recomputes_identically() -> None:
    group = _group("a/CO2", "b/CO2")
    engine = _engine(group)
    engine.handle_value(700, "a/CO2")
    engine.handle_value(1001, "b/CO2")
    first = (engine.last_value, engine.last_band)

    engine.handle_value(1001, "b/CO2")

    assert (engine.last_value, engine.last_band) == first == (851, HealthBand.STALE_AIR)


def test_mode_change_applies_on_next_event_only() -> None:
    group = _group("a/CO2", "b/CO2")
    engine = _engine(group)
    engine.handle_value(500, "a/CO2")
    engine.handle_value(1500, "b/CO2")
    assert engine.last_value == 1000

    group.aggregation_mode = AggregationMode.MAX
    assert engine.last_value == 1000

    engine.handle_value(510, "a/CO2")
    assert engine.last_value == 1500
    assert engine.last_band is HealthBand.LETHARGY


def test_non_numeric_reading_is_ignored(caplog) -> None:
    group = _group("a/CO2")
    engine = _engine(group)
    engine.handle_value(640, "a/CO2")

    engine.handle_value("offline", "a/CO2")

    assert group.latest_values == [640.0]
    assert engine.last_value == 640
    assert any("non-numeric" in record.getMessage() for record in caplog.records)


def test_unknown_address_is_ignored() -> None:
    group = _group("a/CO2")
    engine = _engine(group)

    engine.handle_value(640, "z/CO2")
    engine.handle_value(640, "a/CO2#error")

    assert group.latest_values == [None]
    assert engine.last_value is None


def test_whole_min_and_max_are_integers() -> None:
    summary = Aggregator().aggregate([400.0, 612.5])

    assert type(summary.select(AggregationMode.MIN)) is int
    assert summary.select(AggregationMode.MAX) == 612.5
    assert type(summary.select(AggregationMode.MEAN)) is int
