"""End-to-end tests of a monitored group on the in-memory environment."""

from __future__ import annotations

import logging
from typing import Dict

import pytest

from environment.runtime import Environment
from models.group import AggregationMode, HealthBand
from models.schemas import BootstrapStatus
from services.monitor import GroupMonitor, create_co2_monitor
from settings import Settings

DEVICE = "co2_office"
SENSORS: Dict[str, float] = {"a/CO2": 400, "b/CO2": 800, "c/CO2": 1200}


def _settings(**overrides) -> Settings:
    values = dict(
        probe_interval=5.0,
        probe_attempts=60,
        recovery_debounce=2.0,
        member_prefix="CO2_",
        default_mode=3,
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


def _environment(readings: Dict[str, float]) -> Environment:
    env = Environment()
    for address, value in readings.items():
        env.points.ensure_point(address)
        env.set_value(address, value)
    return env


def _running_monitor(env: Environment, targets=tuple(SENSORS), **overrides) -> GroupMonitor:
    monitor = create_co2_monitor(env, "CO2 in the office", DEVICE, list(targets), settings=_settings(**overrides))
    env.advance(5.0)
    assert monitor.status is BootstrapStatus.succeeded
    return monitor


@pytest.fixture()
def env() -> Environment:
    return _environment(SENSORS)


def test_bootstrap_publishes_initial_mean(env: Environment) -> None:
    monitor = _running_monitor(env)

    snapshot = monitor.snapshot()
    assert snapshot.status is BootstrapStatus.succeeded
    assert snapshot.average == 800
    assert snapshot.state is HealthBand.STALE_AIR
    assert snapshot.mode is AggregationMode.MEAN
    assert [member.value for member in snapshot.members] == [400, 800, 1200]
    assert env.get_current_value(f"{DEVICE}/qtyCO2") == 3


def test_member_update_recomputes_and_republishes(env: Environment) -> None:
    _running_monitor(env)

    env.set_value("c/CO2", 3000)

    assert env.get_current_value(f"{DEVICE}/CO2_2") == 3000
    assert env.get_current_value(f"{DEVICE}/average") == 1400
    assert env.get_current_value(f"{DEVICE}/state") == int(HealthBand.LETHARGY)


def test_mode_write_is_not_retroactive(env: Environment) -> None:
    monitor = _running_monitor(env)

    env.set_value(f"{DEVICE}/typeAVG", 1)
    assert monitor.group.aggregation_mode is AggregationMode.MIN
    assert env.get_current_value(f"{DEVICE}/average") == 800

    env.set_value("a/CO2", 410.0)
    assert env.get_current_value(f"{DEVICE}/average") == 410
    assert env.get_current_value(f"{DEVICE}/state") == int(HealthBand.ACCEPTABLE)

    env.set_value(f"{DEVICE}/typeAVG", 2)
    env.set_value("b/CO2", 810)
    assert env.get_current_value(f"{DEVICE}/average") == 1200


def test_invalid_mode_write_is_ignored(env: Environment, caplog) -> None:
    monitor = _running_monitor(env)

    with caplog.at_level(logging.WARNING):
        env.set_value(f"{DEVICE}/typeAVG", 7)

    assert monitor.group.aggregation_mode is AggregationMode.MEAN
    assert env.get_current_value(f"{DEVICE}/typeAVG") == 3
    assert any("Ignoring unknown averaging mode" in record.getMessage() for record in caplog.records)


def test_member_fault_excludes_reading_immediately(env: Environment) -> None:
    monitor = _running_monitor(env)

    env.set_error("c/CO2", "r")

    assert monitor.group.valid_flags == [True, True, False]
    assert env.get_current_value(f"{DEVICE}/CO2_2#error") == "r"
    assert env.get_current_value(f"{DEVICE}/average") == 600
    assert env.get_current_value(f"{DEVICE}/state") == int(HealthBand.ACCEPTABLE)


def test_total_loss_marks_average_and_keeps_last_value(env: Environment) -> None:
    monitor = _running_monitor(env)

    for address in SENSORS:
        env.set_error(address, "r")
    env.set_value("a/CO2", 2600)

    snapshot = monitor.snapshot()
    assert not snapshot.group_valid
    # Only c/CO2 was still valid when the last value was published.
    assert snapshot.average == 1200
    assert snapshot.average_error == "r"
    assert all(not member.valid for member in snapshot.members)

    env.set_error("a/CO2", "")
    env.advance(1.5)
    assert env.get_current_value(f"{DEVICE}/average#error") == "r"

    env.advance(0.5)
    snapshot = monitor.snapshot()
    assert snapshot.group_valid
    assert snapshot.average_error is None
    assert snapshot.average == 2600
    assert snapshot.state is HealthBand.ADVERSE


def test_error_present_at_bootstrap_starts_member_invalid() -> None:
    env = _environment(SENSORS)
    env.set_error("b/CO2", "r")

    monitor = _running_monitor(env)

    assert monitor.group.valid_flags == [True, False, True]
    assert env.get_current_value(f"{DEVICE}/CO2_1#error") == "r"
    assert env.get_current_value(f"{DEVICE}/average") == 800


def test_partial_discovery_publishes_only_admitted_members() -> None:
    env = _environment({"a/CO2": 500, "c/CO2": 700})
    monitor = create_co2_monitor(
        env, "CO2", DEVICE, ["a/CO2", "ghost/CO2", "c/CO2"], settings=_settings(probe_attempts=2)
    )

    env.advance(10.0)

    assert monitor.status is BootstrapStatus.succeeded
    assert env.get_current_value(f"{DEVICE}/qtyCO2") == 2
    assert list(env.points.controls(DEVICE))[-2:] == ["CO2_0", "CO2_1"]
    assert env.points.definition(f"{DEVICE}/CO2_1").title == "c/CO2"
    assert env.get_current_value(f"{DEVICE}/average") == 600


def test_failed_discovery_publishes_nothing(caplog) -> None:
    env = Environment()
    monitor = create_co2_monitor(env, "CO2", DEVICE, ["a/CO2"], settings=_settings(probe_attempts=3))

    with caplog.at_level(logging.INFO):
        env.advance(15.0)

    assert monitor.status is BootstrapStatus.failed
    assert DEVICE not in env.points.devices()
    assert monitor.snapshot().members == []
    assert any(record.levelno == logging.CRITICAL for record in caplog.records)


def test_groups_are_independent() -> None:
    env = _environment({"a/CO2": 450})
    good = create_co2_monitor(env, "Office", "co2_office", ["a/CO2"], settings=_settings())
    bad = create_co2_monitor(env, "Lab", "co2_lab", ["lab/CO2"], settings=_settings(probe_attempts=1))

    env.advance(5.0)

    assert good.status is BootstrapStatus.succeeded
    assert bad.status is BootstrapStatus.failed
    assert env.get_current_value("co2_office/average") == 450


def test_default_mode_comes_from_settings(env: Environment) -> None:
    monitor = _running_monitor(env, default_mode=2)

    assert monitor.group.aggregation_mode is AggregationMode.MAX
    assert env.get_current_value(f"{DEVICE}/typeAVG") == 2
    assert env.get_current_value(f"{DEVICE}/average") == 1200


def test_stop_cancels_pending_discovery() -> None:
    env = Environment()
    monitor = create_co2_monitor(env, "CO2", DEVICE, ["a/CO2"], settings=_settings())

    monitor.stop()
    env.advance(1000.0)

    assert monitor.status is BootstrapStatus.pending


def test_accepted_mode_write_is_normalised_in_cell(env: Environment) -> None:
    monitor = _running_monitor(env)

    env.set_value(f"{DEVICE}/typeAVG", "min")

    assert monitor.group.aggregation_mode is AggregationMode.MIN
    assert env.get_current_value(f"{DEVICE}/typeAVG") == 1
    assert type(env.get_current_value(f"{DEVICE}/typeAVG")) is int

    env.set_value(f"{DEVICE}/typeAVG", 2.0)
    assert monitor.group.aggregation_mode is AggregationMode.MAX
    assert type(env.get_current_value(f"{DEVICE}/typeAVG")) is int


def test_average_keeps_integer_type_across_modes(env: Environment) -> None:
    _running_monitor(env)

    env.set_value(f"{DEVICE}/typeAVG", 1)
    env.set_value("a/CO2", 410.0)
    assert type(env.get_current_value(f"{DEVICE}/average")) is int

    env.set_value(f"{DEVICE}/typeAVG", 3)
    env.set_value("a/CO2", 400.0)
    assert env.get_current_value(f"{DEVICE}/average") == 800
    assert type(env.get_current_value(f"{DEVICE}/average")) is int
