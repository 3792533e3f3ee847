"""Tests for AssettoCorsa — connection lifecycle, polling and events."""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock, call

import pytest

from ac_shared_memory.telemetry.config import (
    GRAPHICS_REGION,
    PHYSICS_REGION,
    STATIC_INFO_REGION,
    TelemetryConfig,
)
from ac_shared_memory.telemetry.connection import GRAPHICS, AssettoCorsa
from ac_shared_memory.telemetry.exceptions import LayoutMismatchError, NotConnectedError
from ac_shared_memory.telemetry.models import AcSessionType, AcStatus, ConnectionState, Physics
from tests.telemetry.conftest import make_graphics, make_physics, wait_until

# ---------------------------------------------------------------------------
# connect / is_connected
# ---------------------------------------------------------------------------


def test_not_connected_before_start(shm, slow_config):
    ac = AssettoCorsa(slow_config, opener=shm.open)
    assert ac.is_connected is False
    assert ac.state is ConnectionState.DISCONNECTED


def test_read_before_start_raises_not_connected(shm, slow_config):
    shm.publish_all()
    ac = AssettoCorsa(slow_config, opener=shm.open)
    with pytest.raises(NotConnectedError):
        ac.read_physics()
    with pytest.raises(NotConnectedError):
        ac.read_graphics()
    with pytest.raises(NotConnectedError):
        ac.read_static_info()


def test_start_connects_when_all_regions_published(shm, slow_config):
    shm.publish_all(physics=make_physics(rpms=6500, gas=0.5))
    ac = AssettoCorsa(slow_config, opener=shm.open)
    try:
        assert ac.start() is True
        assert ac.is_connected
        physics = ac.read_physics()
        assert isinstance(physics, Physics)
        assert physics.rpms == 6500
        assert physics.gas == 0.5
    finally:
        ac.stop()


def test_read_reflects_latest_published_content(shm, slow_config):
    shm.publish_all()
    ac = AssettoCorsa(slow_config, opener=shm.open)
    with ac:
        shm.publish_all(graphics=make_graphics(completed_laps=4))
        assert ac.read_graphics().completed_laps == 4


@pytest.mark.parametrize("missing", [PHYSICS_REGION, GRAPHICS_REGION, STATIC_INFO_REGION])
def test_missing_region_leaves_nothing_open(shm, slow_config, missing):
    shm.publish_all()
    del shm.regions[missing]
    ac = AssettoCorsa(slow_config, opener=shm.open)
    try:
        assert ac.start() is False
        assert ac.state is ConnectionState.DISCONNECTED
        assert shm.open_handles() == []
    finally:
        ac.stop()


def test_retry_connects_once_regions_appear(shm, slow_config):
    ac = AssettoCorsa(slow_config, opener=shm.open)
    try:
        assert ac.start() is False
        time.sleep(0.05)
        assert not ac.is_connected
        shm.publish_all()
        assert wait_until(lambda: ac.is_connected)
        assert isinstance(ac.read_physics(), Physics)
    finally:
        ac.stop()


def test_retry_stops_after_connecting(shm, slow_config):
    opener = MagicMock(side_effect=shm.open)
    ac = AssettoCorsa(slow_config, opener=opener)
    try:
        ac.start()
        shm.publish_all()
        assert wait_until(lambda: ac.is_connected)
        calls = opener.call_count
        time.sleep(0.1)
        assert opener.call_count == calls
    finally:
        ac.stop()


def test_opener_os_error_keeps_retrying(shm, slow_config, caplog):
    shm.publish_all()
    failures = [OSError("access denied")]

    def opener(name):
        if failures:
            raise failures.pop()
        return shm.open(name)

    ac = AssettoCorsa(slow_config, opener=opener)
    try:
        assert ac.start() is False
        assert "Could not attach" in caplog.text
        assert wait_until(lambda: ac.is_connected)
    finally:
        ac.stop()


def test_start_twice_is_a_no_op(shm, slow_config):
    shm.publish_all()
    opener = MagicMock(side_effect=shm.open)
    ac = AssettoCorsa(slow_config, opener=opener)
    try:
        ac.start()
        assert ac.start() is True
        assert opener.call_count == 3
    finally:
        ac.stop()


# ---------------------------------------------------------------------------
# forced poll on connect
# ---------------------------------------------------------------------------


def test_connect_forces_one_poll_of_each_region_in_order(shm, slow_config):
    shm.publish_all()
    ac = AssettoCorsa(slow_config, opener=shm.open)
    order = []
    ac.static_info_updated.register(lambda r: order.append("static_info"))
    ac.graphics_updated.register(lambda r: order.append("graphics"))
    ac.physics_updated.register(lambda r: order.append("physics"))
    try:
        ac.start()
        assert order == ["static_info", "graphics", "physics"]
    finally:
        ac.stop()


def test_connect_reports_initial_transitions(shm, slow_config):
    shm.publish_all(graphics=make_graphics(status=AcStatus.LIVE, is_in_pit=True))
    ac = AssettoCorsa(slow_config, opener=shm.open)
    status_cb, pit_cb = MagicMock(), MagicMock()
    ac.run_status_changed.register(status_cb)
    ac.pit_status_changed.register(pit_cb)
    try:
        ac.start()
        status_cb.assert_called_once_with(AcStatus.LIVE)
        pit_cb.assert_not_called()
    finally:
        ac.stop()


def test_graphics_poller_reports_status_changes(shm):
    config = TelemetryConfig(physics_interval_ms=5000, graphics_interval_ms=5, retry_interval_ms=20)
    shm.publish_all()
    ac = AssettoCorsa(config, opener=shm.open)
    seen = []
    ac.run_status_changed.register(seen.append)
    try:
        ac.start()
        shm.publish_all(graphics=make_graphics(status=AcStatus.LIVE))
        assert wait_until(lambda: seen == [AcStatus.LIVE])
        shm.publish_all(graphics=make_graphics(status=AcStatus.PAUSE))
        assert wait_until(lambda: seen == [AcStatus.LIVE, AcStatus.PAUSE])
    finally:
        ac.stop()


def test_connection_changed_fires_on_connect_and_stop(shm, slow_config):
    shm.publish_all()
    ac = AssettoCorsa(slow_config, opener=shm.open)
    cb = MagicMock()
    ac.connection_changed.register(cb)
    ac.start()
    ac.stop()
    assert cb.call_args_list == [call(True), call(False)]


def test_connection_changed_not_fired_when_never_connected(shm, slow_config):
    ac = AssettoCorsa(slow_config, opener=shm.open)
    cb = MagicMock()
    ac.connection_changed.register(cb)
    ac.start()
    ac.stop()
    cb.assert_not_called()


# ---------------------------------------------------------------------------
# stop()
# ---------------------------------------------------------------------------


def test_stop_closes_all_handles(shm, slow_config):
    shm.publish_all()
    ac = AssettoCorsa(slow_config, opener=shm.open)
    ac.start()
    assert len(shm.open_handles()) == 3
    ac.stop()
    assert shm.open_handles() == []
    assert ac.state is ConnectionState.DISCONNECTED
    with pytest.raises(NotConnectedError):
        ac.read_physics()


def test_no_callbacks_after_stop(shm):
    config = TelemetryConfig(physics_interval_ms=1, graphics_interval_ms=1, static_info_interval_ms=1)
    shm.publish_all()
    ac = AssettoCorsa(config, opener=shm.open)
    cb = MagicMock()
    ac.physics_updated.register(cb)
    ac.graphics_updated.register(cb)
    ac.static_info_updated.register(cb)
    ac.start()
    assert wait_until(lambda: cb.call_count > 20)
    ac.stop()
    calls = cb.call_count
    time.sleep(0.05)
    assert cb.call_count == calls


def test_stop_mid_tick_waits_for_tick_to_finish(shm):
    config = TelemetryConfig(physics_interval_ms=1, graphics_interval_ms=5000, static_info_interval_ms=5000)
    shm.publish_all()
    ac = AssettoCorsa(config, opener=shm.open)
    in_tick = threading.Event()
    state = {"active": False, "after_stop": 0, "stopped": False}

    def slow_subscriber(physics):
        if state["stopped"]:
            state["after_stop"] += 1
        state["active"] = True
        in_tick.set()
        time.sleep(0.03)
        state["active"] = False

    ac.physics_updated.register(slow_subscriber)
    ac.start()
    in_tick.clear()
    assert in_tick.wait(2.0)
    ac.stop()
    state["stopped"] = True
    assert state["active"] is False
    time.sleep(0.05)
    assert state["after_stop"] == 0


def test_stop_from_subscriber_does_not_deadlock(shm):
    config = TelemetryConfig(physics_interval_ms=1, graphics_interval_ms=5000, static_info_interval_ms=5000)
    shm.publish_all()
    ac = AssettoCorsa(config, opener=shm.open)
    ticks = []

    def stop_on_second_tick(physics):
        ticks.append(physics)
        if len(ticks) == 2:
            ac.stop()

    ac.physics_updated.register(stop_on_second_tick)
    ac.start()
    assert wait_until(lambda: not ac.is_connected)
    time.sleep(0.03)
    assert len(ticks) == 2
    assert shm.open_handles() == []


def test_stop_during_forced_poll_aborts_connect(shm, slow_config):
    shm.publish_all()
    ac = AssettoCorsa(slow_config, opener=shm.open)
    physics_cb = MagicMock()
    ac.static_info_updated.register(lambda info: ac.stop())
    ac.physics_updated.register(physics_cb)
    assert ac.start() is False
    assert ac.state is ConnectionState.DISCONNECTED
    physics_cb.assert_not_called()
    assert shm.open_handles() == []


def test_stop_from_transition_subscriber_drops_rest_of_tick(shm, slow_config):
    shm.publish_all(
        graphics=make_graphics(status=AcStatus.LIVE, is_in_pit=False, session=AcSessionType.RACE)
    )
    ac = AssettoCorsa(slow_config, opener=shm.open)
    stops = []

    def stop_once(status):
        if not stops:
            stops.append(status)
            ac.stop()

    later_status_cb, pit_cb, session_cb = MagicMock(), MagicMock(), MagicMock()
    ac.run_status_changed.register(stop_once)
    ac.run_status_changed.register(later_status_cb)
    ac.pit_status_changed.register(pit_cb)
    ac.session_type_changed.register(session_cb)

    assert ac.start() is False
    assert stops == [AcStatus.LIVE]
    later_status_cb.assert_not_called()
    pit_cb.assert_not_called()
    session_cb.assert_not_called()

    # nothing from the abandoned tick was remembered, so all three are reported again
    try:
        assert ac.start() is True
        later_status_cb.assert_called_once_with(AcStatus.LIVE)
        pit_cb.assert_called_once_with(False)
        session_cb.assert_called_once_with(AcSessionType.RACE)
    finally:
        ac.stop()


def test_stop_from_subscriber_skips_remaining_subscribers(shm):
    config = TelemetryConfig(physics_interval_ms=1, graphics_interval_ms=5000, static_info_interval_ms=5000)
    shm.publish_all()
    ac = AssettoCorsa(config, opener=shm.open)
    ticks = []
    later_cb = MagicMock()

    def stop_on_second_tick(physics):
        ticks.append(physics)
        if len(ticks) == 2:
            later_cb.reset_mock()
            ac.stop()

    ac.physics_updated.register(stop_on_second_tick)
    ac.physics_updated.register(later_cb)
    ac.start()
    assert wait_until(lambda: not ac.is_connected)
    time.sleep(0.03)
    assert len(ticks) == 2
    later_cb.assert_not_called()


def test_stop_while_retrying_prevents_later_connect(shm, slow_config):
    ac = AssettoCorsa(slow_config, opener=shm.open)
    ac.start()
    ac.stop()
    shm.publish_all()
    time.sleep(0.1)
    assert not ac.is_connected
    assert shm.handles == []


def test_stop_without_start_is_safe(shm, slow_config):
    ac = AssettoCorsa(slow_config, opener=shm.open)
    ac.stop()
    ac.stop()
    assert ac.state is ConnectionState.DISCONNECTED


def test_restart_after_stop(shm, slow_config):
    shm.publish_all()
    ac = AssettoCorsa(slow_config, opener=shm.open)
    ac.start()
    ac.stop()
    try:
        assert ac.start() is True
        assert isinstance(ac.read_physics(), Physics)
    finally:
        ac.stop()


def test_context_manager_starts_and_stops(shm, slow_config):
    shm.publish_all()
    with AssettoCorsa(slow_config, opener=shm.open) as ac:
        assert ac.is_connected
    assert not ac.is_connected
    assert shm.open_handles() == []


# ---------------------------------------------------------------------------
# intervals
# ---------------------------------------------------------------------------


def test_default_intervals():
    ac = AssettoCorsa()
    assert ac.physics_interval == 10
    assert ac.graphics_interval == 1000
    assert ac.static_info_interval == 1000
    assert ac.retry_interval == 2000


def test_interval_setters(shm, slow_config):
    ac = AssettoCorsa(slow_config, opener=shm.open)
    ac.physics_interval = 20
    ac.graphics_interval = 200
    ac.static_info_interval = 2000
    ac.retry_interval = 500
    assert (ac.physics_interval, ac.graphics_interval, ac.static_info_interval, ac.retry_interval) == (
        20,
        200,
        2000,
        500,
    )
    with pytest.raises(ValueError):
        ac.physics_interval = 0


def test_region_intervals_are_independent(shm):
    config = TelemetryConfig(physics_interval_ms=10, graphics_interval_ms=1000, static_info_interval_ms=1000)
    shm.publish_all()
    ac = AssettoCorsa(config, opener=shm.open)
    physics_cb, graphics_cb = MagicMock(), MagicMock()
    ac.physics_updated.register(physics_cb)
    ac.graphics_updated.register(graphics_cb)
    ac.start()
    time.sleep(1.0)
    ac.stop()
    # forced poll plus one tick per 10 ms period
    assert 80 <= physics_cb.call_count <= 105
    assert 1 <= graphics_cb.call_count <= 2


def test_busy_subscriber_keeps_physics_rate(shm):
    config = TelemetryConfig(physics_interval_ms=10, graphics_interval_ms=5000, static_info_interval_ms=5000)
    shm.publish_all()
    ac = AssettoCorsa(config, opener=shm.open)
    ticks = []

    def busy_subscriber(physics):
        ticks.append(physics)
        time.sleep(0.005)

    ac.physics_updated.register(busy_subscriber)
    ac.start()
    time.sleep(1.0)
    ac.stop()
    # 5 ms of work per tick fits inside the 10 ms period
    assert 80 <= len(ticks) <= 105


# ---------------------------------------------------------------------------
# layout mismatch
# ---------------------------------------------------------------------------


def test_short_region_raises_layout_mismatch_not_not_connected(shm, slow_config):
    shm.publish_all()
    shm.publish(GRAPHICS_REGION, bytes(16))
    ac = AssettoCorsa(slow_config, opener=shm.open)
    try:
        ac.start()
        with pytest.raises(LayoutMismatchError):
            ac.read_graphics()
        assert GRAPHICS in ac.errors
        assert ac.is_connected
    finally:
        ac.stop()
