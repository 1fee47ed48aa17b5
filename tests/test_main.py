import signal
import subprocess
import threading
from unittest.mock import MagicMock, patch

import docker
import pytest

from main import WatchdogLoop, build_loop, install_shutdown_handlers
from recovery import EscalationLevel, RecoveryController


class ScriptedStop(threading.Event):
    """Stop event that records waits and sets itself after a number of tick sleeps."""

    def __init__(self, ticks, interval):
        super().__init__()
        self.ticks = ticks
        self.interval = interval
        self.waits = []

    def wait(self, timeout=None):
        self.waits.append(timeout)
        if timeout == self.interval:
            self.ticks -= 1
            if self.ticks <= 0:
                self.set()
        return self.is_set()


@pytest.fixture
def parts(cfg, log):
    events = []
    guard = MagicMock()
    guard.ensure_up.side_effect = lambda: events.append("guard") or True
    controller = MagicMock()
    controller.evaluate_and_act.side_effect = lambda: events.append("evaluate") or EscalationLevel.NOMINAL
    log.rotate_if_needed = lambda: events.append("rotate") or False
    return events, guard, controller


class TestTick:
    def test_fixed_order(self, cfg, log, parts):
        events, guard, controller = parts
        loop = WatchdogLoop(cfg, log, guard, controller, threading.Event())
        assert loop.tick() is EscalationLevel.NOMINAL
        assert events == ["rotate", "guard", "evaluate"]

    def test_engine_down_short_circuits(self, cfg, log, parts):
        events, guard, controller = parts
        guard.ensure_up.side_effect = lambda: events.append("guard") and False
        loop = WatchdogLoop(cfg, log, guard, controller, threading.Event())
        assert loop.tick() is None
        assert events == ["rotate", "guard"]
        controller.evaluate_and_act.assert_not_called()

    def test_unexpected_error_is_logged(self, cfg, log, parts):
        _, guard, controller = parts
        controller.evaluate_and_act.side_effect = RuntimeError("boom")
        loop = WatchdogLoop(cfg, log, guard, controller, threading.Event())
        assert loop.tick() is None
        assert log.lines[-1] == ("ERROR", "Unexpected error during check: RuntimeError: boom")


class TestRun:
    def test_banner_warmup_then_ticks(self, cfg, log, parts):
        events, guard, controller = parts
        stop = ScriptedStop(ticks=3, interval=cfg.check_interval)
        WatchdogLoop(cfg, log, guard, controller, stop).run()
        assert stop.waits == [30, 60, 60, 60]
        assert events == ["rotate", "guard", "evaluate"] * 3
        messages = [msg for _, msg in log.lines]
        assert any(m.startswith("Immich watchdog started (PID: ") for m in messages)
        assert "Check interval: 60s" in messages
        assert f"Log file: {cfg.log_path}" in messages
        assert messages[-1] == "Immich watchdog stopped"

    def test_engine_down_still_sleeps_and_retries(self, cfg, log, parts):
        events, guard, controller = parts
        guard.ensure_up.side_effect = lambda: events.append("guard") and False
        stop = ScriptedStop(ticks=2, interval=cfg.check_interval)
        WatchdogLoop(cfg, log, guard, controller, stop).run()
        assert events == ["rotate", "guard"] * 2
        assert stop.waits == [30, 60, 60]

    def test_ticks_never_overlap(self, cfg, log, parts):
        events, guard, controller = parts
        stop = ScriptedStop(ticks=2, interval=cfg.check_interval)
        order = []
        stop_wait = stop.wait

        def wait(timeout=None):
            order.append(("sleep", timeout))
            return stop_wait(timeout)

        stop.wait = wait
        controller.evaluate_and_act.side_effect = lambda: order.append(("evaluate", None))
        WatchdogLoop(cfg, log, guard, controller, stop).run()
        assert order == [("sleep", 30), ("evaluate", None), ("sleep", 60), ("evaluate", None), ("sleep", 60)]

    def test_stop_during_warmup_skips_ticks(self, cfg, log, parts):
        events, guard, controller = parts
        stop = threading.Event()
        stop.set()
        WatchdogLoop(cfg, log, guard, controller, stop).run()
        assert events == []


class TestBuildLoop:
    def test_wiring(self, cfg, log):
        stop = threading.Event()
        loop = build_loop(cfg, stop, log=log)
        assert isinstance(loop.controller, RecoveryController)
        assert loop.controller.probe.url == cfg.ping_url
        assert loop.controller.cfg is cfg
        assert loop.guard.cfg is cfg

    def test_engine_down_means_no_container_queries(self, cfg, log):
        stop = threading.Event()
        loop = build_loop(cfg, stop, log=log)
        loop.guard._client_factory = MagicMock(side_effect=docker.errors.DockerException("down"))
        loop.guard._run = MagicMock(return_value=subprocess.CompletedProcess([], 0, "", ""))
        loop.guard._sleep = lambda s: None
        with patch("health_probe.requests.get") as get:
            assert loop.tick() is None
        get.assert_not_called()
        assert loop.guard._client_factory.call_count == 2


class TestShutdownHandlers:
    def test_signal_only_sets_stop(self):
        stop = threading.Event()
        with patch("main.signal.signal") as register:
            received = install_shutdown_handlers(stop)
        handlers = {c.args[0]: c.args[1] for c in register.call_args_list}
        assert set(handlers) == {signal.SIGTERM, signal.SIGINT}

        handlers[signal.SIGTERM](signal.SIGTERM, None)
        assert stop.wait(2) is True
        assert received == [signal.SIGTERM]

