# File: main.py
"""
main.py

Immich watchdog daemon. Wires the components together and runs the supervision loop:
rotate the log, make sure the Docker engine answers, then let the RecoveryController
check the containers and the API and recover them if needed. Ticks run back to back with
a fixed sleep in between, so a slow tick delays the next one instead of overlapping it.

SIGTERM/SIGINT set a stop event; every sleep waits on that event, so the daemon exits
promptly instead of sitting out a warm-up, tick or backoff wait.
"""
import os
import signal
import threading

from backoff_waiter import BackoffWaiter
from health_probe import HealthProbe
from inspector import ContainerInspector
from log_sink import LogSink
from recovery import RecoveryController
from restarter import StackCommands
from runtime_guard import RuntimeGuard
from watch_config import load_config


class WatchdogLoop:
    def __init__(self, cfg, log, guard, controller, stop_event):
        self.cfg = cfg
        self.log = log
        self.guard = guard
        self.controller = controller
        self._stop = stop_event

    def tick(self):
        try:
            self.log.rotate_if_needed()
            if not self.guard.ensure_up():
                return None
            return self.controller.evaluate_and_act()
        except Exception as e:
            self.log.error(f"Unexpected error during check: {type(e).__name__}: {e}")
            return None

    def run(self):
        self.log.info("==========================================")
        self.log.info(f"Immich watchdog started (PID: {os.getpid()})")
        self.log.info(f"Check interval: {self.cfg.check_interval:g}s")
        self.log.info(f"Log file: {self.cfg.log_path}")
        self.log.info("==========================================")

        # right after boot the Docker engine may still be coming up
        self._stop.wait(self.cfg.warmup_delay)
        while not self._stop.is_set():
            self.tick()
            self._stop.wait(self.cfg.check_interval)
        self.log.info("Immich watchdog stopped")


def build_loop(cfg, stop_event, log=None):
    log = log or LogSink(cfg.log_path, max_bytes=cfg.max_log_bytes, echo=True)
    guard = RuntimeGuard(cfg, log, sleep=stop_event.wait)
    controller = RecoveryController(
        cfg,
        log,
        inspector=ContainerInspector(guard.client),
        probe=HealthProbe.from_config(cfg),
        commands=StackCommands(cfg, log, guard.client),
        waiter=BackoffWaiter(stop_event),
        stop_event=stop_event,
    )
    return WatchdogLoop(cfg, log, guard, controller, stop_event)


def install_shutdown_handlers(stop_event):
    """Route SIGTERM/SIGINT to stop_event. Returns the list the received signals are recorded in."""
    received = []

    def _handle_shutdown(signum, frame):
        received.append(signum)
        # the interrupted Event.wait() may hold the event's lock; set it from another thread
        threading.Thread(target=stop_event.set, daemon=True).start()

    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)
    return received


def main():
    cfg = load_config()
    stop = threading.Event()
    loop = build_loop(cfg, stop)
    received = install_shutdown_handlers(stop)
    loop.run()
    if received:
        loop.log.info(f"Received signal {received[0]}, shut down")
    print('Exiting...')


if __name__ == '__main__':
    main()
