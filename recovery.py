# File: recovery.py
"""
recovery.py

Escalation ladder run once per tick:
- Some required container is not running  -> compose up, then wait for the ping.
  A failed wait here ends the episode; the next tick starts over.
- All containers running, ping fails       -> restart the primary container, wait.
  A failed wait escalates to the next rung.
- Escalated                                -> compose down + up (hard restart), wait.
  A failed wait ends the episode with "manual check required".
Waits use the BackoffWaiter with the configured schedule. The level returned is
NOMINAL when the application ends up healthy and EXHAUSTED when the episode is abandoned.
"""
import threading
from enum import IntEnum

from inspector import ContainerStatus


class EscalationLevel(IntEnum):
    NOMINAL = 0
    CONTAINERS_RESTARTED = 1
    SERVER_RESTARTED = 2
    STACK_RESTARTED = 3
    EXHAUSTED = 4


class RecoveryController:
    def __init__(self, cfg, log, inspector, probe, commands, waiter, stop_event=None):
        self.cfg = cfg
        self.log = log
        self.inspector = inspector
        self.probe = probe
        self.commands = commands
        self.waiter = waiter
        self._stop = stop_event or threading.Event()
        self.level = EscalationLevel.NOMINAL

    def evaluate_and_act(self) -> EscalationLevel:
        self.level = EscalationLevel.NOMINAL
        statuses = self.inspector.snapshot(self.cfg.required_containers)
        down = {name: st for name, st in statuses.items() if st is not ContainerStatus.RUNNING}
        if down:
            for name, st in down.items():
                self.log.warn(f"{name} status: {st.value}")
            return self._bring_up()
        if self.probe.ping():
            return self.level
        self.log.warn("All containers are running but the API is not responding")
        return self._restart_primary()

    def _bring_up(self):
        self.level = EscalationLevel.CONTAINERS_RESTARTED
        self.log.info("Attempting service recovery: docker compose up -d")
        if not self.commands.up():
            return self._abandon("docker compose up -d failed")
        if self._wait_ready():
            return self._recovered()
        if self._stop.is_set():
            return self._abandon("Shutdown requested, recovery stopped", self.log.info)
        return self._abandon("API still not responding after docker compose up -d. Manual check required.")

    def _restart_primary(self):
        self.level = EscalationLevel.SERVER_RESTARTED
        name = self.cfg.primary_container
        if not self.commands.restart_container(name):
            return self._abandon(f"Could not restart {name}")
        if self._wait_ready():
            return self._recovered()
        if self._stop.is_set():
            return self._abandon("Shutdown requested, recovery stopped", self.log.info)
        self.log.warn(f"API still not responding after restarting {name}, escalating to a full stack restart")
        return self._hard_restart()

    def _hard_restart(self):
        self.level = EscalationLevel.STACK_RESTARTED
        self.log.info("Hard restart: docker compose down && docker compose up -d")
        if not self.commands.down():
            return self._abandon("docker compose down failed")
        if not self.commands.up():
            return self._abandon("docker compose up -d failed after down")
        if self._wait_ready():
            return self._recovered()
        return self._abandon("API still not responding after full stack restart. Manual check required.")

    def _wait_ready(self) -> bool:
        return self.waiter.wait_until(self.probe.ping, self.cfg.backoff)

    def _recovered(self):
        self.log.info("Service recovered (API responded)")
        self.level = EscalationLevel.NOMINAL
        return self.level

    def _abandon(self, reason, report=None):
        (report or self.log.error)(reason)
        self.level = EscalationLevel.EXHAUSTED
        return self.level
