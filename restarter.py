# File: restarter.py
"""
restarter.py

Contains StackCommands to encapsulate the recovery commands the watchdog can issue:
- up():   docker compose up -d        (reconcile the whole stack)
- down(): docker compose down         (first half of a hard restart)
- restart_container(name): restart one container through the Docker SDK
Each command returns True on success. Failures are logged, never raised.
"""
import subprocess

import docker
import requests


class StackCommands:
    def __init__(self, cfg, log, get_client, run=subprocess.run):
        self.cfg = cfg
        self.log = log
        self._get_client = get_client
        self._run = run

    def up(self) -> bool:
        return self._compose("up", "-d")

    def down(self) -> bool:
        return self._compose("down")

    def restart_container(self, name) -> bool:
        self.log.info(f"Restarting container {name}")
        try:
            self._get_client().containers.get(name).restart()
        except (docker.errors.DockerException, requests.RequestException) as e:
            self.log.error(f"Restart of {name} failed: {e}")
            return False
        self.log.info(f"Container {name} restarted")
        return True

    def _compose(self, *args) -> bool:
        compose_file = self.cfg.compose_file
        label = "docker compose " + " ".join(args)
        if not compose_file.exists():
            self.log.error(f"{compose_file} not found.")
            return False
        cmd = ["docker", "compose", "-f", str(compose_file), *args]
        self.log.info(f"Running: {label}")
        try:
            res = self._run(cmd, capture_output=True, text=True,
                            timeout=self.cfg.command_timeout, check=False)
        except subprocess.TimeoutExpired:
            self.log.error(f"{label} timed out after {self.cfg.command_timeout:g}s")
            return False
        except OSError as e:
            self.log.error(f"{label} could not be run: {e}")
            return False
        if res.returncode != 0:
            for ln in (res.stderr or "").splitlines():
                if ln.strip():
                    self.log.error(ln.rstrip())
            self.log.error(f"{label} failed (exit {res.returncode})")
            return False
        self.log.info(f"{label} completed")
        return True
