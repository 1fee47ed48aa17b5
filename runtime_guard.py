# File: runtime_guard.py
"""
runtime_guard.py

Makes sure the Docker engine itself answers before any container-level recovery is tried.
If `docker info` fails, the engine service is started once through systemctl, the guard
waits a grace period and checks again. The guard also owns the Docker SDK client shared
by the inspector and the restart commands; the client is (re)created lazily so that the
watchdog can start while the engine is still down.
"""
import subprocess

import docker
import requests


class RuntimeGuard:
    def __init__(self, cfg, log, sleep, client_factory=docker.from_env, run=subprocess.run):
        self.cfg = cfg
        self.log = log
        self._sleep = sleep
        self._client_factory = client_factory
        self._run = run
        self._client = None

    def client(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def engine_reachable(self) -> bool:
        try:
            self.client().info()
            return True
        except (docker.errors.DockerException, requests.RequestException):
            # drop the client, its connection may be stale after an engine restart
            self._client = None
            return False

    def ensure_up(self) -> bool:
        if self.engine_reachable():
            return True
        self.log.warn("Docker daemon is not responding. Trying to start it...")
        self._start_engine()
        self._sleep(self.cfg.engine_grace_period)
        if not self.engine_reachable():
            self.log.error("Docker daemon could not be started.")
            return False
        self.log.info("Docker daemon started")
        return True

    def _start_engine(self):
        cmd = ["systemctl", "start", self.cfg.engine_service]
        try:
            res = self._run(cmd, capture_output=True, text=True,
                            timeout=self.cfg.command_timeout, check=False)
        except (OSError, subprocess.TimeoutExpired) as e:
            self.log.warn(f"{' '.join(cmd)} failed: {e}")
            return
        if res.returncode != 0:
            detail = (res.stderr or "").strip()
            self.log.warn(f"{' '.join(cmd)} exited with {res.returncode}" + (f": {detail}" if detail else ""))
