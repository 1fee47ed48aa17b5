# File: inspector.py
"""
inspector.py

Reads the current state of the required containers from the Docker engine.
States are looked up fresh on every call; nothing is cached between ticks.
A container that does not exist is reported as MISSING, any runtime state the
watchdog does not know about as UNKNOWN, and a failed lookup also as UNKNOWN.
"""
from enum import Enum

import docker
import requests


class ContainerStatus(Enum):
    RUNNING = "running"
    EXITED = "exited"
    MISSING = "missing"
    RESTARTING = "restarting"
    UNKNOWN = "unknown"

    @classmethod
    def from_runtime(cls, state) -> "ContainerStatus":
        """Map Docker's State.Status string onto the closed status set."""
        if state in ("running", "exited", "restarting"):
            return cls(state)
        return cls.UNKNOWN


class ContainerInspector:
    def __init__(self, get_client):
        # get_client returns a connected docker.DockerClient
        self._get_client = get_client

    def status_of(self, name: str) -> ContainerStatus:
        try:
            container = self._get_client().containers.get(name)
        except docker.errors.NotFound:
            return ContainerStatus.MISSING
        except (docker.errors.DockerException, requests.RequestException):
            return ContainerStatus.UNKNOWN
        return ContainerStatus.from_runtime(container.status)

    def snapshot(self, names) -> dict[str, ContainerStatus]:
        return {name: self.status_of(name) for name in names}

    def all_up(self, names) -> bool:
        return all(status is ContainerStatus.RUNNING for status in self.snapshot(names).values())
