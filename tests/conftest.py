from pathlib import Path

import pytest

from watch_config import BackoffSchedule, WatchdogConfig


class RecordingLog:
    """In-memory stand-in for LogSink that keeps (level, message) pairs."""

    def __init__(self):
        self.lines = []

    def append(self, message, level="INFO"):
        self.lines.append((level, message))

    def info(self, message):
        self.append(message, "INFO")

    def warn(self, message):
        self.append(message, "WARN")

    def error(self, message):
        self.append(message, "ERROR")

    def rotate_if_needed(self):
        return False

    def levels(self):
        return [lvl for lvl, _ in self.lines]


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def log():
    return RecordingLog()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cfg(tmp_path: Path) -> WatchdogConfig:
    compose = tmp_path / "docker-compose.yml"
    compose.write_text("services: {}\n")
    return WatchdogConfig(
        install_dir=tmp_path,
        compose_file=compose,
        required_containers=("server", "cache", "db"),
        primary_container="server",
        log_path=tmp_path / "watchdog.log",
        backoff=BackoffSchedule(initial_delay=5, multiplier=2, max_total_wait=180),
    )
