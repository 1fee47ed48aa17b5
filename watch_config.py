# File: watch_config.py
"""
watch_config.py

Builds the immutable configuration the watchdog runs with:
- BackoffSchedule: initial delay, multiplier and total budget for post-recovery waits.
- WatchdogConfig: paths, container names, intervals and thresholds, created once at startup.
- load_port reads IMMICH_PORT from the installer-generated .env file, falling back to 2283.
- load_config honours the single WATCHDOG_LOG environment override.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import dotenv_values

DEFAULT_INSTALL_DIR = Path("/opt/immich")
DEFAULT_PORT = 2283
DEFAULT_LOG_PATH = Path("/tmp/immich-watchdog.log")
PORT_KEY = "IMMICH_PORT"
LOG_ENV_VAR = "WATCHDOG_LOG"


@dataclass(frozen=True)
class BackoffSchedule:
    initial_delay: float = 5.0
    multiplier: float = 2.0
    max_total_wait: float = 180.0

    def __post_init__(self):
        if self.initial_delay <= 0:
            raise ValueError(f"initial_delay must be positive, got {self.initial_delay}")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be >= 1, got {self.multiplier}")
        if self.max_total_wait <= 0:
            raise ValueError(f"max_total_wait must be positive, got {self.max_total_wait}")


@dataclass(frozen=True)
class WatchdogConfig:
    install_dir: Path = DEFAULT_INSTALL_DIR
    compose_file: Path | None = None
    env_file: Path | None = None
    required_containers: tuple[str, ...] = ("immich_server", "immich_redis", "immich_postgres")
    primary_container: str = "immich_server"
    port: int = DEFAULT_PORT
    ping_path: str = "/api/server/ping"
    probe_timeout: float = 5.0
    check_interval: float = 60.0
    warmup_delay: float = 30.0
    engine_grace_period: float = 10.0
    engine_service: str = "docker"
    command_timeout: float = 300.0
    log_path: Path = DEFAULT_LOG_PATH
    max_log_bytes: int = 10 * 1024 * 1024
    backoff: BackoffSchedule = field(default_factory=BackoffSchedule)

    def __post_init__(self):
        # frozen: derived paths have to go through object.__setattr__
        install_dir = Path(self.install_dir)
        object.__setattr__(self, "install_dir", install_dir)
        compose_file = install_dir / "docker-compose.yml" if self.compose_file is None else self.compose_file
        env_file = install_dir / ".env" if self.env_file is None else self.env_file
        object.__setattr__(self, "compose_file", Path(compose_file))
        object.__setattr__(self, "env_file", Path(env_file))
        object.__setattr__(self, "log_path", Path(self.log_path))
        object.__setattr__(self, "required_containers", tuple(self.required_containers))

        if not self.required_containers:
            raise ValueError("required_containers must not be empty")
        if len(set(self.required_containers)) != len(self.required_containers):
            raise ValueError(f"duplicate names in required_containers: {self.required_containers}")
        if self.primary_container not in self.required_containers:
            raise ValueError(
                f"primary_container '{self.primary_container}' is not in required_containers"
            )
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        for name in ("probe_timeout", "check_interval", "command_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("warmup_delay", "engine_grace_period"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.max_log_bytes <= 0:
            raise ValueError("max_log_bytes must be positive")

    @property
    def ping_url(self) -> str:
        return f"http://localhost:{self.port}{self.ping_path}"


def load_port(env_file, key: str = PORT_KEY, default: int = DEFAULT_PORT) -> int:
    """
    Returns the port stored under `key` in a key=value env file.
    A missing or unreadable file, a missing key, or a value that is not a valid
    TCP port all give `default`.
    """
    try:
        values = dotenv_values(env_file)
    except (OSError, UnicodeDecodeError):
        return default
    raw = (values.get(key) or "").strip()
    try:
        port = int(raw)
    except ValueError:
        return default
    if not 1 <= port <= 65535:
        return default
    return port


def load_config(environ=None, install_dir=DEFAULT_INSTALL_DIR) -> WatchdogConfig:
    """Build the startup configuration from the environment and the generated .env file."""
    env = os.environ if environ is None else environ
    install_dir = Path(install_dir)
    log_path = env.get(LOG_ENV_VAR) or DEFAULT_LOG_PATH
    port = load_port(install_dir / ".env")
    return WatchdogConfig(install_dir=install_dir, port=port, log_path=Path(log_path))
