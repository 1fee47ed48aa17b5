# File: log_sink.py
"""
log_sink.py

Append-only, size-bounded watchdog log.
Every line is written as "[YYYY-MM-DD HH:MM:SS] [LEVEL] message" so that an operator can
tail the file while the watchdog keeps writing. When the file grows past max_bytes it is
renamed to <path>.old (one previous generation only) and a fresh file is started.
"""
import os
import sys
from datetime import datetime
from pathlib import Path

INFO = "INFO"
WARN = "WARN"
ERROR = "ERROR"


class LogSink:
    def __init__(self, path, max_bytes=10 * 1024 * 1024, echo=False, now=datetime.now):
        self.path = Path(path)
        self.old_path = self.path.with_name(self.path.name + ".old")
        self.max_bytes = max_bytes
        self.echo = echo
        self._now = now
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"[watchdog] WARN: cannot create log directory {self.path.parent}: {e}", file=sys.stderr)

    def append(self, message, level=INFO):
        line = f"[{self._now().strftime('%Y-%m-%d %H:%M:%S')}] [{level}] {message}\n"
        if self.echo:
            print(line, end="", flush=True)
        try:
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line)
        except OSError as e:
            print(f"[watchdog] WARN: failed to write log {self.path}: {e}", file=sys.stderr)

    def info(self, message):
        self.append(message, INFO)

    def warn(self, message):
        self.append(message, WARN)

    def error(self, message):
        self.append(message, ERROR)

    def rotate_if_needed(self) -> bool:
        """
        Rotates the log when it is larger than max_bytes.
        Returns True if a rotation happened. A failed size check or rename is
        treated as "nothing to do".
        """
        try:
            size = self.path.stat().st_size
        except OSError:
            return False
        if size <= self.max_bytes:
            return False
        try:
            os.replace(self.path, self.old_path)
        except OSError as e:
            print(f"[watchdog] WARN: log rotation failed: {e}", file=sys.stderr)
            return False
        self.info(f"Log rotated (previous log: {self.old_path})")
        return True
