# File: health_probe.py
"""
health_probe.py

Single-shot readiness check against the Immich server's ping endpoint.
Any failure (refused connection, timeout, non-2xx status) is reported as "not ready";
the recovery action does not depend on why the probe failed.
"""
import requests


class HealthProbe:
    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    @classmethod
    def from_config(cls, cfg):
        return cls(cfg.ping_url, timeout=cfg.probe_timeout)

    def ping(self) -> bool:
        try:
            r = requests.get(self.url, timeout=self.timeout)
        except requests.RequestException:
            return False
        return 200 <= r.status_code < 300
