"""Runtime settings, read from the environment (and an optional .env file)."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .api import DEFAULT_TIMEOUT
from .db import default_db_file
from .reconcile import RangePolicy

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

# Individual packages are fetched in half-year chunks; the all-packages
# aggregate in small chunks to take it easy on the upstream server.
DEFAULT_PACKAGE_POLICY = RangePolicy(min_gap_days=7, max_span_days=180)
DEFAULT_GLOBAL_POLICY = RangePolicy(min_gap_days=3, max_span_days=10)

# Default length of the averages window, in days
DEFAULT_AVERAGE_DAYS = 60


@dataclass
class Settings:
    database: str
    registry: str = "npm"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    package_policy: RangePolicy = DEFAULT_PACKAGE_POLICY
    global_policy: RangePolicy = DEFAULT_GLOBAL_POLICY

    def policy_for(self, name: str) -> RangePolicy:
        """Range policy for a package name; the empty name is the global aggregate."""
        return self.global_policy if name == "" else self.package_policy


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {value!r}") from None


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    value = env.get(key, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {value!r}") from None


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build settings from environment variables.

    Recognized variables: PKGHIST_DATABASE, PKGHIST_REGISTRY, HOSTNAME, PORT,
    PKGHIST_TIMEOUT, PKGHIST_PACKAGE_MIN_GAP, PKGHIST_PACKAGE_MAX_SPAN,
    PKGHIST_GLOBAL_MIN_GAP and PKGHIST_GLOBAL_MAX_SPAN.
    """
    if env is None:
        env = os.environ

    return Settings(
        database=env.get("PKGHIST_DATABASE") or default_db_file(),
        registry=env.get("PKGHIST_REGISTRY") or "npm",
        host=env.get("HOSTNAME") or DEFAULT_HOST,
        port=_int(env, "PORT", DEFAULT_PORT),
        timeout=_float(env, "PKGHIST_TIMEOUT", DEFAULT_TIMEOUT),
        package_policy=RangePolicy(
            _int(env, "PKGHIST_PACKAGE_MIN_GAP", DEFAULT_PACKAGE_POLICY.min_gap_days),
            _int(env, "PKGHIST_PACKAGE_MAX_SPAN", DEFAULT_PACKAGE_POLICY.max_span_days),
        ),
        global_policy=RangePolicy(
            _int(env, "PKGHIST_GLOBAL_MIN_GAP", DEFAULT_GLOBAL_POLICY.min_gap_days),
            _int(env, "PKGHIST_GLOBAL_MAX_SPAN", DEFAULT_GLOBAL_POLICY.max_span_days),
        ),
    )
