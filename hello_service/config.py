import os
from dataclasses import dataclass, replace
from typing import Mapping

from dotenv import load_dotenv

from .cpu_task import DEFAULT_FIB_N, LOAD_MODES

VARIANTS = ("hello", "fib")
DEFAULT_PORTS = {"hello": 8000, "fib": 8081}
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class Settings:
    environment: str = "test"
    variant: str = "hello"
    host: str = "0.0.0.0"
    # None means "the variant's default", resolved by listen_port
    port: int | None = None
    fib_n: int = DEFAULT_FIB_N
    load_mode: str = "inline"
    unmatched_status: int = 500
    metrics_port: int | None = None
    log_level: str = "INFO"

    @property
    def simulate_load(self) -> bool:
        return self.variant == "fib"

    @property
    def listen_port(self) -> int:
        if self.port is not None:
            return self.port
        return DEFAULT_PORTS[self.variant]

    def override(self, **changes) -> "Settings":
        """Return a copy with the non-None ``changes`` applied and validated."""
        changes = {k: v for k, v in changes.items() if v is not None}
        updated = replace(self, **changes)
        _validate(updated)
        return updated


def env_file(environment: str) -> str:
    return os.path.join(os.path.dirname(__file__), f".env.{environment}")


def _int(environ: Mapping[str, str], name: str, default: int | None) -> int | None:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _validate(settings: Settings) -> None:
    if settings.variant not in VARIANTS:
        raise ValueError(f"HELLO_VARIANT must be one of {', '.join(VARIANTS)}, got {settings.variant!r}")
    if settings.load_mode not in LOAD_MODES:
        raise ValueError(f"LOAD_MODE must be one of {', '.join(LOAD_MODES)}, got {settings.load_mode!r}")
    if settings.port is not None and not 0 <= settings.port <= 65535:
        raise ValueError(f"HELLO_PORT out of range: {settings.port}")
    if settings.metrics_port is not None and not 0 <= settings.metrics_port <= 65535:
        raise ValueError(f"METRICS_PORT out of range: {settings.metrics_port}")
    if settings.fib_n < 0:
        raise ValueError(f"FIB_N must not be negative, got {settings.fib_n}")
    if not 100 <= settings.unmatched_status <= 599:
        raise ValueError(f"UNMATCHED_STATUS must be an HTTP status code, got {settings.unmatched_status}")
    if settings.log_level not in LOG_LEVELS:
        raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {settings.log_level!r}")


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from the environment.

    With no explicit mapping, ``.env.<ENVIRONMENT>`` beside this module is
    loaded first (existing variables win) and ``os.environ`` is read.
    """
    if environ is None:
        path = env_file(os.getenv("ENVIRONMENT", "test"))
        if os.path.exists(path):
            load_dotenv(path)
        environ = os.environ

    variant = environ.get("HELLO_VARIANT", "hello").strip().lower()
    settings = Settings(
        environment=environ.get("ENVIRONMENT", "test"),
        variant=variant,
        host=environ.get("HELLO_HOST", "0.0.0.0"),
        port=_int(environ, "HELLO_PORT", None),
        fib_n=_int(environ, "FIB_N", DEFAULT_FIB_N),
        load_mode=environ.get("LOAD_MODE", "inline").strip().lower(),
        unmatched_status=_int(environ, "UNMATCHED_STATUS", 500),
        metrics_port=_int(environ, "METRICS_PORT", None),
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
    )
    _validate(settings)
    return settings
