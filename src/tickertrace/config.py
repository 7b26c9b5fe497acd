"""tickertrace configuration with env var support and validation."""

import os
from dataclasses import dataclass

from tickertrace._version import __version__

DEFAULT_GATEWAY_URL = "https://oai.helicone.ai/v1"
DEFAULT_LOG_ENDPOINT = "https://api.worker.helicone.ai/custom/v1/log"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_RUNS = 5


@dataclass(frozen=True, slots=True)
class Config:
    """Immutable configuration for a tickertrace process."""

    disabled: bool
    openai_api_key: str | None
    helicone_api_key: str | None
    gateway_url: str
    log_endpoint: str
    model: str
    runs: int
    otlp_endpoint: str | None
    service_name: str
    service_version: str
    request_timeout: float
    debug: bool

    def __repr__(self) -> str:
        # Keys stay out of reprs and log lines
        return (
            f"Config(disabled={self.disabled}, gateway_url={self.gateway_url!r}, "
            f"model={self.model!r}, runs={self.runs})"
        )

    @classmethod
    def create(
        cls,
        *,
        disabled: bool | None = None,
        openai_api_key: str | None = None,
        helicone_api_key: str | None = None,
        gateway_url: str | None = None,
        log_endpoint: str | None = None,
        model: str | None = None,
        runs: int | None = None,
        otlp_endpoint: str | None = None,
        service_name: str | None = None,
        service_version: str | None = None,
        request_timeout: float | None = None,
        debug: bool | None = None,
    ) -> "Config":
        """Create config with env var fallback chain."""
        resolved_disabled = (
            disabled if disabled is not None else _parse_bool_env("TICKERTRACE_DISABLED", False)
        )

        resolved_otlp = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

        resolved_runs = (
            runs if runs is not None else _parse_int_env("TICKERTRACE_RUNS", DEFAULT_RUNS)
        )
        if resolved_runs < 1:
            raise ValueError(f"runs must be at least 1, got {resolved_runs}")

        resolved_timeout = (
            request_timeout
            if request_timeout is not None
            else _parse_float_env("TICKERTRACE_TIMEOUT", 30.0)
        )
        if resolved_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {resolved_timeout}")

        return cls(
            disabled=resolved_disabled,
            openai_api_key=openai_api_key or os.getenv("OPENAI_API_KEY"),
            helicone_api_key=helicone_api_key or os.getenv("HELICONE_API_KEY"),
            gateway_url=_normalize_endpoint(
                gateway_url or os.getenv("HELICONE_GATEWAY_URL") or DEFAULT_GATEWAY_URL
            ),
            log_endpoint=_normalize_endpoint(
                log_endpoint or os.getenv("HELICONE_LOG_ENDPOINT") or DEFAULT_LOG_ENDPOINT
            ),
            model=model or os.getenv("TICKERTRACE_MODEL") or DEFAULT_MODEL,
            runs=resolved_runs,
            otlp_endpoint=_normalize_endpoint(resolved_otlp) if resolved_otlp else None,
            service_name=service_name or os.getenv("OTEL_SERVICE_NAME") or "tickertrace",
            service_version=service_version or __version__,
            request_timeout=resolved_timeout,
            debug=debug if debug is not None else _parse_bool_env("TICKERTRACE_DEBUG", False),
        )


def _normalize_endpoint(endpoint: str) -> str:
    """Normalize endpoint URL - validate and strip trailing slashes."""
    endpoint = endpoint.strip()
    if not endpoint.startswith(("http://", "https://")):
        raise ValueError(f"Invalid endpoint: {endpoint}. Must start with http:// or https://")
    return endpoint.rstrip("/")


def _parse_bool_env(key: str, default: bool) -> bool:
    """Parse boolean env var."""
    val = os.getenv(key, "").lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no"):
        return False
    return default


def _parse_int_env(key: str, default: int) -> int:
    val = os.getenv(key, "").strip()
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {val!r}") from None


def _parse_float_env(key: str, default: float) -> float:
    val = os.getenv(key, "").strip()
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {val!r}") from None
