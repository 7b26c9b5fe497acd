"""tickertrace: session-traced stock assistant demo for LLM logging backends."""

from __future__ import annotations

import logging
from typing import Any

from tickertrace._version import __version__
from tickertrace.config import Config
from tickertrace.emitter import CallEmitter, CallKind, ResultRecorder
from tickertrace.errors import MalformedContextError, RecorderError, TickerTraceError
from tickertrace.recorders import (
    CallRecord,
    HeliconeRecorder,
    InMemoryRecorder,
    NullRecorder,
    TraceRecorder,
)
from tickertrace.session import SessionContext, derive_context, new_root_context
from tickertrace.telemetry import TelemetryClient

logger = logging.getLogger("tickertrace")


class TickerTrace:
    """Wires configuration, clients and the call emitter together.

    Examples:
        # Everything from env vars / .env
        with TickerTrace() as client:
            run_all(client.emitter, client.config.runs)

        # No logging backend, model called directly
        TickerTrace(disabled=True)  # or TICKERTRACE_DISABLED=true

        # Injected collaborators (tests)
        TickerTrace(model_client=fake_openai, recorder=InMemoryRecorder())
    """

    def __init__(
        self,
        *,
        model_client: Any = None,
        recorder: TraceRecorder | None = None,
        disabled: bool | None = None,
        openai_api_key: str | None = None,
        helicone_api_key: str | None = None,
        gateway_url: str | None = None,
        log_endpoint: str | None = None,
        model: str | None = None,
        runs: int | None = None,
        otlp_endpoint: str | None = None,
        service_name: str | None = None,
        request_timeout: float | None = None,
        debug: bool | None = None,
    ):
        self._config = Config.create(
            disabled=disabled,
            openai_api_key=openai_api_key,
            helicone_api_key=helicone_api_key,
            gateway_url=gateway_url,
            log_endpoint=log_endpoint,
            model=model,
            runs=runs,
            otlp_endpoint=otlp_endpoint,
            service_name=service_name,
            request_timeout=request_timeout,
            debug=debug,
        )
        self._telemetry = TelemetryClient(self._config)
        self._recorder = recorder if recorder is not None else self._create_recorder()
        self._model_client = (
            model_client if model_client is not None else self._create_model_client()
        )
        self._emitter = CallEmitter(
            self._model_client,
            self._recorder,
            self._telemetry,
            model=self._config.model,
        )

    def __enter__(self) -> TickerTrace:
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        return f"TickerTrace(gateway={self._config.gateway_url!r}, model={self._config.model!r})"

    @property
    def config(self) -> Config:
        """Access immutable configuration."""
        return self._config

    @property
    def telemetry(self) -> TelemetryClient:
        return self._telemetry

    @property
    def recorder(self) -> TraceRecorder:
        return self._recorder

    @property
    def emitter(self) -> CallEmitter:
        return self._emitter

    def _create_recorder(self) -> TraceRecorder:
        if self._config.disabled:
            return NullRecorder()
        return HeliconeRecorder(
            self._config.helicone_api_key,
            self._config.log_endpoint,
            timeout=self._config.request_timeout,
        )

    def _create_model_client(self) -> Any:
        from openai import OpenAI

        if self._config.disabled:
            logger.info("Logging gateway bypassed; calling the model API directly")
            return OpenAI(api_key=self._config.openai_api_key, timeout=self._config.request_timeout)
        return OpenAI(
            base_url=self._config.gateway_url,
            api_key=self._config.openai_api_key,
            timeout=self._config.request_timeout,
            default_headers={"Helicone-Auth": f"Bearer {self._config.helicone_api_key or ''}"},
        )

    def shutdown(self) -> None:
        """Close the recorder and flush local spans."""
        self._recorder.close()
        self._telemetry.shutdown()


__all__ = [
    "__version__",
    "TickerTrace",
    "Config",
    "CallEmitter",
    "CallKind",
    "CallRecord",
    "ResultRecorder",
    "SessionContext",
    "new_root_context",
    "derive_context",
    "TraceRecorder",
    "HeliconeRecorder",
    "InMemoryRecorder",
    "NullRecorder",
    "TelemetryClient",
    "TickerTraceError",
    "MalformedContextError",
    "RecorderError",
]
