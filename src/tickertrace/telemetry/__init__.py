"""TelemetryClient: TracerProvider setup and span export."""

from __future__ import annotations

import atexit
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.trace import Status, StatusCode

from tickertrace.telemetry.encoding import encode_value, span_to_dict, to_attribute
from tickertrace.telemetry.resource import get_otel_resource
from tickertrace.telemetry.setup import setup_otlp

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import SpanProcessor
    from opentelemetry.trace import Span, Tracer

    from tickertrace.config import Config

logger = logging.getLogger("tickertrace.telemetry")


class TelemetryClient:
    """Manages the TracerProvider that local emission spans go to."""

    tracer_provider: Any  # SDK TracerProvider or NoOp

    def __init__(self, config: Config) -> None:
        self._config = config
        self._file_exporters: list[Any] = []
        self._shutdown_lock = threading.Lock()
        self._shutdown_called = False
        self._atexit_registered = False
        self._otlp_processor: BatchSpanProcessor | None = None
        self._disabled = config.disabled

        if config.debug:
            logging.getLogger("tickertrace").setLevel(logging.DEBUG)
            logger.debug("tickertrace debug mode enabled")
            logger.debug("Config: %r otlp=%s", config, config.otlp_endpoint)

        if config.disabled:
            logger.info("tickertrace disabled - no telemetry will be collected")
            self.tracer_provider = trace.NoOpTracerProvider()
            return

        resource = get_otel_resource(config)
        self.tracer_provider = TracerProvider(resource=resource)

        # An existing SDK provider is left untouched; ours stays private
        if not isinstance(trace.get_tracer_provider(), TracerProvider):
            trace.set_tracer_provider(self.tracer_provider)
        else:
            logger.debug("Global TracerProvider already set; using a private provider")

        self._otlp_processor = setup_otlp(config, self.tracer_provider)
        if self._otlp_processor is not None:
            logger.info("Exporting spans via OTLP to %s", config.otlp_endpoint)

    @property
    def is_disabled(self) -> bool:
        return self._disabled

    def get_tracer(self, name: str = "tickertrace", version: str | None = None) -> Tracer:
        """Get tracer for custom spans."""
        from tickertrace._version import __version__

        tracer: Tracer = self.tracer_provider.get_tracer(name, version or __version__)
        return tracer

    @contextmanager
    def span(self, name: str, **kwargs: Any) -> Iterator[Span]:
        """Context manager for spans with auto error status."""
        with self.get_tracer().start_as_current_span(
            name, record_exception=False, set_status_on_exception=False, **kwargs
        ) as s:
            try:
                yield s
            except Exception as e:
                s.set_status(Status(StatusCode.ERROR, str(e)))
                s.record_exception(e)
                raise

    def add_span_processor(self, processor: SpanProcessor) -> TelemetryClient:
        """Attach an extra span processor (tests use an in-memory exporter)."""
        if self._disabled:
            return self
        self.tracer_provider.add_span_processor(processor)
        return self

    def setup_console_exporter(self, **kwargs: Any) -> TelemetryClient:
        """Add console exporter for debugging."""
        return self.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter(**kwargs)))

    def setup_file_exporter(self, path: str = "traces.jsonl", mode: str = "a") -> TelemetryClient:
        """Add JSONL file exporter."""
        if self._disabled:
            return self
        from tickertrace.telemetry.exporters import JsonFileSpanExporter

        exp = JsonFileSpanExporter(path, mode)
        self.tracer_provider.add_span_processor(BatchSpanProcessor(exp))
        self._file_exporters.append(exp)
        self._register_atexit()
        logger.info("Writing spans to %s", path)
        return self

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Force flush all pending spans."""
        if hasattr(self.tracer_provider, "force_flush"):
            return bool(self.tracer_provider.force_flush(timeout_millis))
        return True

    def _register_atexit(self) -> None:
        if not self._atexit_registered:
            atexit.register(self.shutdown)
            self._atexit_registered = True

    def shutdown(self, timeout_millis: int = 30000) -> None:
        """Graceful shutdown with flush."""
        with self._shutdown_lock:
            if self._shutdown_called:
                return
            self._shutdown_called = True

        if self._disabled:
            return

        try:
            self.tracer_provider.force_flush(timeout_millis)
        except Exception as e:
            logger.warning("Span flush failed: %s", e)

        # Provider shutdown also shuts down the file exporters' processors
        self.tracer_provider.shutdown()
        for exp in self._file_exporters:
            exp.shutdown()


__all__ = [
    "TelemetryClient",
    "encode_value",
    "span_to_dict",
    "to_attribute",
]
