"""OTLP exporter setup."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tickertrace.config import Config


def build_traces_endpoint(otlp_endpoint: str) -> str:
    """OTLP/HTTP traces URL for a collector base URL.

    ``http://host:4318`` becomes ``http://host:4318/v1/traces``; a URL that
    already ends in ``/v1/traces`` is used as-is.
    """
    if otlp_endpoint.endswith("/v1/traces"):
        return otlp_endpoint
    return f"{otlp_endpoint}/v1/traces"


def setup_otlp(config: Config, provider: Any) -> Any:
    """Set up OTLP trace export. Returns BatchSpanProcessor or None."""
    if not config.otlp_endpoint:
        return None

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    exporter = OTLPSpanExporter(
        endpoint=build_traces_endpoint(config.otlp_endpoint),
        timeout=int(config.request_timeout),
    )
    processor = BatchSpanProcessor(
        exporter,
        max_queue_size=2048,
        schedule_delay_millis=5000,
        max_export_batch_size=512,
        export_timeout_millis=30000,
    )
    provider.add_span_processor(processor)
    return processor
