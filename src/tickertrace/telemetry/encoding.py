"""Value encoding for span attributes and JSONL export."""

import base64
import json
import logging
from datetime import date, datetime, timezone
from typing import Any

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.trace import format_span_id, format_trace_id

logger = logging.getLogger("tickertrace.telemetry.encoding")

# Longer JSON payloads are cut and marked as truncated
MAX_ATTRIBUTE_CHARS = 16_384


def encode_value(value: Any) -> Any:
    """Encode value for JSON, converting binary to base64."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, dict):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    # Pydantic models from the openai SDK
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        try:
            return encode_value(model_dump())
        except Exception:
            logger.debug("model_dump failed for %s", type(value).__name__, exc_info=True)
    try:
        json.dumps(value)
        return value
    except (TypeError, OverflowError, ValueError):
        return f"<{type(value).__name__}>"


def to_attribute(value: Any) -> str:
    """Serialize a payload into a single JSON string span attribute."""
    text = json.dumps(encode_value(value), ensure_ascii=False, sort_keys=True)
    if len(text) > MAX_ATTRIBUTE_CHARS:
        return text[:MAX_ATTRIBUTE_CHARS] + "...<truncated>"
    return text


def _ns_to_iso8601(ns: int | None) -> str | None:
    if ns is None:
        return None
    return datetime.fromtimestamp(ns / 1e9, tz=timezone.utc).isoformat()


def span_to_dict(span: ReadableSpan) -> dict[str, Any]:
    """Convert ReadableSpan to dict with encoded values."""
    ctx = span.context
    parent = span.parent

    attrs = {}
    if span.attributes:
        attrs = {k: encode_value(v) for k, v in dict(span.attributes).items()}

    status = getattr(span, "status", None)
    status_dict = None
    if status:
        status_dict = {
            "status_code": status.status_code.name,
            "description": status.description,
        }

    events = [
        {
            "name": e.name,
            "timestamp": _ns_to_iso8601(e.timestamp),
            "attributes": {k: encode_value(v) for k, v in dict(e.attributes or {}).items()},
        }
        for e in span.events or []
    ]

    return {
        "name": span.name,
        "trace_id": format_trace_id(ctx.trace_id),
        "span_id": format_span_id(ctx.span_id),
        "parent_span_id": format_span_id(parent.span_id) if parent else None,
        "start_time": _ns_to_iso8601(span.start_time),
        "end_time": _ns_to_iso8601(span.end_time),
        "duration_ms": (
            (span.end_time - span.start_time) / 1e6 if span.start_time and span.end_time else None
        ),
        "attributes": attrs,
        "events": events,
        "status": status_dict,
        "service": (span.resource.attributes.get("service.name") if span.resource else None),
    }
