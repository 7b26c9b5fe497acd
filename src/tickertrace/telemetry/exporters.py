"""Custom span exporters."""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Sequence

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from tickertrace.telemetry.encoding import span_to_dict

logger = logging.getLogger("tickertrace.telemetry.exporters")


class JsonFileSpanExporter(SpanExporter):
    """Writes spans to a JSONL file, one span per line.

    Each line carries the span's ``session.id`` at the top level so a whole
    session can be pulled out with ``grep``.
    """

    def __init__(self, path: str | os.PathLike[str], mode: str = "a") -> None:
        if mode not in ("a", "w"):
            raise ValueError(f"mode must be 'a' or 'w', got {mode!r}")
        self._path = os.fspath(path)
        self._lock = threading.Lock()
        self._closed = False
        self.exported = 0
        self._fh = open(self._path, mode, encoding="utf-8")  # noqa: SIM115

    @property
    def path(self) -> str:
        return self._path

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        try:
            with self._lock:
                if self._closed:
                    return SpanExportResult.FAILURE
                for span in spans:
                    record = span_to_dict(span)
                    line = {"session_id": record["attributes"].get("session.id"), **record}
                    self._fh.write(json.dumps(line, ensure_ascii=False))
                    self._fh.write("\n")
                    self.exported += 1
                self._fh.flush()
            return SpanExportResult.SUCCESS
        except Exception:
            logger.exception("Failed to export spans to %s", self._path)
            return SpanExportResult.FAILURE

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._fh.close()
            self._closed = True

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._fh.flush()
        return True
