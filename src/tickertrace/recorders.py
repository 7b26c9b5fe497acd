"""Trace recorders: where tool and vector-search call records are delivered."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

import requests

from tickertrace.errors import RecorderError
from tickertrace.session import SESSION_ID_HEADER, SESSION_PATH_HEADER
from tickertrace.telemetry.encoding import encode_value

logger = logging.getLogger("tickertrace.recorders")

CUSTOM_MODEL_URL = "custom-model-nopath"


@dataclass(frozen=True)
class CallRecord:
    """One emitted call: the declared request, its result-record and session headers."""

    kind: str
    request: dict[str, Any]
    results: dict[str, Any]
    headers: dict[str, str]
    start_time: float
    end_time: float = field(default_factory=time.time)


class TraceRecorder(Protocol):
    """Receives one record per tool or vector-search emission."""

    def record(self, entry: CallRecord) -> None: ...

    def close(self) -> None: ...


def _split_time(ts: float) -> dict[str, int]:
    seconds = int(ts)
    return {"seconds": seconds, "milliseconds": int((ts - seconds) * 1000)}


def build_log_body(entry: CallRecord) -> dict[str, Any]:
    """Custom-log request body understood by the Helicone logging API."""
    response_json = {**entry.results, "_type": entry.request.get("_type", entry.kind)}
    if "toolName" in entry.request:
        response_json["toolName"] = entry.request["toolName"]
    return {
        "providerRequest": {
            "url": CUSTOM_MODEL_URL,
            "json": encode_value(entry.request),
            "meta": {},
        },
        "providerResponse": {
            "status": 200,
            "headers": {},
            "json": encode_value(response_json),
        },
        "timing": {
            "startTime": _split_time(entry.start_time),
            "endTime": _split_time(entry.end_time),
        },
    }


class HeliconeRecorder:
    """Posts call records to the Helicone custom-log endpoint.

    One HTTP request per record. Failures surface as :class:`RecorderError`;
    nothing is retried.
    """

    def __init__(
        self,
        api_key: str | None,
        endpoint: str,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = timeout
        self._owns_session = session is None
        self._session = session or requests.Session()
        if api_key:
            self._session.headers["Authorization"] = f"Bearer {api_key}"
        else:
            logger.warning("HELICONE_API_KEY not set; the logging API will reject records")

    def __repr__(self) -> str:
        return f"HeliconeRecorder(endpoint={self._endpoint!r})"

    def record(self, entry: CallRecord) -> None:
        body = build_log_body(entry)
        try:
            response = self._session.post(
                self._endpoint,
                json=body,
                headers=entry.headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise RecorderError(f"Failed to log {entry.kind} call to {self._endpoint}: {e}") from e
        logger.debug(
            "Logged %s call session=%s path=%s",
            entry.kind,
            entry.headers.get(SESSION_ID_HEADER),
            entry.headers.get(SESSION_PATH_HEADER),
        )

    def close(self) -> None:
        if self._owns_session:
            self._session.close()


class NullRecorder:
    """Drops every record. Used when tickertrace is disabled."""

    def record(self, entry: CallRecord) -> None:
        logger.debug("Recorder disabled; dropping %s record", entry.kind)

    def close(self) -> None:
        pass


class InMemoryRecorder:
    """Keeps records in a list, for dry runs and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[CallRecord] = []

    @property
    def records(self) -> list[CallRecord]:
        with self._lock:
            return list(self._records)

    def record(self, entry: CallRecord) -> None:
        with self._lock:
            self._records.append(entry)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def close(self) -> None:
        pass
