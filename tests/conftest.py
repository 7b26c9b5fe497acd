"""Test fixtures with environment isolation and in-memory collaborators."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from tickertrace.config import Config
from tickertrace.emitter import CallEmitter
from tickertrace.recorders import InMemoryRecorder
from tickertrace.telemetry import TelemetryClient


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove tickertrace, Helicone, OpenAI and OTEL variables to prevent test pollution.

    Tests must never reach the real gateway or logging API.
    """
    env_vars = [
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
        "HELICONE_API_KEY",
        "HELICONE_GATEWAY_URL",
        "HELICONE_LOG_ENDPOINT",
        "TICKERTRACE_MODEL",
        "TICKERTRACE_RUNS",
        "TICKERTRACE_TIMEOUT",
        "TICKERTRACE_DISABLED",
        "TICKERTRACE_DEBUG",
        "OTEL_EXPORTER_OTLP_ENDPOINT",
        "OTEL_SERVICE_NAME",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)


def make_completion(content: str | None = "ok") -> MagicMock:
    """Chat completion shaped like the openai SDK's response."""
    response = MagicMock()
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response.choices = [choice]
    response.usage.prompt_tokens = 12
    response.usage.completion_tokens = 7
    return response


@pytest.fixture
def fake_openai() -> MagicMock:
    client = MagicMock()
    client.chat.completions.create.return_value = make_completion("Sure, happy to help.")
    return client


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def telemetry(span_exporter: InMemorySpanExporter) -> Iterator[TelemetryClient]:
    client = TelemetryClient(Config.create())
    client.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield client
    client.shutdown()


@pytest.fixture
def recorder() -> InMemoryRecorder:
    return InMemoryRecorder()


@pytest.fixture
def emitter(
    fake_openai: MagicMock, recorder: InMemoryRecorder, telemetry: TelemetryClient
) -> CallEmitter:
    return CallEmitter(fake_openai, recorder, telemetry, model="gpt-4o-mini")


@pytest.fixture
def temp_trace_file(tmp_path: Path) -> str:
    """Provide a temporary file path for trace output."""
    return str(tmp_path / "traces.jsonl")


def sent_headers(fake_openai: MagicMock) -> list[dict[str, Any]]:
    """extra_headers of every completion request, in call order."""
    return [c.kwargs["extra_headers"] for c in fake_openai.chat.completions.create.call_args_list]
