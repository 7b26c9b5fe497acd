"""Tests for call emission."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from conftest import sent_headers
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from tickertrace.emitter import CallEmitter, CallKind, ResultRecorder
from tickertrace.recorders import InMemoryRecorder
from tickertrace.session import SessionContext, derive_context, new_root_context


@pytest.fixture
def context() -> SessionContext:
    return new_root_context("Stock Analysis", "u1", "Stock-Analysis-Chat", path="/stock")


def _price_work(recorder: ResultRecorder) -> dict[str, float]:
    price = {"price": 175.34, "change": 2.45}
    recorder.append_results({"output": price, "status": "success"})
    return price


class TestResultRecorder:
    def test_append_merges(self) -> None:
        rec = ResultRecorder()
        rec.append_results({"output": 1, "status": "pending"})
        rec.append_results({"status": "success"})
        assert rec.results == {"output": 1, "status": "success"}

    def test_results_is_copy(self) -> None:
        rec = ResultRecorder()
        rec.append_results({"a": 1})
        rec.results["a"] = 2
        assert rec.results == {"a": 1}


class TestToolEmission:
    def test_price_scenario(
        self, emitter: CallEmitter, recorder: InMemoryRecorder, context: SessionContext
    ) -> None:
        """Recorder gets the declared input and the work's result-record; caller gets the value."""
        value = emitter.emit(
            context,
            CallKind.TOOL,
            {"toolName": "get_stock_price", "input": {"ticker": "AAPL"}},
            _price_work,
        )

        assert value == {"price": 175.34, "change": 2.45}
        assert len(recorder.records) == 1
        entry = recorder.records[0]
        assert entry.kind == CallKind.TOOL
        assert entry.request["input"] == {"ticker": "AAPL"}
        assert entry.request["_type"] == "tool"
        assert entry.results == {"output": {"price": 175.34, "change": 2.45}, "status": "success"}
        assert entry.headers == context.to_headers()
        assert entry.start_time <= entry.end_time

    def test_tool_call_wrapper(
        self, emitter: CallEmitter, recorder: InMemoryRecorder, context: SessionContext
    ) -> None:
        """tool_call declares name, input and metadata with a request time."""
        emitter.tool_call(
            context, "get_stock_price", {"ticker": "MSFT"}, _price_work, metadata={"source": "x"}
        )
        request = recorder.records[0].request
        assert request["toolName"] == "get_stock_price"
        assert request["input"] == {"ticker": "MSFT"}
        assert request["metadata"]["source"] == "x"
        assert "requestTime" in request["metadata"]

    def test_no_deduplication(
        self, emitter: CallEmitter, recorder: InMemoryRecorder, context: SessionContext
    ) -> None:
        """Identical emissions produce separate records."""
        payload = {"toolName": "get_stock_price", "input": {"ticker": "AAPL"}}
        emitter.emit(context, CallKind.TOOL, payload, _price_work)
        emitter.emit(context, CallKind.TOOL, payload, _price_work)
        assert len(recorder.records) == 2
        assert recorder.records[0] is not recorder.records[1]

    def test_work_failure_propagates_unrecorded(
        self,
        emitter: CallEmitter,
        recorder: InMemoryRecorder,
        context: SessionContext,
        span_exporter: InMemorySpanExporter,
    ) -> None:
        """A failing unit of work is not logged as a record."""

        def broken(rec: ResultRecorder) -> Any:
            raise RuntimeError("quote service down")

        with pytest.raises(RuntimeError, match="quote service down"):
            emitter.emit(context, CallKind.TOOL, {"toolName": "get_stock_price"}, broken)

        assert recorder.records == []
        (span,) = span_exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert span.events[0].name == "exception"

    def test_missing_work(self, emitter: CallEmitter, context: SessionContext) -> None:
        with pytest.raises(ValueError, match="unit of work"):
            emitter.emit(context, CallKind.TOOL, {"toolName": "get_stock_price"})

    def test_unknown_kind(self, emitter: CallEmitter, context: SessionContext) -> None:
        with pytest.raises(ValueError, match="Unknown call kind"):
            emitter.emit(context, "embedding", {}, _price_work)


class TestVectorSearchEmission:
    def test_search_record(
        self, emitter: CallEmitter, recorder: InMemoryRecorder, context: SessionContext
    ) -> None:
        def search(rec: ResultRecorder) -> dict[str, float]:
            rec.append_results({"results": {"news_sentiment": 0.8}, "status": "success"})
            return {"news_sentiment": 0.8}

        request = {"text": "MSFT news", "topK": 5, "metadata": {"source": "db"}}
        value = emitter.vector_search(context, request, search)

        assert value == {"news_sentiment": 0.8}
        entry = recorder.records[0]
        assert entry.kind == CallKind.VECTOR_DB
        assert entry.request["_type"] == "vector_db"
        assert entry.request["operation"] == "search"
        assert entry.request["metadata"]["source"] == "db"
        assert "requestTime" in entry.request["metadata"]
        assert entry.results["status"] == "success"
        # Caller's request left alone
        assert request["metadata"] == {"source": "db"}

    def test_null_metadata(
        self, emitter: CallEmitter, recorder: InMemoryRecorder, context: SessionContext
    ) -> None:
        """A request with ``metadata: None`` still gets a request time."""
        emitter.vector_search(context, {"text": "MSFT news", "metadata": None}, lambda rec: None)

        metadata = recorder.records[0].request["metadata"]
        assert list(metadata) == ["requestTime"]


class TestCompletionEmission:
    def test_headers_and_model(
        self, emitter: CallEmitter, fake_openai: MagicMock, context: SessionContext
    ) -> None:
        """Completions carry the session headers plus the prompt id."""
        messages = [{"role": "user", "content": "hi"}]
        response = emitter.complete(context, messages, prompt_id="initial-greeting")

        assert response is fake_openai.chat.completions.create.return_value
        kwargs = fake_openai.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == messages
        assert "tools" not in kwargs
        headers = kwargs["extra_headers"]
        assert headers["Helicone-Session-Id"] == context.session_id
        assert headers["Helicone-Session-Path"] == "/stock"
        assert headers["Helicone-Prompt-Id"] == "initial-greeting"

    def test_tools_forwarded(
        self, emitter: CallEmitter, fake_openai: MagicMock, context: SessionContext
    ) -> None:
        tools = [{"type": "function", "function": {"name": "get_stock_price"}}]
        emitter.complete(context, [], prompt_id="p", tools=tools)
        assert fake_openai.chat.completions.create.call_args.kwargs["tools"] == tools

    def test_completion_not_sent_to_recorder(
        self, emitter: CallEmitter, recorder: InMemoryRecorder, context: SessionContext
    ) -> None:
        """The gateway logs completions; the custom-log recorder does not."""
        emitter.complete(context, [], prompt_id="p")
        assert recorder.records == []

    def test_model_error_propagates(
        self, emitter: CallEmitter, fake_openai: MagicMock, context: SessionContext
    ) -> None:
        fake_openai.chat.completions.create.side_effect = ConnectionError("gateway down")
        with pytest.raises(ConnectionError):
            emitter.complete(context, [], prompt_id="p")

    def test_derived_context_headers(
        self, emitter: CallEmitter, fake_openai: MagicMock, context: SessionContext
    ) -> None:
        agent = derive_context(context, "/aapl-agent", "Stock-Analysis-Agent")
        emitter.complete(context, [], prompt_id="a")
        emitter.complete(agent, [], prompt_id="b")
        first, second = sent_headers(fake_openai)
        assert first["Helicone-Session-Id"] == second["Helicone-Session-Id"]
        assert second["Helicone-Session-Path"] == "/stock/aapl-agent"
        assert second["Helicone-Property-Type"] == "Stock-Analysis-Agent"


class TestSpans:
    def test_emission_span_attributes(
        self,
        emitter: CallEmitter,
        context: SessionContext,
        span_exporter: InMemorySpanExporter,
    ) -> None:
        emitter.tool_call(context, "get_stock_price", {"ticker": "AAPL"}, _price_work)
        (span,) = span_exporter.get_finished_spans()
        assert span.name == "tool get_stock_price"
        assert span.attributes["session.id"] == context.session_id
        assert span.attributes["session.path"] == "/stock"
        assert span.attributes["tickertrace.call.kind"] == "tool"
        assert '"ticker": "AAPL"' in span.attributes["tickertrace.input"]
        assert '"status": "success"' in span.attributes["tickertrace.output"]

    def test_completion_span_usage(
        self,
        emitter: CallEmitter,
        context: SessionContext,
        span_exporter: InMemorySpanExporter,
    ) -> None:
        emitter.complete(context, [{"role": "user", "content": "hi"}], prompt_id="p")
        (span,) = span_exporter.get_finished_spans()
        assert span.name == "chat gpt-4o-mini"
        assert span.attributes["helicone.prompt_id"] == "p"
        assert span.attributes["gen_ai.usage.input_tokens"] == 12
        assert span.attributes["tickertrace.output"] == "Sure, happy to help."

    def test_scope_nests_emissions(
        self,
        emitter: CallEmitter,
        context: SessionContext,
        span_exporter: InMemorySpanExporter,
    ) -> None:
        """Emissions inside a scope are children of the scope span."""
        agent = derive_context(context, "/aapl-agent", "Stock-Analysis-Agent")
        with emitter.scope(agent, "analyze AAPL"):
            emitter.tool_call(agent, "get_stock_price", {"ticker": "AAPL"}, _price_work)

        child, parent = span_exporter.get_finished_spans()
        assert parent.name == "analyze AAPL"
        assert child.parent is not None
        assert child.parent.span_id == parent.context.span_id
        assert parent.attributes["session.path"] == "/stock/aapl-agent"
