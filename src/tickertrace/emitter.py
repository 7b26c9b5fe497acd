"""Call emission: tag outbound work with session metadata and hand it to a recorder."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from tickertrace.recorders import CallRecord
from tickertrace.telemetry.encoding import to_attribute

if TYPE_CHECKING:
    from opentelemetry.trace import Span

    from tickertrace.recorders import TraceRecorder
    from tickertrace.session import SessionContext
    from tickertrace.telemetry import TelemetryClient

logger = logging.getLogger("tickertrace.emitter")

T = TypeVar("T")


class CallKind:
    """Kinds of outbound call.

    Usage:
        emitter.emit(ctx, CallKind.TOOL, {"toolName": "get_stock_price", ...}, work)
    """

    COMPLETION = "completion"
    TOOL = "tool"
    VECTOR_DB = "vector_db"


RECORDED_KINDS = frozenset({CallKind.TOOL, CallKind.VECTOR_DB})


class ResultRecorder:
    """Collects the result-record a unit of work reports for its call."""

    def __init__(self) -> None:
        self._results: dict[str, Any] = {}

    def append_results(self, data: Mapping[str, Any]) -> None:
        """Merge ``data`` into the pending result-record; later keys win."""
        self._results.update(data)

    @property
    def results(self) -> dict[str, Any]:
        return dict(self._results)


Work = Callable[[ResultRecorder], T]


class CallEmitter:
    """Issues completions, tool calls and vector searches tagged with a session.

    All collaborators are passed in: the OpenAI-compatible ``model_client``
    (already pointed at the logging gateway), the ``recorder`` that receives
    tool and vector-search records, and the ``telemetry`` client for local
    spans. The emitter never retries, caches or de-duplicates: every call to
    :meth:`emit` is one record.
    """

    def __init__(
        self,
        model_client: Any,
        recorder: TraceRecorder,
        telemetry: TelemetryClient,
        *,
        model: str,
    ) -> None:
        self._model_client = model_client
        self._recorder = recorder
        self._telemetry = telemetry
        self._model = model

    def __repr__(self) -> str:
        return f"CallEmitter(model={self._model!r}, recorder={self._recorder!r})"

    @property
    def model(self) -> str:
        return self._model

    def emit(
        self,
        context: SessionContext,
        kind: str,
        payload: Mapping[str, Any],
        work: Work[T] | None = None,
        *,
        prompt_id: str | None = None,
    ) -> Any:
        """Emit one call of ``kind`` within ``context``.

        For :attr:`CallKind.COMPLETION` the payload is the chat request and
        the completion is returned. For tool and vector-search kinds ``work``
        runs first; its return value is returned and the payload plus the
        result-record it appended are delivered to the recorder. If ``work``
        raises, nothing is recorded and the exception propagates.
        """
        if kind == CallKind.COMPLETION:
            return self._emit_completion(context, payload, prompt_id)
        if kind in RECORDED_KINDS:
            if work is None:
                raise ValueError(f"{kind} calls need a unit of work")
            return self._emit_recorded(context, kind, payload, work)
        raise ValueError(f"Unknown call kind: {kind!r}")

    def complete(
        self,
        context: SessionContext,
        messages: list[dict[str, Any]],
        *,
        prompt_id: str,
        tools: list[dict[str, Any]] | None = None,
    ) -> Any:
        payload: dict[str, Any] = {"messages": list(messages)}
        if tools:
            payload["tools"] = tools
        return self.emit(context, CallKind.COMPLETION, payload, prompt_id=prompt_id)

    def tool_call(
        self,
        context: SessionContext,
        tool_name: str,
        tool_input: Mapping[str, Any],
        work: Work[T],
        *,
        metadata: Mapping[str, Any] | None = None,
    ) -> T:
        payload = {
            "toolName": tool_name,
            "input": dict(tool_input),
            "metadata": {"requestTime": _now_iso(), **(metadata or {})},
        }
        result: T = self.emit(context, CallKind.TOOL, payload, work)
        return result

    def vector_search(
        self,
        context: SessionContext,
        request: Mapping[str, Any],
        work: Work[T],
    ) -> T:
        payload = {"operation": "search", **request}
        payload["metadata"] = {"requestTime": _now_iso(), **(request.get("metadata") or {})}
        result: T = self.emit(context, CallKind.VECTOR_DB, payload, work)
        return result

    @contextmanager
    def scope(self, context: SessionContext, name: str) -> Iterator[Span]:
        """Parent span for a sub-flow; emissions inside it nest under it."""
        with self._telemetry.span(name, attributes=context.to_attributes()) as s:
            yield s

    def _emit_completion(
        self,
        context: SessionContext,
        payload: Mapping[str, Any],
        prompt_id: str | None,
    ) -> Any:
        request = {"model": self._model, **payload}
        attributes = {
            **context.to_attributes(),
            "tickertrace.call.kind": CallKind.COMPLETION,
            "gen_ai.request.model": request["model"],
            "tickertrace.input": to_attribute(request.get("messages")),
        }
        if prompt_id:
            attributes["helicone.prompt_id"] = prompt_id

        with self._telemetry.span(f"chat {request['model']}", attributes=attributes) as s:
            logger.debug("Completion prompt=%s path=%s", prompt_id, context.path)
            response = self._model_client.chat.completions.create(
                **request,
                extra_headers=context.to_headers(prompt_id=prompt_id),
            )
            _set_completion_attributes(s, response)
            return response

    def _emit_recorded(
        self,
        context: SessionContext,
        kind: str,
        payload: Mapping[str, Any],
        work: Work[T],
    ) -> T:
        request = {"_type": kind, **payload}
        label = request.get("toolName") or request.get("operation") or kind
        attributes = {
            **context.to_attributes(),
            "tickertrace.call.kind": kind,
            "tickertrace.call.name": str(label),
            "tickertrace.input": to_attribute(request),
        }

        with self._telemetry.span(f"{kind} {label}", attributes=attributes) as s:
            started = time.time()
            result_recorder = ResultRecorder()
            value = work(result_recorder)
            entry = CallRecord(
                kind=kind,
                request=request,
                results=result_recorder.results,
                headers=context.to_headers(),
                start_time=started,
                end_time=time.time(),
            )
            self._recorder.record(entry)
            s.set_attribute("tickertrace.output", to_attribute(entry.results))
            logger.debug("Recorded %s %s path=%s", kind, label, context.path)
            return value


def _set_completion_attributes(span: Span, response: Any) -> None:
    usage = getattr(response, "usage", None)
    for attr, key in (
        ("prompt_tokens", "gen_ai.usage.input_tokens"),
        ("completion_tokens", "gen_ai.usage.output_tokens"),
    ):
        value = getattr(usage, attr, None)
        if isinstance(value, int):
            span.set_attribute(key, value)
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return
    if isinstance(content, str):
        span.set_attribute("tickertrace.output", content)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
