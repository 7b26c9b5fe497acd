"""Session correlation metadata.

A :class:`SessionContext` groups every outbound call of one simulated
conversation. Sub-flows get their own context derived from the parent: same
session and user, longer path. Contexts are frozen, so leaving a sub-flow
simply means going back to using the parent value.

Example:
    root = new_root_context("Stock Analysis", "investor1@example.com",
                            "Stock-Analysis-Chat", path="/stock")
    agent = derive_context(root, "/aapl-agent", "Stock-Analysis-Agent")
    agent.path  # "/stock/aapl-agent"
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from tickertrace.errors import MalformedContextError

SESSION_ID_HEADER = "Helicone-Session-Id"
SESSION_PATH_HEADER = "Helicone-Session-Path"
SESSION_NAME_HEADER = "Helicone-Session-Name"
USER_ID_HEADER = "Helicone-User-Id"
PROPERTY_TYPE_HEADER = "Helicone-Property-Type"
PROMPT_ID_HEADER = "Helicone-Prompt-Id"

ROOT_PATH = "/"


@dataclass(frozen=True, slots=True)
class SessionContext:
    """Correlation fields attached to every call in a session."""

    session_id: str
    path: str
    name: str
    user_id: str
    property_type: str

    def to_headers(self, prompt_id: str | None = None) -> dict[str, str]:
        """Transport metadata for the logging backend."""
        headers = {
            SESSION_ID_HEADER: self.session_id,
            SESSION_PATH_HEADER: self.path,
            SESSION_NAME_HEADER: self.name,
            PROPERTY_TYPE_HEADER: self.property_type,
            USER_ID_HEADER: self.user_id,
        }
        if prompt_id:
            headers[PROMPT_ID_HEADER] = prompt_id
        return headers

    def to_attributes(self) -> dict[str, str]:
        """Span attributes for local OpenTelemetry traces."""
        return {
            "session.id": self.session_id,
            "session.path": self.path,
            "session.name": self.name,
            "session.property_type": self.property_type,
            "user.id": self.user_id,
        }


def new_root_context(
    name: str,
    user_id: str,
    property_type: str,
    *,
    path: str = ROOT_PATH,
) -> SessionContext:
    """Start a new session with a fresh random id."""
    return SessionContext(
        session_id=str(uuid.uuid4()),
        path=_normalize_path(path),
        name=name,
        user_id=user_id,
        property_type=property_type,
    )


def derive_context(
    parent: SessionContext | None,
    sub_path: str,
    property_type: str,
) -> SessionContext:
    """Context for a sub-flow: same session and user, path extended by ``sub_path``."""
    if parent is None:
        raise MalformedContextError("Cannot derive a session context without a parent")
    return SessionContext(
        session_id=parent.session_id,
        path=join_path(parent.path, sub_path),
        name=parent.name,
        user_id=parent.user_id,
        property_type=property_type,
    )


def join_path(base: str, sub_path: str) -> str:
    """Join session path segments.

    ``join_path("/", "/a")`` is ``"/a"``; ``join_path("/stock", "aapl-agent")``
    is ``"/stock/aapl-agent"``.
    """
    segment = sub_path.strip("/")
    if not segment:
        return _normalize_path(base)
    return f"{base.rstrip('/')}/{segment}"


def _normalize_path(path: str) -> str:
    stripped = path.strip().strip("/")
    return f"/{stripped}" if stripped else ROOT_PATH
