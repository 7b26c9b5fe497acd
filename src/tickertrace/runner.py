"""Scripted conversation runs.

Each run is one session: a random user asks the assistant for an analysis of
one ticker, then a comparison with a second. Runs execute one after another;
the first failure stops the rest.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from tickertrace import prompts
from tickertrace.agent import analyze_stock
from tickertrace.prompts import PromptIds
from tickertrace.session import new_root_context

if TYPE_CHECKING:
    from tickertrace.emitter import CallEmitter
    from tickertrace.tools import AnalysisProducers

logger = logging.getLogger("tickertrace.runner")

MOCK_EMAILS = [
    "investor1@example.com",
    "trader123@example.com",
    "stockanalyst@example.com",
    "marketwatcher@example.com",
    "daytrader42@example.com",
    "portfoliomanager@example.com",
    "techinvestor@example.com",
    "valueinvestor@example.com",
]

STOCK_TICKERS = ["AAPL", "GOOGL", "MSFT", "AMZN", "META", "TSLA"]

SESSION_NAME = "Stock Analysis"
CHAT_PATH = "/stock"
CHAT_PROPERTY_TYPE = "Stock-Analysis-Chat"


@dataclass
class RunResult:
    """Outcome of one scripted session."""

    session_id: str
    user_id: str
    tickers: tuple[str, str]
    transcript: list[dict[str, Any]] = field(default_factory=list)

    @property
    def analyses(self) -> list[str]:
        """Assistant messages produced by the analysis sub-agent."""
        return [m["content"] for m in self.transcript if m.get("name") == "analysis-agent"]


def pick_tickers(rng: random.Random) -> tuple[str, str]:
    """Two distinct tickers."""
    first, second = rng.sample(STOCK_TICKERS, 2)
    return first, second


def _assistant_reply(response: Any) -> dict[str, Any]:
    return {"role": "assistant", "content": response.choices[0].message.content or ""}


def run_analysis(
    emitter: CallEmitter,
    *,
    rng: random.Random | None = None,
    producers: AnalysisProducers | None = None,
) -> RunResult:
    """Play one scripted session and return its transcript."""
    rng = rng or random.Random()
    user_id = rng.choice(MOCK_EMAILS)
    first, second = pick_tickers(rng)

    context = new_root_context(SESSION_NAME, user_id, CHAT_PROPERTY_TYPE, path=CHAT_PATH)
    result = RunResult(session_id=context.session_id, user_id=user_id, tickers=(first, second))

    print(f"\nStarting analysis run with {first} and {second}")
    print(f"Session ID: {context.session_id}")
    print(f"User: {user_id}\n")

    messages = result.transcript
    messages.extend(
        [
            {"role": "system", "content": prompts.CHAT_SYSTEM_PROMPT},
            {"role": "user", "content": prompts.GREETING},
        ]
    )

    with emitter.scope(context, "stock-analysis-chat"):
        greeting = emitter.complete(context, messages, prompt_id=PromptIds.INITIAL_GREETING)
        messages.append(_assistant_reply(greeting))

        for index, ticker in enumerate((first, second)):
            if index == 0:
                request = prompts.analyze_request(ticker)
            else:
                request = prompts.compare_request(ticker)
            messages.append({"role": "user", "content": request})

            ack = emitter.complete(
                context,
                [*messages, {"role": "system", "content": prompts.acknowledge_instruction(ticker)}],
                prompt_id=PromptIds.ANALYSIS_ACK,
            )
            messages.append(_assistant_reply(ack))

            analysis = analyze_stock(emitter, context, ticker, producers)
            messages.append({"role": "assistant", "name": "analysis-agent", "content": analysis})
            logger.info("Analysed %s in session %s", ticker, context.session_id)

    return result


def run_all(
    emitter: CallEmitter,
    runs: int,
    *,
    rng: random.Random | None = None,
    producers: AnalysisProducers | None = None,
) -> list[RunResult]:
    """Run ``runs`` sessions sequentially. An exception aborts the remaining runs."""
    rng = rng or random.Random()
    results = []
    for i in range(runs):
        print(f"\n=== Starting Run {i + 1}/{runs} ===")
        results.append(run_analysis(emitter, rng=rng, producers=producers))
    return results
