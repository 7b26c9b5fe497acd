"""Stock analysis sub-agent.

Runs inside the chat session under its own path (``/stock/aapl-agent``):
an initial completion with tool definitions, the price lookup, a sentiment
vector search, the technical-analysis lookup, then a final completion over the
gathered data.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from tickertrace import prompts
from tickertrace.prompts import PromptIds
from tickertrace.session import derive_context
from tickertrace.tools import STOCK_TOOLS, AnalysisProducers, as_work

if TYPE_CHECKING:
    from tickertrace.emitter import CallEmitter
    from tickertrace.session import SessionContext

logger = logging.getLogger("tickertrace.agent")

AGENT_PROPERTY_TYPE = "Stock-Analysis-Agent"


def agent_path(ticker: str) -> str:
    return f"/{ticker.lower()}-agent"


def analyze_stock(
    emitter: CallEmitter,
    parent: SessionContext,
    ticker: str,
    producers: AnalysisProducers | None = None,
) -> str:
    """Run the analysis sub-flow for ``ticker`` and return the final answer text."""
    producers = producers or AnalysisProducers.mocks()
    context = derive_context(parent, agent_path(ticker), AGENT_PROPERTY_TYPE)
    ticker_input = {"ticker": ticker}

    messages: list[dict[str, Any]] = [
        {"role": "system", "content": prompts.AGENT_SYSTEM_PROMPT},
        {"role": "user", "content": prompts.agent_request(ticker)},
    ]

    with emitter.scope(context, f"analyze {ticker}"):
        emitter.complete(
            context,
            messages,
            prompt_id=PromptIds.INITIAL_STOCK_ANALYSIS,
            tools=STOCK_TOOLS,
        )

        price = emitter.tool_call(
            context,
            producers.price.name,
            ticker_input,
            as_work(producers.price, ticker),
            metadata={"source": producers.price.source},
        )

        sentiment = emitter.vector_search(
            context,
            producers.sentiment.request(ticker),
            as_work(producers.sentiment, ticker),
        )
        logger.debug("%s sentiment: %s", ticker, sentiment)

        technicals = emitter.tool_call(
            context,
            producers.technicals.name,
            ticker_input,
            as_work(producers.technicals, ticker),
            metadata={"source": producers.technicals.source, "timeframe": "1d"},
        )

        messages.extend(
            [
                {"role": "assistant", "content": prompts.DATA_GATHERED},
                {"role": "function", "name": producers.price.name, "content": json.dumps(price)},
                {
                    "role": "function",
                    "name": producers.technicals.name,
                    "content": json.dumps(technicals),
                },
            ]
        )

        final = emitter.complete(context, messages, prompt_id=PromptIds.FINAL_STOCK_ANALYSIS)

    return final.choices[0].message.content or ""
