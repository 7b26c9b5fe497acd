"""Pluggable result producers for the analysis agent's tool and vector-search calls.

The bundled producers are deterministic mocks: values derive from the ticker
(and an optional seed) so a run is reproducible. Tickers in a producer's
``DEFAULT_*`` table, AAPL by default, keep fixed figures whatever the seed.
"""

from __future__ import annotations

import copy
import random
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from tickertrace.emitter import ResultRecorder


@dataclass(frozen=True, slots=True)
class Produced:
    """A produced value plus the result-record reported for it."""

    value: Any
    record: dict[str, Any]


class ResultProducer(Protocol):
    name: str
    source: str

    def produce(self, ticker: str) -> Produced: ...


class SearchProducer(ResultProducer, Protocol):
    """A producer backed by a vector store; also declares its search request."""

    def request(self, ticker: str) -> dict[str, Any]: ...


def as_work(producer: ResultProducer, ticker: str) -> Callable[[ResultRecorder], Any]:
    """Adapt a producer into emitter work for ``ticker``."""

    def work(recorder: ResultRecorder) -> Any:
        produced = producer.produce(ticker)
        recorder.append_results(produced.record)
        return produced.value

    return work


def _rng(seed: int | None, ticker: str, salt: str) -> random.Random:
    return random.Random(f"{seed}:{salt}:{ticker.upper()}")


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class MockPriceFeed:
    """Quote lookup for ``get_stock_price``."""

    name = "get_stock_price"
    source = "mock_data"

    DEFAULT_QUOTES: Mapping[str, tuple[float, float]] = {"AAPL": (175.34, 2.45)}

    def __init__(
        self,
        quotes: Mapping[str, tuple[float, float]] | None = None,
        *,
        seed: int | None = None,
    ) -> None:
        self._quotes = dict(self.DEFAULT_QUOTES if quotes is None else quotes)
        self._seed = seed

    def quote(self, ticker: str) -> dict[str, float]:
        key = ticker.upper()
        if key in self._quotes:
            price, change = self._quotes[key]
        else:
            rng = _rng(self._seed, key, self.name)
            price = round(rng.uniform(40.0, 600.0), 2)
            change = round(rng.uniform(-price * 0.03, price * 0.03), 2)
        return {"price": price, "change": change}

    def produce(self, ticker: str) -> Produced:
        value = self.quote(ticker)
        return Produced(
            value=value,
            record={"output": value, "executionTime": _epoch_ms(), "status": "success"},
        )


class MockTechnicalAnalysis:
    """Indicator snapshot for ``get_technical_analysis``."""

    name = "get_technical_analysis"
    source = "mock_technical_analysis"
    indicators = ("rsi", "macd", "moving_averages")

    DEFAULT_SNAPSHOTS: Mapping[str, dict[str, Any]] = {
        "AAPL": {
            "rsi": 62,
            "macd": {"signal": "buy", "value": 2.34},
            "moving_averages": {"ma50": 170.25, "ma200": 165.8},
        }
    }

    def __init__(self, price_feed: MockPriceFeed | None = None, *, seed: int | None = None) -> None:
        self._price_feed = price_feed or MockPriceFeed(seed=seed)
        self._seed = seed

    def analyse(self, ticker: str) -> dict[str, Any]:
        snapshot = self.DEFAULT_SNAPSHOTS.get(ticker.upper())
        if snapshot is not None:
            return copy.deepcopy(snapshot)
        rng = _rng(self._seed, ticker, self.name)
        price = self._price_feed.quote(ticker)["price"]
        macd = round(rng.uniform(-4.0, 4.0), 2)
        return {
            "rsi": rng.randint(20, 80),
            "macd": {"signal": "buy" if macd >= 0 else "sell", "value": macd},
            "moving_averages": {
                "ma50": round(price * rng.uniform(0.92, 1.04), 2),
                "ma200": round(price * rng.uniform(0.85, 1.02), 2),
            },
        }

    def produce(self, ticker: str) -> Produced:
        value = self.analyse(ticker)
        return Produced(
            value=value,
            record={
                "output": value,
                "executionTime": _epoch_ms(),
                "status": "success",
                "indicators": list(self.indicators),
            },
        )


class MockSentimentIndex:
    """Sentiment search against the ``market_sentiment_db`` vector store."""

    name = "market_sentiment_db"
    source = "mock_sentiment_db"

    DEFAULT_SENTIMENT: Mapping[str, tuple[float, float]] = {"AAPL": (0.75, 0.82)}

    def __init__(self, *, seed: int | None = None, latency_ms: int = 50, top_k: int = 5) -> None:
        self._seed = seed
        self._latency_ms = latency_ms
        self._top_k = top_k

    def request(self, ticker: str) -> dict[str, Any]:
        """Vector-search request as declared to the recorder."""
        return {
            "text": f"{ticker} recent market sentiment and news analysis",
            "vector": [0.1, 0.2, 0.3, 0.4],
            "topK": self._top_k,
            "filter": {"timeRange": "7d", "sources": ["news", "reddit", "twitter"]},
            "databaseName": self.name,
            "metadata": {
                "source": self.source,
                "ticker": ticker,
                "searchParameters": {"threshold": 0.8},
            },
        }

    def search(self, ticker: str) -> dict[str, float]:
        if ticker.upper() in self.DEFAULT_SENTIMENT:
            reddit, news = self.DEFAULT_SENTIMENT[ticker.upper()]
            return {"reddit_sentiment": reddit, "news_sentiment": news}
        rng = _rng(self._seed, ticker, self.name)
        return {
            "reddit_sentiment": round(rng.uniform(0.2, 0.95), 2),
            "news_sentiment": round(rng.uniform(0.2, 0.95), 2),
        }

    def produce(self, ticker: str) -> Produced:
        value = self.search(ticker)
        return Produced(
            value=value,
            record={
                "results": value,
                "matchCount": 1,
                "searchLatency": self._latency_ms,
                "status": "success",
            },
        )


@dataclass(frozen=True)
class AnalysisProducers:
    """The three producers one analysis sub-flow calls."""

    price: ResultProducer
    technicals: ResultProducer
    sentiment: SearchProducer

    @classmethod
    def mocks(cls, seed: int | None = None) -> AnalysisProducers:
        price = MockPriceFeed(seed=seed)
        return cls(
            price=price,
            technicals=MockTechnicalAnalysis(price, seed=seed),
            sentiment=MockSentimentIndex(seed=seed),
        )


def _ticker_tool(name: str, description: str) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": {
                    "ticker": {"type": "string", "description": "Stock ticker symbol"},
                },
                "required": ["ticker"],
            },
        },
    }


STOCK_TOOLS = [
    _ticker_tool(MockPriceFeed.name, "Get real-time stock price data"),
    _ticker_tool(MockTechnicalAnalysis.name, "Get technical analysis metrics"),
]
