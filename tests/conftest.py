"""
Shared fixtures for the coaching test suite.

Provides trade builders and in-process fakes for the four gateway ports,
so workflow and API tests never touch the network.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest

from app.application.coaching.workflow_service import CoachingWorkflowService
from app.domain.coaching.entities import (
    CoachingContext,
    SimilarTrade,
    Trade,
    TradeDirection,
)
from app.domain.coaching.errors import AdviceError, EmbeddingError
from app.domain.coaching.ports import (
    AdvicePort,
    EmbeddingPort,
    SimilarityStorePort,
    TradeSource,
)

BASE_TIME = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
VECTOR_SIZE = 4


def make_trade(
    pnl: float,
    size: float = 1.0,
    minute: int = 0,
    trade_id: Optional[str] = None,
    symbol: str = "EURUSD",
) -> Trade:
    return Trade(
        id=trade_id or f"T-{minute:04d}",
        symbol=symbol,
        direction=TradeDirection.LONG,
        size=size,
        entry_price=1.1000,
        exit_price=1.1010,
        pnl=pnl,
        timestamp=BASE_TIME + timedelta(minutes=minute),
    )


class FakeTradeSource(TradeSource):
    def __init__(self, trades: list[Trade]) -> None:
        self.trades = list(trades)

    def all(self) -> list[Trade]:
        return list(self.trades)

    def recent(self, limit: int) -> list[Trade]:
        return sorted(self.trades, key=lambda t: t.timestamp, reverse=True)[:limit]


def _record(events: Optional[list], action: str) -> None:
    """Append (run id, action) to ``events``; the run id is the task name."""
    if events is not None:
        events.append((asyncio.current_task().get_name(), action))


class FakeEmbedding(EmbeddingPort):
    """Deterministic embeddings derived from the text length.

    Every call yields to the event loop once, so concurrent runs interleave.
    Runs whose id is in ``failing_runs`` get an EmbeddingError.
    """

    def __init__(
        self, error: Optional[Exception] = None, events: Optional[list] = None
    ) -> None:
        self.error = error
        self.events = events
        self.failing_runs: set[str] = set()
        self.texts: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.texts.append(text)
        _record(self.events, "embed")
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if asyncio.current_task().get_name() in self.failing_runs:
            raise EmbeddingError("quota exceeded")
        return [1.0, float(len(text)), 0.0, 0.5]


class FakeStore(SimilarityStorePort):
    def __init__(self, events: Optional[list] = None) -> None:
        self.events = events
        self.upserts: list[tuple[str, list[float]]] = []
        self.queries: list[tuple[list[float], int]] = []
        self.trades: dict[str, Trade] = {}

    async def ensure_collection(self) -> None:
        return None

    async def upsert(self, trade_id: str, vector: list[float], trade: Trade) -> None:
        _record(self.events, "upsert")
        await asyncio.sleep(0)
        self.upserts.append((trade_id, vector))
        self.trades[trade_id] = trade

    async def query(self, vector: list[float], limit: int) -> list[SimilarTrade]:
        _record(self.events, "query")
        await asyncio.sleep(0)
        self.queries.append((vector, limit))
        return [SimilarTrade(trade=t, similarity=0.9) for t in self.trades.values()][:limit]

    async def get_by_id(self, trade_id: str) -> Optional[Trade]:
        return self.trades.get(trade_id)


class FakeAdvice(AdvicePort):
    """Returns canned coaching text. Fails on the call numbers in ``fail_on``."""

    def __init__(
        self,
        text: str = "Keep your size consistent.",
        fail_on=(),
        events: Optional[list] = None,
    ) -> None:
        self.text = text
        self.fail_on = set(fail_on)
        self.events = events
        self.contexts: list[CoachingContext] = []

    async def generate(self, context: CoachingContext) -> str:
        self.contexts.append(context)
        _record(self.events, "generate")
        await asyncio.sleep(0)
        if len(self.contexts) in self.fail_on:
            raise AdviceError("model unavailable")
        return self.text


@pytest.fixture
def sample_trades() -> list[Trade]:
    """Five trades with a revenge entry after the first loss."""
    return [
        make_trade(pnl=120.0, size=1.0, minute=0),
        make_trade(pnl=-80.0, size=1.0, minute=10),
        make_trade(pnl=-40.0, size=2.0, minute=20),
        make_trade(pnl=60.0, size=1.0, minute=30),
        make_trade(pnl=30.0, size=1.0, minute=40),
    ]


@pytest.fixture
def build_service(sample_trades) -> Callable[..., CoachingWorkflowService]:
    """Factory for a workflow service wired with fakes.

    Keyword arguments override individual fakes or limits.
    """

    def _build(**overrides) -> CoachingWorkflowService:
        kwargs = {
            "trade_source": FakeTradeSource(sample_trades),
            "embedding_port": FakeEmbedding(),
            "similarity_store": FakeStore(),
            "advice_port": FakeAdvice(),
        }
        kwargs.update(overrides)
        return CoachingWorkflowService(**kwargs)

    return _build
