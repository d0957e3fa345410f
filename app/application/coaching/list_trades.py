"""
Use case: List the trader's closed trades.

Input: ListTradesQuery (optional limit)
Output: list[Trade]
Side effects: None (read-only query).
Failure cases: None. Invalid records are dropped by the trade source.
"""

import logging

from app.application.coaching.dtos import ListTradesQuery
from app.domain.coaching.entities import Trade
from app.domain.coaching.ports import TradeSource

logger = logging.getLogger(__name__)


class ListTradesUseCase:
    """Read-only query over the trade source."""

    def __init__(self, trade_source: TradeSource) -> None:
        self._trade_source = trade_source

    def execute(self, query: ListTradesQuery) -> list[Trade]:
        """Return all trades, or the ``limit`` most recent ones."""
        if query.limit is None:
            trades = self._trade_source.all()
        else:
            trades = self._trade_source.recent(query.limit)
        logger.info("Listing %d trades", len(trades))
        return trades
