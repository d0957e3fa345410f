"""
Adapter: JSON file trade source.

Implements TradeSource port.
Reads the trader's closed trades from a JSON file (either a bare list of
records or an object with a ``trades`` list), validates them and drops
invalid records.
"""

import json
import logging
from pathlib import Path

from app.domain.coaching.entities import Trade
from app.domain.coaching.ports import TradeSource
from app.domain.coaching.validation import validate_trades

logger = logging.getLogger(__name__)


class JsonTradeSourceAdapter(TradeSource):
    """Concrete trade source backed by a JSON export.

    The file is re-read on every call so edits are picked up without a
    restart.
    """

    def __init__(self, path: Path | str) -> None:
        """Initialize with the path of the JSON export.

        Args:
            path: File containing the raw trade records.
        """
        self._path = Path(path)

    def _load(self) -> list[Trade]:
        with open(self._path, "r", encoding="utf-8") as f:
            payload = json.load(f)

        records = payload.get("trades", []) if isinstance(payload, dict) else payload
        if not isinstance(records, list):
            raise ValueError(f"Trades file {self._path} must contain a list of trades")

        trades = validate_trades(records)
        logger.info("Loaded %d valid trades from %s", len(trades), self._path)
        return trades

    def all(self) -> list[Trade]:
        """Return every valid trade in file order."""
        return self._load()

    def recent(self, limit: int) -> list[Trade]:
        """Return the ``limit`` most recent valid trades, newest first."""
        trades = sorted(self._load(), key=lambda t: t.timestamp, reverse=True)
        return trades[:limit]
