"""
Boundary validation for raw trade records.

Raw records arrive as plain mappings (decoded JSON). They are checked
against the trade invariants here, before anything reaches the workflow.
Pure functions. No IO.
"""

import logging
import math
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Iterable, Mapping

from app.domain.coaching.entities import Trade, TradeDirection
from app.domain.coaching.errors import TradeValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "symbol", "direction", "size", "entry", "exit", "pnl", "timestamp")

# Older exports use broker wording for the side and call the size "lot_size".
_DIRECTION_ALIASES = {
    "LONG": TradeDirection.LONG,
    "BUY": TradeDirection.LONG,
    "SHORT": TradeDirection.SHORT,
    "SELL": TradeDirection.SHORT,
}
_FIELD_ALIASES = {"lot_size": "size"}


def _is_number(value: Any) -> bool:
    if not isinstance(value, Real) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def _parse_timestamp(value: Any, trade_id: str) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise TradeValidationError(
                "Trade timestamp must be a valid ISO 8601 date string", trade_id
            ) from None
    else:
        raise TradeValidationError("Trade timestamp must be a string", trade_id)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_trade(raw: Any) -> Trade:
    """Validate a raw trade mapping and build a Trade.

    Args:
        raw: Decoded record, normally a dict from JSON.

    Returns:
        The validated Trade.

    Raises:
        TradeValidationError: If a field is missing or violates an invariant.
    """
    if not isinstance(raw, Mapping):
        raise TradeValidationError("Trade must be an object")

    record = {_FIELD_ALIASES.get(key, key): value for key, value in raw.items()}
    trade_id = record.get("id") if isinstance(record.get("id"), str) else None

    missing = [name for name in REQUIRED_FIELDS if name not in record]
    if missing:
        raise TradeValidationError(
            f"Trade is missing required fields: {', '.join(missing)}",
            trade_id,
            missing,
        )

    if not isinstance(record["id"], str) or not record["id"].strip():
        raise TradeValidationError("Trade id must be a non-empty string", trade_id)
    if not isinstance(record["symbol"], str) or not record["symbol"].strip():
        raise TradeValidationError("Trade symbol must be a non-empty string", trade_id)

    direction = _DIRECTION_ALIASES.get(str(record["direction"]).upper())
    if direction is None:
        raise TradeValidationError(
            'Trade direction must be either "LONG" or "SHORT"', trade_id
        )

    if not _is_number(record["size"]) or record["size"] <= 0:
        raise TradeValidationError("Trade size must be a positive number", trade_id)
    for name in ("entry", "exit", "pnl"):
        if not _is_number(record[name]):
            raise TradeValidationError(f"Trade {name} must be a number", trade_id)

    return Trade(
        id=record["id"],
        symbol=record["symbol"],
        direction=direction,
        size=float(record["size"]),
        entry_price=float(record["entry"]),
        exit_price=float(record["exit"]),
        pnl=float(record["pnl"]),
        timestamp=_parse_timestamp(record["timestamp"], trade_id),
    )


def validate_trades(raw_trades: Iterable[Any]) -> list[Trade]:
    """Validate a batch of raw records, dropping the invalid ones.

    Each rejected record is logged with its id and reason.

    Returns:
        The valid trades, in input order.
    """
    valid: list[Trade] = []
    rejected = 0
    for raw in raw_trades:
        try:
            valid.append(validate_trade(raw))
        except TradeValidationError as exc:
            rejected += 1
            logger.warning(
                "Dropping invalid trade %s: %s", exc.trade_id or "unknown", exc.message
            )

    if rejected:
        logger.warning("%d trade(s) failed validation", rejected)
    return valid
