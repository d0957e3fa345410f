"""
Tests for the coaching domain layer.

Tests entities, boundary validation and domain errors in isolation.
No infrastructure or framework dependencies.
"""

import json
from datetime import datetime, timezone

import pytest

from app.domain.coaching.entities import (
    AnomalyReport,
    Behavior,
    BehaviorType,
    Severity,
    TradeDirection,
    WorkflowRun,
    WorkflowStatus,
    WorkflowStep,
)
from app.domain.coaching.errors import (
    EmbeddingCountMismatchError,
    GatewayError,
    NoTradesAvailableError,
    SimilarityStoreError,
    TradeValidationError,
    WorkflowStepError,
)
from app.domain.coaching.validation import validate_trade, validate_trades


def _raw(**overrides) -> dict:
    record = {
        "id": "T-1",
        "symbol": "EURUSD",
        "direction": "LONG",
        "size": 1.5,
        "entry": 1.0850,
        "exit": 1.0872,
        "pnl": 330.0,
        "timestamp": "2025-03-03T09:15:00Z",
    }
    record.update(overrides)
    return record


class TestValidateTrade:
    """Tests for raw trade validation."""

    def test_valid_record(self) -> None:
        """A complete record becomes a Trade with a UTC timestamp."""
        trade = validate_trade(_raw())

        assert trade.id == "T-1"
        assert trade.direction is TradeDirection.LONG
        assert trade.size == 1.5
        assert trade.entry_price == 1.0850
        assert trade.exit_price == 1.0872
        assert trade.timestamp == datetime(2025, 3, 3, 9, 15, tzinfo=timezone.utc)

    def test_missing_fields_are_listed(self) -> None:
        """Every missing required field is reported."""
        raw = _raw()
        del raw["pnl"]
        del raw["exit"]

        with pytest.raises(TradeValidationError) as exc_info:
            validate_trade(raw)

        assert exc_info.value.missing_fields == ["exit", "pnl"]
        assert exc_info.value.trade_id == "T-1"

    def test_non_positive_size_rejected(self) -> None:
        """Size must be strictly positive."""
        with pytest.raises(TradeValidationError, match="size"):
            validate_trade(_raw(size=0))
        with pytest.raises(TradeValidationError, match="size"):
            validate_trade(_raw(size=-1))

    def test_unknown_direction_rejected(self) -> None:
        """Only LONG/SHORT (or BUY/SELL) are accepted."""
        with pytest.raises(TradeValidationError, match="direction"):
            validate_trade(_raw(direction="FLAT"))

    def test_broker_aliases_accepted(self) -> None:
        """BUY/SELL and lot_size are normalized."""
        raw = _raw(direction="sell")
        raw["lot_size"] = raw.pop("size")

        trade = validate_trade(raw)

        assert trade.direction is TradeDirection.SHORT
        assert trade.size == 1.5

    def test_boolean_is_not_a_number(self) -> None:
        """Booleans are not accepted for numeric fields."""
        with pytest.raises(TradeValidationError, match="pnl"):
            validate_trade(_raw(pnl=True))

    def test_non_finite_numbers_rejected(self) -> None:
        """NaN and Infinity literals from a JSON export are not numbers."""
        export = """[
            {"id": "A", "symbol": "EURUSD", "direction": "LONG", "size": NaN,
             "entry": 1.08, "exit": 1.09, "pnl": 1.0, "timestamp": "2025-03-03T09:15:00Z"},
            {"id": "B", "symbol": "EURUSD", "direction": "LONG", "size": 1.0,
             "entry": 1.08, "exit": 1.09, "pnl": Infinity, "timestamp": "2025-03-03T09:15:00Z"},
            {"id": "C", "symbol": "EURUSD", "direction": "LONG", "size": 1.0,
             "entry": -Infinity, "exit": 1.09, "pnl": 1.0, "timestamp": "2025-03-03T09:15:00Z"}
        ]"""
        raw = json.loads(export)

        assert validate_trades(raw) == []
        with pytest.raises(TradeValidationError, match="size"):
            validate_trade(_raw(size=float("nan")))
        with pytest.raises(TradeValidationError, match="pnl"):
            validate_trade(_raw(pnl=float("inf")))

    def test_invalid_timestamp_rejected(self) -> None:
        """Timestamps must be ISO 8601."""
        with pytest.raises(TradeValidationError, match="timestamp"):
            validate_trade(_raw(timestamp="yesterday"))

    def test_naive_timestamp_assumed_utc(self) -> None:
        """A timestamp without offset is read as UTC."""
        trade = validate_trade(_raw(timestamp="2025-03-03T09:15:00"))
        assert trade.timestamp.tzinfo == timezone.utc

    def test_non_mapping_rejected(self) -> None:
        """A record that is not an object is invalid."""
        with pytest.raises(TradeValidationError):
            validate_trade(["T-1", "EURUSD"])

    def test_batch_drops_invalid_records(self) -> None:
        """validate_trades keeps valid records in input order."""
        trades = validate_trades(
            [_raw(id="A"), _raw(id="B", size=0), _raw(id="C"), "garbage"]
        )
        assert [t.id for t in trades] == ["A", "C"]


class TestTrade:
    """Tests for the Trade entity."""

    def test_win_and_loss(self) -> None:
        """pnl sign drives is_win/is_loss; break-even is neither."""
        assert validate_trade(_raw(pnl=5)).is_win
        assert validate_trade(_raw(pnl=-5)).is_loss
        flat = validate_trade(_raw(pnl=0))
        assert not flat.is_win and not flat.is_loss

    def test_describe_mentions_key_fields(self) -> None:
        """The embedding text names the symbol, side, size and P/L."""
        text = validate_trade(_raw()).describe()
        assert text.startswith("EURUSD LONG trade with size 1.5")
        assert "P/L: 330" in text


class TestEntities:
    """Tests for report and run entities."""

    def test_severity_ordering(self) -> None:
        """Severities compare low < medium < high."""
        assert Severity.LOW < Severity.MEDIUM < Severity.HIGH
        assert max([Severity.MEDIUM, Severity.HIGH, Severity.LOW]) is Severity.HIGH

    def test_report_find(self) -> None:
        """find returns the finding of a type or None."""
        tilt = Behavior(BehaviorType.TILT, Severity.LOW, "tilt")
        report = AnomalyReport(risk_score=13, behaviors=(tilt,))

        assert report.find(BehaviorType.TILT) is tilt
        assert report.find(BehaviorType.OVER_LEVERAGE) is None

    def test_run_terminal_states(self) -> None:
        """Only completed and failed runs are terminal."""
        now = datetime.now(timezone.utc)
        pending = WorkflowRun("workflow-1", WorkflowStatus.PENDING, now)
        failed = WorkflowRun(
            "workflow-1",
            WorkflowStatus.FAILED,
            now,
            finished_at=now,
            error="x",
            failed_step=WorkflowStep.LOAD_TRADES,
        )
        assert not pending.is_terminal
        assert failed.is_terminal


class TestDomainErrors:
    """Tests for domain error messages and hierarchy."""

    def test_step_error_message(self) -> None:
        """Step errors read '<Step> failed: <cause>'."""
        exc = WorkflowStepError(WorkflowStep.LOAD_TRADES, NoTradesAvailableError())

        assert exc.message == "LoadTrades failed: No trades available"
        assert exc.step is WorkflowStep.LOAD_TRADES

    def test_step_error_without_cause_message(self) -> None:
        """An empty cause message falls back to the exception name."""
        exc = WorkflowStepError(WorkflowStep.EMBED_TRADES, RuntimeError())
        assert exc.message == "EmbedTrades failed: RuntimeError"

    def test_mismatch_message(self) -> None:
        exc = EmbeddingCountMismatchError(3, 2)
        assert exc.message == (
            "Mismatch between trades and embeddings count: 3 trades, 2 embeddings"
        )

    def test_gateway_hierarchy(self) -> None:
        """Gateway failures share a base class."""
        assert issubclass(SimilarityStoreError, GatewayError)
