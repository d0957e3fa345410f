"""
Domain service: Behavioral anomaly scoring.

Pure business logic for spotting risky trading behavior in a batch of
closed trades. No framework imports. No IO. No side effects.

Detects:
    - Over-leverage (position size far above the batch average)
    - Revenge trading (sizing up right after a loss)
    - Tilt (a streak of consecutive losses)

Each detected behavior contributes a weighted amount to a composite
risk score in [0, 100].
"""

import math
from statistics import mean
from typing import Optional, Sequence

from app.domain.coaching.entities import (
    AnomalyReport,
    Behavior,
    BehaviorType,
    Severity,
    Trade,
)

BEHAVIOR_WEIGHTS = {
    BehaviorType.OVER_LEVERAGE: 30,
    BehaviorType.REVENGE_TRADING: 35,
    BehaviorType.TILT: 25,
    BehaviorType.VOLATILITY_MISMATCH: 20,
}

SEVERITY_MULTIPLIERS = {
    Severity.LOW: 0.5,
    Severity.MEDIUM: 1.0,
    Severity.HIGH: 1.5,
}

MAX_RISK_SCORE = 100


def _chronological(trades: Sequence[Trade]) -> list[Trade]:
    """Return trades oldest first. Ties keep their input order."""
    return sorted(trades, key=lambda t: t.timestamp)


class BehaviorAnomalyService:
    """Domain service for scoring behavioral anomalies in a trade batch.

    This is pure business logic. It takes in closed trades and returns
    an anomaly report. No database, no HTTP, no frameworks. Calling
    ``detect`` twice on the same input yields an identical report.
    """

    def __init__(
        self,
        leverage_multiple: float = 2.0,
        min_tilt_streak: int = 3,
    ) -> None:
        """Initialize the scoring service.

        Args:
            leverage_multiple: Size above this multiple of the mean size is over-leveraged.
            min_tilt_streak: Shortest losing streak reported as tilt.
        """
        self._leverage_multiple = leverage_multiple
        self._min_tilt_streak = min_tilt_streak

    def detect(self, trades: Sequence[Trade]) -> AnomalyReport:
        """Detect risky behaviors and compute the composite risk score.

        Args:
            trades: Closed trades in any order.

        Returns:
            AnomalyReport with findings ordered over-leverage, revenge
            trading, tilt.
        """
        if not trades:
            return AnomalyReport(risk_score=0, behaviors=())

        candidates = (
            self._detect_over_leverage(trades),
            self._detect_revenge_trading(trades),
            self._detect_tilt(trades),
        )
        behaviors = tuple(b for b in candidates if b is not None)

        return AnomalyReport(
            risk_score=self.calculate_risk_score(behaviors),
            behaviors=behaviors,
        )

    def _detect_over_leverage(self, trades: Sequence[Trade]) -> Optional[Behavior]:
        """Flag trades whose size exceeds twice the batch average.

        Args:
            trades: Closed trades.

        Returns:
            An over-leverage finding, or None.
        """
        avg_size = mean(t.size for t in trades)
        threshold = avg_size * self._leverage_multiple
        oversized = [t.size for t in trades if t.size > threshold]

        if not oversized:
            return None

        max_size = max(oversized)
        ratio = max_size / avg_size

        if ratio > 4:
            severity = Severity.HIGH
        elif ratio > 3:
            severity = Severity.MEDIUM
        else:
            severity = Severity.LOW

        return Behavior(
            type=BehaviorType.OVER_LEVERAGE,
            severity=severity,
            description=(
                f"Detected {len(oversized)} trade(s) with size exceeding "
                f"{self._leverage_multiple:g}x average ({avg_size:.2f}). "
                f"Maximum size: {max_size:.2f}."
            ),
        )

    def _detect_revenge_trading(self, trades: Sequence[Trade]) -> Optional[Behavior]:
        """Flag size increases made immediately after a losing trade.

        Args:
            trades: Closed trades.

        Returns:
            A revenge-trading finding, or None.
        """
        if len(trades) < 2:
            return None

        ordered = _chronological(trades)
        instances = 0
        max_increase = 0.0

        for previous, current in zip(ordered, ordered[1:]):
            if previous.pnl < 0 and current.size > previous.size:
                instances += 1
                max_increase = max(max_increase, current.size / previous.size)

        if instances == 0:
            return None

        if instances >= 3 or max_increase > 2:
            severity = Severity.HIGH
        elif instances >= 2 or max_increase > 1.5:
            severity = Severity.MEDIUM
        else:
            severity = Severity.LOW

        return Behavior(
            type=BehaviorType.REVENGE_TRADING,
            severity=severity,
            description=(
                f"Detected {instances} instance(s) of revenge trading "
                f"(increasing size after losses). "
                f"Maximum increase: {max_increase:.2f}x."
            ),
        )

    def _detect_tilt(self, trades: Sequence[Trade]) -> Optional[Behavior]:
        """Flag the longest streak of consecutive losses if it is long enough.

        Args:
            trades: Closed trades.

        Returns:
            A tilt finding, or None.
        """
        if len(trades) < self._min_tilt_streak:
            return None

        longest = 0
        streak = 0
        for trade in _chronological(trades):
            if trade.pnl < 0:
                streak += 1
                longest = max(longest, streak)
            else:
                streak = 0

        if longest < self._min_tilt_streak:
            return None

        if longest >= 5:
            severity = Severity.HIGH
        elif longest >= 4:
            severity = Severity.MEDIUM
        else:
            severity = Severity.LOW

        return Behavior(
            type=BehaviorType.TILT,
            severity=severity,
            description=(
                f"Detected tilt behavior with {longest} consecutive losses. "
                "This may indicate emotional trading."
            ),
        )

    @staticmethod
    def calculate_risk_score(behaviors: Sequence[Behavior]) -> int:
        """Combine findings into a single score in [0, 100].

        Halves round up, so a raw total of 32.5 scores 33.
        """
        total = sum(
            BEHAVIOR_WEIGHTS[b.type] * SEVERITY_MULTIPLIERS[b.severity]
            for b in behaviors
        )
        return max(0, min(int(math.floor(total + 0.5)), MAX_RISK_SCORE))
