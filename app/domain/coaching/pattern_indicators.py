"""
Domain service: Pattern indicators.

Projects an anomaly report and its trade batch into the indicator
summary shown alongside the coaching text. Pure functions. No IO.
"""

from dataclasses import dataclass
from typing import Sequence

from app.domain.coaching.entities import (
    AnomalyReport,
    BehaviorType,
    OverLeverageIndicator,
    PatternIndicators,
    ProfitConsistencyIndicator,
    QualityStatus,
    RiskRewardIndicator,
    Severity,
    TiltRevengeIndicator,
    Trade,
)

# Ratio reported when there are wins but no losses to divide by.
UNBOUNDED_RATIO = 999.0

_CONSISTENCY_MESSAGES = {
    QualityStatus.EXCELLENT: "Excellent consistency!",
    QualityStatus.GOOD: "Good performance, room for improvement.",
    QualityStatus.POOR: "Focus on improving win rate and profit factor.",
}

_RISK_REWARD_MESSAGES = {
    QualityStatus.EXCELLENT: "Excellent risk management!",
    QualityStatus.GOOD: "Good risk/reward balance.",
    QualityStatus.POOR: "Consider improving your risk/reward ratio.",
}


@dataclass(frozen=True)
class PnlBreakdown:
    """Winners and losers of a batch. Break-even trades count in neither."""

    total_trades: int
    wins: tuple[float, ...]
    losses: tuple[float, ...]

    @classmethod
    def from_trades(cls, trades: Sequence[Trade]) -> "PnlBreakdown":
        return cls(
            total_trades=len(trades),
            wins=tuple(t.pnl for t in trades if t.is_win),
            losses=tuple(t.pnl for t in trades if t.is_loss),
        )

    @property
    def gross_profit(self) -> float:
        return sum(self.wins)

    @property
    def gross_loss(self) -> float:
        return abs(sum(self.losses))

    @property
    def win_rate(self) -> float:
        if self.total_trades == 0:
            return 0.0
        return len(self.wins) / self.total_trades * 100

    @property
    def avg_win(self) -> float:
        return self.gross_profit / len(self.wins) if self.wins else 0.0

    @property
    def avg_loss(self) -> float:
        return self.gross_loss / len(self.losses) if self.losses else 0.0


def _safe_ratio(numerator: float, denominator: float) -> float:
    if denominator > 0:
        return numerator / denominator
    return UNBOUNDED_RATIO if numerator > 0 else 0.0


def profit_consistency(trades: Sequence[Trade]) -> ProfitConsistencyIndicator:
    """Win rate, average win/loss and profit factor of a batch."""
    pnl = PnlBreakdown.from_trades(trades)
    profit_factor = _safe_ratio(pnl.gross_profit, pnl.gross_loss)

    if pnl.win_rate >= 60 and profit_factor >= 2:
        status = QualityStatus.EXCELLENT
    elif pnl.win_rate >= 45 and profit_factor >= 1.5:
        status = QualityStatus.GOOD
    else:
        status = QualityStatus.POOR

    return ProfitConsistencyIndicator(
        win_rate=pnl.win_rate,
        avg_win=pnl.avg_win,
        avg_loss=pnl.avg_loss,
        profit_factor=profit_factor,
        status=status,
        message=(
            f"Win rate: {pnl.win_rate:.1f}%, Profit factor: {profit_factor:.2f}. "
            f"{_CONSISTENCY_MESSAGES[status]}"
        ),
    )


def risk_reward(trades: Sequence[Trade]) -> RiskRewardIndicator:
    """Average win over average loss of a batch."""
    pnl = PnlBreakdown.from_trades(trades)
    ratio = _safe_ratio(pnl.avg_win, pnl.avg_loss)

    if ratio >= 2:
        status = QualityStatus.EXCELLENT
    elif ratio >= 1.5:
        status = QualityStatus.GOOD
    else:
        status = QualityStatus.POOR

    return RiskRewardIndicator(
        ratio=ratio,
        status=status,
        message=(
            f"Average win: ${pnl.avg_win:.2f}, Average loss: ${pnl.avg_loss:.2f}. "
            f"{_RISK_REWARD_MESSAGES[status]}"
        ),
    )


def build_pattern_indicators(
    report: AnomalyReport, trades: Sequence[Trade]
) -> PatternIndicators:
    """Derive the full indicator set for a completed run.

    Args:
        report: Anomaly report computed over ``trades``.
        trades: The trade batch the run coached on.

    Returns:
        PatternIndicators recomputed from scratch.
    """
    over_leverage = report.find(BehaviorType.OVER_LEVERAGE)
    revenge = report.find(BehaviorType.REVENGE_TRADING)
    tilt = report.find(BehaviorType.TILT)
    tilt_findings = [b for b in (revenge, tilt) if b is not None]

    return PatternIndicators(
        over_leverage=OverLeverageIndicator(
            detected=over_leverage is not None,
            severity=over_leverage.severity if over_leverage else Severity.LOW,
            message=(
                over_leverage.description
                if over_leverage
                else "No over-leverage detected"
            ),
        ),
        profit_consistency=profit_consistency(trades),
        tilt_revenge=TiltRevengeIndicator(
            detected=bool(tilt_findings),
            instances=len(tilt_findings),
            message=(
                tilt_findings[0].description
                if tilt_findings
                else "No tilt or revenge trading detected"
            ),
        ),
        risk_reward=risk_reward(trades),
    )
