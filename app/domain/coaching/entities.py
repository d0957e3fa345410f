"""
Domain entities for the coaching bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class TradeDirection(Enum):
    """Side of a trade."""

    LONG = "LONG"
    SHORT = "SHORT"


class BehaviorType(Enum):
    """Risky trading behaviors recognised by the scoring engine."""

    OVER_LEVERAGE = "over-leverage"
    REVENGE_TRADING = "revenge-trading"
    TILT = "tilt"
    VOLATILITY_MISMATCH = "volatility-mismatch"


class Severity(Enum):
    """Ordered severity of a detected behavior (low < medium < high)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank


_SEVERITY_RANK = {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 2}


class QualityStatus(Enum):
    """Qualitative grade used by the pattern indicators."""

    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"


class WorkflowStatus(Enum):
    """Lifecycle state of a coaching workflow run."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class WorkflowStep(Enum):
    """The six ordered pipeline steps, used to tag failures."""

    LOAD_TRADES = "LoadTrades"
    EMBED_TRADES = "EmbedTrades"
    STORE_TRADES = "StoreTrades"
    RETRIEVE_SIMILAR = "RetrieveSimilar"
    DETECT_ANOMALIES = "DetectAnomalies"
    GENERATE_COACHING = "GenerateCoaching"


@dataclass(frozen=True)
class Trade:
    """A single closed trade taken by the trader."""

    id: str
    symbol: str
    direction: TradeDirection
    size: float
    entry_price: float
    exit_price: float
    pnl: float
    timestamp: datetime

    @property
    def is_win(self) -> bool:
        return self.pnl > 0

    @property
    def is_loss(self) -> bool:
        return self.pnl < 0

    def describe(self) -> str:
        """Render the trade as a sentence suitable for text embedding."""
        return (
            f"{self.symbol} {self.direction.value} trade with size {self.size:g}, "
            f"P/L: {self.pnl:g}, at {self.timestamp.isoformat()}"
        )


@dataclass(frozen=True)
class SimilarTrade:
    """A stored trade returned by a similarity query.

    ``similarity`` is in [0, 1]; higher means more similar.
    """

    trade: Trade
    similarity: float


@dataclass(frozen=True)
class Behavior:
    """A single behavioral finding produced by the scoring engine."""

    type: BehaviorType
    severity: Severity
    description: str


@dataclass(frozen=True)
class AnomalyReport:
    """Composite risk score plus the behaviors that produced it."""

    risk_score: int
    behaviors: tuple[Behavior, ...] = ()

    def find(self, behavior_type: BehaviorType) -> Optional[Behavior]:
        """Return the finding of the given type, if it was detected."""
        for behavior in self.behaviors:
            if behavior.type is behavior_type:
                return behavior
        return None


@dataclass(frozen=True)
class OverLeverageIndicator:
    detected: bool
    severity: Severity
    message: str


@dataclass(frozen=True)
class ProfitConsistencyIndicator:
    win_rate: float
    avg_win: float
    avg_loss: float
    profit_factor: float
    status: QualityStatus
    message: str


@dataclass(frozen=True)
class TiltRevengeIndicator:
    detected: bool
    instances: int
    message: str


@dataclass(frozen=True)
class RiskRewardIndicator:
    ratio: float
    status: QualityStatus
    message: str


@dataclass(frozen=True)
class PatternIndicators:
    """Presentation-oriented summary of a trade batch and its anomaly report."""

    over_leverage: OverLeverageIndicator
    profit_consistency: ProfitConsistencyIndicator
    tilt_revenge: TiltRevengeIndicator
    risk_reward: RiskRewardIndicator


@dataclass(frozen=True)
class CoachingContext:
    """Everything the advice gateway needs to write coaching text."""

    recent_trades: tuple[Trade, ...]
    similar_trades: tuple[SimilarTrade, ...]
    anomaly_report: AnomalyReport


@dataclass(frozen=True)
class CoachingResult:
    """Payload attached to a completed workflow run."""

    coaching: str
    patterns: PatternIndicators
    risk_score: int
    completed_at: datetime


@dataclass(frozen=True)
class WorkflowRun:
    """Snapshot of a workflow run.

    Snapshots are immutable; a transition replaces the stored snapshot.
    ``result`` is set iff the run completed, ``error`` and ``failed_step``
    iff it failed.
    """

    workflow_id: str
    status: WorkflowStatus
    created_at: datetime
    finished_at: Optional[datetime] = None
    result: Optional[CoachingResult] = None
    error: Optional[str] = None
    failed_step: Optional[WorkflowStep] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not WorkflowStatus.PENDING
