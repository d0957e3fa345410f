"""
Pydantic schemas for coaching API request/response validation.

These schemas define the API contract for listing trades, starting
workflow runs and polling their status.
No business logic belongs here.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

WORKFLOW_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"

SeverityLabel = Literal["low", "medium", "high"]
QualityLabel = Literal["excellent", "good", "poor"]


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    detail: str | None = None


class TradeItem(BaseModel):
    """A single closed trade."""

    id: str
    symbol: str
    direction: Literal["LONG", "SHORT"]
    size: float
    entry: float
    exit: float
    pnl: float
    timestamp: datetime


class ListTradesResponse(BaseModel):
    """Response schema for the trade listing endpoint."""

    trades: list[TradeItem]


class StartWorkflowResponse(BaseModel):
    """Response schema for starting a coaching workflow."""

    workflow_id: str = Field(..., description="Opaque id to poll for the run status")


class OverLeverageItem(BaseModel):
    detected: bool
    severity: SeverityLabel
    message: str


class ProfitConsistencyItem(BaseModel):
    win_rate: float = Field(..., description="Winning trades as a percentage of all trades")
    avg_win: float
    avg_loss: float = Field(..., description="Average loss as a positive amount")
    profit_factor: float = Field(..., description="999 when there are wins and no losses")
    status: QualityLabel
    message: str


class TiltRevengeItem(BaseModel):
    detected: bool
    instances: int
    message: str


class RiskRewardItem(BaseModel):
    ratio: float = Field(..., description="999 when there are wins and no losses")
    status: QualityLabel
    message: str


class PatternIndicatorsItem(BaseModel):
    """Indicator summary shown next to the coaching text."""

    over_leverage: OverLeverageItem
    profit_consistency: ProfitConsistencyItem
    tilt_revenge: TiltRevengeItem
    risk_reward: RiskRewardItem


class CoachingResultItem(BaseModel):
    """Payload of a completed run."""

    coaching: str
    patterns: PatternIndicatorsItem
    risk_score: int = Field(..., ge=0, le=100)
    timestamp: datetime


class WorkflowStatusResponse(BaseModel):
    """Response schema for polling a workflow run.

    ``result`` is present only when completed; ``error`` and
    ``failed_step`` only when failed.
    """

    workflow_id: str
    status: Literal["pending", "completed", "failed"]
    created_at: datetime
    finished_at: datetime | None = None
    result: CoachingResultItem | None = None
    error: str | None = None
    failed_step: str | None = None
