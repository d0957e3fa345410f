"""
FastAPI router for the coaching bounded context.

All routes delegate to use cases. No business logic here.
Error mapping is handled by centralized error handlers.
"""

from fastapi import APIRouter, Depends, Path, Query, Request, status

from app.application.coaching.dtos import GetWorkflowStatusQuery, ListTradesQuery
from app.application.coaching.get_workflow_status import GetWorkflowStatusUseCase
from app.application.coaching.list_trades import ListTradesUseCase
from app.application.coaching.start_workflow import StartWorkflowUseCase
from app.domain.coaching.entities import (
    CoachingResult,
    PatternIndicators,
    Trade,
    WorkflowRun,
)
from app.interfaces.coaching.dependencies import (
    get_list_trades_use_case,
    get_start_workflow_use_case,
    get_workflow_status_use_case,
)
from app.interfaces.coaching.schemas import (
    WORKFLOW_ID_PATTERN,
    CoachingResultItem,
    ErrorResponse,
    ListTradesResponse,
    OverLeverageItem,
    PatternIndicatorsItem,
    ProfitConsistencyItem,
    RiskRewardItem,
    StartWorkflowResponse,
    TiltRevengeItem,
    TradeItem,
    WorkflowStatusResponse,
)
from app.shared.security.rate_limiting import HEAVY_RATE_LIMIT, limiter

router = APIRouter(prefix="/coaching", tags=["coaching"])


def _trade_item(trade: Trade) -> TradeItem:
    return TradeItem(
        id=trade.id,
        symbol=trade.symbol,
        direction=trade.direction.value,
        size=trade.size,
        entry=trade.entry_price,
        exit=trade.exit_price,
        pnl=trade.pnl,
        timestamp=trade.timestamp,
    )


def _patterns_item(patterns: PatternIndicators) -> PatternIndicatorsItem:
    consistency = patterns.profit_consistency
    return PatternIndicatorsItem(
        over_leverage=OverLeverageItem(
            detected=patterns.over_leverage.detected,
            severity=patterns.over_leverage.severity.value,
            message=patterns.over_leverage.message,
        ),
        profit_consistency=ProfitConsistencyItem(
            win_rate=consistency.win_rate,
            avg_win=consistency.avg_win,
            avg_loss=consistency.avg_loss,
            profit_factor=consistency.profit_factor,
            status=consistency.status.value,
            message=consistency.message,
        ),
        tilt_revenge=TiltRevengeItem(
            detected=patterns.tilt_revenge.detected,
            instances=patterns.tilt_revenge.instances,
            message=patterns.tilt_revenge.message,
        ),
        risk_reward=RiskRewardItem(
            ratio=patterns.risk_reward.ratio,
            status=patterns.risk_reward.status.value,
            message=patterns.risk_reward.message,
        ),
    )


def _result_item(result: CoachingResult) -> CoachingResultItem:
    return CoachingResultItem(
        coaching=result.coaching,
        patterns=_patterns_item(result.patterns),
        risk_score=result.risk_score,
        timestamp=result.completed_at,
    )


def _status_response(run: WorkflowRun) -> WorkflowStatusResponse:
    return WorkflowStatusResponse(
        workflow_id=run.workflow_id,
        status=run.status.value,
        created_at=run.created_at,
        finished_at=run.finished_at,
        result=_result_item(run.result) if run.result else None,
        error=run.error,
        failed_step=run.failed_step.value if run.failed_step else None,
    )


@router.get(
    "/trades",
    response_model=ListTradesResponse,
    summary="List trades",
    description="Return the trader's valid closed trades. Invalid records are dropped.",
)
def list_trades(
    limit: int | None = Query(default=None, ge=1, le=500),
    use_case: ListTradesUseCase = Depends(get_list_trades_use_case),
) -> ListTradesResponse:
    """List trades, optionally only the most recent ``limit``."""
    trades = use_case.execute(ListTradesQuery(limit=limit))
    return ListTradesResponse(trades=[_trade_item(t) for t in trades])


@router.post(
    "/workflows",
    response_model=StartWorkflowResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a coaching workflow",
    description=(
        "Start the coaching pipeline in the background and return its id. "
        "Poll the status endpoint for the outcome."
    ),
)
@limiter.limit(HEAVY_RATE_LIMIT)
async def start_workflow(
    request: Request,
    use_case: StartWorkflowUseCase = Depends(get_start_workflow_use_case),
) -> StartWorkflowResponse:
    """Start a coaching workflow run."""
    result = use_case.execute()
    return StartWorkflowResponse(workflow_id=result.workflow_id)


@router.get(
    "/workflows/{workflow_id}",
    response_model=WorkflowStatusResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get workflow status",
    description="Return the current status of a run and, once finished, its result or failure.",
)
def get_workflow_status(
    workflow_id: str = Path(..., pattern=WORKFLOW_ID_PATTERN),
    use_case: GetWorkflowStatusUseCase = Depends(get_workflow_status_use_case),
) -> WorkflowStatusResponse:
    """Poll a coaching workflow run."""
    run = use_case.execute(GetWorkflowStatusQuery(workflow_id=workflow_id))
    return _status_response(run)
