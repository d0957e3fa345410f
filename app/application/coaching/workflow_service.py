"""
Use case: Run the trade coaching workflow.

Input: none (the trade source supplies the batch).
Output: a workflow id; the outcome is polled through ``status``.
Side effects: stores trade vectors in the similarity store, calls the
    embedding and advice gateways.
Failure cases: any step error marks the run ``failed`` with the step tag.

Pipeline, strictly sequential within a run:
    1. LoadTrades       - most recent trades from the trade source
    2. EmbedTrades      - one vector per trade
    3. StoreTrades      - upsert every (trade, vector) pair
    4. RetrieveSimilar  - nearest neighbours of the first trade's vector
    5. DetectAnomalies  - behavioral scoring
    6. GenerateCoaching - coaching text from the advice gateway

Pattern indicators are derived once all six steps have succeeded.

Each ``start`` spawns one asyncio task. Runs execute concurrently and
share nothing except the registry.
"""

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional
from uuid import uuid4

from app.application.coaching.workflow_registry import WorkflowRegistry
from app.domain.coaching.anomaly_service import BehaviorAnomalyService
from app.domain.coaching.entities import (
    AnomalyReport,
    CoachingContext,
    CoachingResult,
    SimilarTrade,
    Trade,
    WorkflowRun,
    WorkflowStep,
)
from app.domain.coaching.errors import (
    EmbeddingCountMismatchError,
    NoTradesAvailableError,
    WorkflowStepError,
)
from app.domain.coaching.pattern_indicators import build_pattern_indicators
from app.domain.coaching.ports import (
    AdvicePort,
    EmbeddingPort,
    SimilarityStorePort,
    TradeSource,
)

logger = logging.getLogger(__name__)

DEFAULT_RECENT_TRADES = 10
DEFAULT_SIMILAR_TRADES = 5


class CoachingWorkflowService:
    """Orchestrates the six-step coaching pipeline and tracks its runs.

    The service owns its WorkflowRegistry. Gateways are injected as
    ports so tests can substitute fakes.
    """

    def __init__(
        self,
        trade_source: TradeSource,
        embedding_port: EmbeddingPort,
        similarity_store: SimilarityStorePort,
        advice_port: AdvicePort,
        anomaly_service: Optional[BehaviorAnomalyService] = None,
        registry: Optional[WorkflowRegistry] = None,
        recent_trades_limit: int = DEFAULT_RECENT_TRADES,
        similar_trades_limit: int = DEFAULT_SIMILAR_TRADES,
    ) -> None:
        """Initialize the workflow service.

        Args:
            trade_source: Supplies the trade batch for each run.
            embedding_port: Turns trade descriptions into vectors.
            similarity_store: Persists vectors and answers similarity queries.
            advice_port: Writes the coaching text.
            anomaly_service: Scoring engine. A default instance is built if omitted.
            registry: Run registry. A fresh one is built if omitted.
            recent_trades_limit: How many recent trades a run coaches on.
            similar_trades_limit: How many similar trades to retrieve.
        """
        self._trade_source = trade_source
        self._embedding_port = embedding_port
        self._similarity_store = similarity_store
        self._advice_port = advice_port
        self._anomaly_service = anomaly_service or BehaviorAnomalyService()
        self._registry = registry or WorkflowRegistry()
        self._recent_trades_limit = recent_trades_limit
        self._similar_trades_limit = similar_trades_limit
        self._tasks: dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self) -> str:
        """Register a new run and launch its pipeline in the background.

        Must be called while an event loop is running. Returns as soon
        as the run is registered; nothing is awaited.

        Returns:
            The new workflow id.
        """
        workflow_id = f"workflow-{uuid4().hex}"
        self._registry.create(workflow_id)

        task = asyncio.get_running_loop().create_task(
            self._run(workflow_id), name=workflow_id
        )
        self._tasks[workflow_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(workflow_id, None))

        logger.info("Workflow %s started", workflow_id)
        return workflow_id

    def status(self, workflow_id: str) -> Optional[WorkflowRun]:
        """Return the current snapshot of a run, or None if unknown."""
        return self._registry.get(workflow_id)

    def list_runs(self) -> list[WorkflowRun]:
        """Return snapshots of every run this service has started."""
        return self._registry.all()

    @property
    def in_flight(self) -> int:
        """Number of runs whose pipeline task has not finished yet."""
        return len(self._tasks)

    async def wait(self, workflow_id: str) -> Optional[WorkflowRun]:
        """Wait for a run's pipeline task to finish, then return its snapshot.

        Returns immediately for finished or unknown runs.
        """
        task = self._tasks.get(workflow_id)
        if task is not None:
            await asyncio.wait({task})
        return self._registry.get(workflow_id)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(self, workflow_id: str) -> None:
        """Execute the pipeline and record the terminal state."""
        try:
            result = await self._execute(workflow_id)
        except WorkflowStepError as exc:
            self._registry.fail(workflow_id, exc.step, exc.message)
            logger.error(
                "Workflow %s failed at step %s: %s",
                workflow_id,
                exc.step.value,
                exc.message,
            )
            return

        self._registry.complete(workflow_id, result)
        logger.info(
            "Workflow %s completed, risk score %d", workflow_id, result.risk_score
        )

    async def _execute(self, workflow_id: str) -> CoachingResult:
        with self._step(workflow_id, WorkflowStep.LOAD_TRADES):
            trades = self._load_trades()

        with self._step(workflow_id, WorkflowStep.EMBED_TRADES):
            embeddings = await self._embed_trades(trades)

        with self._step(workflow_id, WorkflowStep.STORE_TRADES):
            await self._store_trades(trades, embeddings)

        with self._step(workflow_id, WorkflowStep.RETRIEVE_SIMILAR):
            similar = await self._retrieve_similar(embeddings[0])

        with self._step(workflow_id, WorkflowStep.DETECT_ANOMALIES):
            report = self._detect_anomalies(trades)

        with self._step(workflow_id, WorkflowStep.GENERATE_COACHING):
            coaching = await self._advice_port.generate(
                CoachingContext(
                    recent_trades=tuple(trades),
                    similar_trades=tuple(similar),
                    anomaly_report=report,
                )
            )

        return CoachingResult(
            coaching=coaching,
            patterns=build_pattern_indicators(report, trades),
            risk_score=report.risk_score,
            completed_at=datetime.now(timezone.utc),
        )

    @contextmanager
    def _step(self, workflow_id: str, step: WorkflowStep) -> Iterator[None]:
        """Log a step and tag any error it raises with the step."""
        logger.info("[%s] %s started", workflow_id, step.value)
        try:
            yield
        except Exception as exc:
            raise WorkflowStepError(step, exc) from exc
        logger.info("[%s] %s finished", workflow_id, step.value)

    def _load_trades(self) -> list[Trade]:
        trades = self._trade_source.recent(self._recent_trades_limit)
        if not trades:
            raise NoTradesAvailableError()
        logger.debug("Loaded %d trades", len(trades))
        return trades

    async def _embed_trades(self, trades: list[Trade]) -> list[list[float]]:
        embeddings = []
        for trade in trades:
            embeddings.append(await self._embedding_port.embed(trade.describe()))
        return embeddings

    async def _store_trades(
        self, trades: list[Trade], embeddings: list[list[float]]
    ) -> None:
        if len(trades) != len(embeddings):
            raise EmbeddingCountMismatchError(len(trades), len(embeddings))
        for trade, vector in zip(trades, embeddings):
            await self._similarity_store.upsert(trade.id, vector, trade)

    async def _retrieve_similar(self, vector: list[float]) -> list[SimilarTrade]:
        similar = await self._similarity_store.query(
            vector, self._similar_trades_limit
        )
        logger.debug("Found %d similar trades", len(similar))
        return similar

    def _detect_anomalies(self, trades: list[Trade]) -> AnomalyReport:
        report = self._anomaly_service.detect(trades)
        logger.debug(
            "Detected %d behaviors, risk score %d",
            len(report.behaviors),
            report.risk_score,
        )
        return report
