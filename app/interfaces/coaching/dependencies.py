"""
Dependency injection for the coaching bounded context.

Builds the infrastructure adapters from settings and wires them into
the workflow service via constructor injection. The workflow service
is created once per application (it owns the run registry) and kept on
``app.state``; FastAPI dependencies read it from there.
"""

from fastapi import Depends, Request

from app.application.coaching.get_workflow_status import GetWorkflowStatusUseCase
from app.application.coaching.list_trades import ListTradesUseCase
from app.application.coaching.start_workflow import StartWorkflowUseCase
from app.application.coaching.workflow_service import CoachingWorkflowService
from app.core.config import Settings, settings
from app.domain.coaching.ports import SimilarityStorePort, TradeSource
from app.infrastructure.coaching.gemini_advice_adapter import GeminiAdviceAdapter
from app.infrastructure.coaching.gemini_embedding_adapter import (
    GeminiEmbeddingAdapter,
)
from app.infrastructure.coaching.in_memory_store_adapter import (
    InMemorySimilarityStoreAdapter,
)
from app.infrastructure.coaching.json_trade_source import JsonTradeSourceAdapter
from app.infrastructure.coaching.qdrant_store_adapter import (
    QdrantSimilarityStoreAdapter,
)


def build_similarity_store(config: Settings) -> SimilarityStorePort:
    """Build the similarity store selected by ``vector_store_backend``."""
    if config.vector_store_backend == "memory":
        return InMemorySimilarityStoreAdapter(vector_size=config.embedding_dimensions)
    return QdrantSimilarityStoreAdapter.from_url(
        config.qdrant_url,
        api_key=config.qdrant_api_key,
        collection_name=config.qdrant_collection,
        vector_size=config.embedding_dimensions,
        max_attempts=config.store_max_attempts,
        base_delay=config.retry_base_delay_seconds,
    )


def build_workflow_service(
    config: Settings, similarity_store: SimilarityStorePort
) -> CoachingWorkflowService:
    """Build CoachingWorkflowService with its infrastructure dependencies."""
    return CoachingWorkflowService(
        trade_source=JsonTradeSourceAdapter(config.trades_file),
        embedding_port=GeminiEmbeddingAdapter(
            api_key=config.gemini_api_key,
            model=config.embedding_model,
            base_url=config.gemini_base_url,
            dimensions=config.embedding_dimensions,
            max_attempts=config.embedding_max_attempts,
            base_delay=config.retry_base_delay_seconds,
            timeout=config.http_timeout_seconds,
        ),
        similarity_store=similarity_store,
        advice_port=GeminiAdviceAdapter(
            api_key=config.gemini_api_key,
            model=config.coaching_model,
            base_url=config.gemini_base_url,
            temperature=config.coaching_temperature,
            max_tokens=config.coaching_max_tokens,
            max_attempts=config.advice_max_attempts,
            base_delay=config.retry_base_delay_seconds,
            timeout=config.http_timeout_seconds,
        ),
        recent_trades_limit=config.recent_trades_limit,
        similar_trades_limit=config.similar_trades_limit,
    )


def get_workflow_service(request: Request) -> CoachingWorkflowService:
    """Return the application's workflow service."""
    return request.app.state.workflow_service


def get_trade_source() -> TradeSource:
    """Build the trade source from settings."""
    return JsonTradeSourceAdapter(settings.trades_file)


def get_start_workflow_use_case(
    workflow_service: CoachingWorkflowService = Depends(get_workflow_service),
) -> StartWorkflowUseCase:
    """Build StartWorkflowUseCase on the shared workflow service."""
    return StartWorkflowUseCase(workflow_service=workflow_service)


def get_workflow_status_use_case(
    workflow_service: CoachingWorkflowService = Depends(get_workflow_service),
) -> GetWorkflowStatusUseCase:
    """Build GetWorkflowStatusUseCase on the shared workflow service."""
    return GetWorkflowStatusUseCase(workflow_service=workflow_service)


def get_list_trades_use_case(
    trade_source: TradeSource = Depends(get_trade_source),
) -> ListTradesUseCase:
    """Build ListTradesUseCase with its trade source."""
    return ListTradesUseCase(trade_source=trade_source)
