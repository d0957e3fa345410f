"""
Adapter: Qdrant similarity store.

Implements SimilarityStorePort.
Keeps one cosine-distance collection of trade vectors with the full
trade stored as the point payload.
"""

import logging
from typing import Optional

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from app.domain.coaching.entities import SimilarTrade, Trade
from app.domain.coaching.errors import SimilarityStoreError
from app.domain.coaching.ports import SimilarityStorePort
from app.infrastructure.coaching.trade_payload import (
    clamp_similarity,
    point_id_for,
    trade_from_payload,
    trade_to_payload,
)
from app.shared.retry import DEFAULT_BASE_DELAY, RetryExhaustedError, retry_with_backoff

logger = logging.getLogger(__name__)


class QdrantSimilarityStoreAdapter(SimilarityStorePort):
    """Concrete similarity store backed by a Qdrant collection."""

    def __init__(
        self,
        client: AsyncQdrantClient,
        collection_name: str = "trades",
        vector_size: int = 768,
        max_attempts: int = 3,
        base_delay: float = DEFAULT_BASE_DELAY,
    ) -> None:
        """Initialize the Qdrant adapter.

        Args:
            client: Async Qdrant client.
            collection_name: Collection holding the trade vectors.
            vector_size: Dimension of stored vectors.
            max_attempts: Upsert attempts, including the first.
            base_delay: First retry delay in seconds.
        """
        self._client = client
        self._collection = collection_name
        self._vector_size = vector_size
        self._max_attempts = max_attempts
        self._base_delay = base_delay

    @classmethod
    def from_url(cls, url: str, api_key: Optional[str] = None, **kwargs) -> "QdrantSimilarityStoreAdapter":
        """Build the adapter with a client for the given server URL."""
        return cls(AsyncQdrantClient(url=url, api_key=api_key), **kwargs)

    async def ensure_collection(self) -> None:
        """Create the collection with cosine distance if it is missing."""
        try:
            if await self._client.collection_exists(self._collection):
                logger.info("Qdrant collection already exists: %s", self._collection)
                return
            await self._client.create_collection(
                collection_name=self._collection,
                vectors_config=VectorParams(
                    size=self._vector_size, distance=Distance.COSINE
                ),
            )
            logger.info("Created Qdrant collection: %s", self._collection)
        except Exception as exc:
            raise SimilarityStoreError(
                f"Failed to initialize Qdrant collection: {exc}"
            ) from exc

    async def upsert(self, trade_id: str, vector: list[float], trade: Trade) -> None:
        """Insert or replace one trade point, retrying with backoff."""
        point = PointStruct(
            id=point_id_for(trade_id),
            vector=vector,
            payload=trade_to_payload(trade),
        )
        try:
            await retry_with_backoff(
                lambda: self._client.upsert(
                    collection_name=self._collection, points=[point], wait=True
                ),
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                label=f"Qdrant upsert of trade {trade_id}",
            )
        except RetryExhaustedError as exc:
            raise SimilarityStoreError(f"Failed to store trade {exc}") from exc
        logger.debug("Stored trade %s as point %d", trade_id, point.id)

    async def query(self, vector: list[float], limit: int) -> list[SimilarTrade]:
        """Return the nearest stored trades, most similar first."""
        try:
            response = await self._client.query_points(
                collection_name=self._collection,
                query=vector,
                limit=limit,
                with_payload=True,
            )
        except Exception as exc:
            raise SimilarityStoreError(f"Failed to find similar trades: {exc}") from exc

        return [
            SimilarTrade(
                trade=trade_from_payload(point.payload),
                similarity=clamp_similarity(point.score or 0.0),
            )
            for point in response.points
            if point.payload
        ]

    async def get_by_id(self, trade_id: str) -> Optional[Trade]:
        """Return a stored trade, or None if no point has its key."""
        try:
            points = await self._client.retrieve(
                collection_name=self._collection,
                ids=[point_id_for(trade_id)],
                with_payload=True,
            )
        except Exception as exc:
            raise SimilarityStoreError(f"Failed to retrieve trade: {exc}") from exc

        if not points or not points[0].payload:
            return None
        return trade_from_payload(points[0].payload)

    async def close(self) -> None:
        """Close the underlying Qdrant client."""
        await self._client.close()
        logger.info("Closed Qdrant client")
