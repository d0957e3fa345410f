"""
Adapter: In-memory similarity store.

Implements SimilarityStorePort with numpy cosine similarity over a dict
of vectors. Used for local runs without a Qdrant server and in tests.
Contents are lost when the process exits.
"""

import logging
from typing import Optional

import numpy as np

from app.domain.coaching.entities import SimilarTrade, Trade
from app.domain.coaching.errors import SimilarityStoreError
from app.domain.coaching.ports import SimilarityStorePort
from app.infrastructure.coaching.trade_payload import clamp_similarity, point_id_for

logger = logging.getLogger(__name__)


class InMemorySimilarityStoreAdapter(SimilarityStorePort):
    """Concrete similarity store held in process memory."""

    def __init__(self, vector_size: int = 768) -> None:
        self._vector_size = vector_size
        self._points: dict[int, tuple[np.ndarray, Trade]] = {}

    async def ensure_collection(self) -> None:
        logger.info("Using in-memory similarity store (%d dims)", self._vector_size)

    async def upsert(self, trade_id: str, vector: list[float], trade: Trade) -> None:
        if len(vector) != self._vector_size:
            raise SimilarityStoreError(
                f"Vector dimension {len(vector)} does not match {self._vector_size}"
            )
        self._points[point_id_for(trade_id)] = (np.asarray(vector, dtype=float), trade)

    async def query(self, vector: list[float], limit: int) -> list[SimilarTrade]:
        points = list(self._points.values())
        if not points or limit <= 0:
            return []

        query = np.asarray(vector, dtype=float)
        matrix = np.vstack([v for v, _ in points])
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, matrix @ query / norms, 0.0)

        # Equal scores keep insertion order.
        order = np.argsort(-scores, kind="stable")[:limit]
        return [
            SimilarTrade(trade=points[i][1], similarity=clamp_similarity(scores[i]))
            for i in order
        ]

    async def get_by_id(self, trade_id: str) -> Optional[Trade]:
        point = self._points.get(point_id_for(trade_id))
        return point[1] if point else None
