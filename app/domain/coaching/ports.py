"""
Port interfaces (ABCs) for the coaching bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from typing import Optional

from app.domain.coaching.entities import CoachingContext, SimilarTrade, Trade


class TradeSource(ABC):
    """Port for reading the trader's closed trades."""

    @abstractmethod
    def recent(self, limit: int) -> list[Trade]:
        """Return the most recent valid trades, newest first.

        Args:
            limit: Maximum number of trades to return.

        Returns:
            Up to ``limit`` trades ordered by timestamp descending.
        """
        raise NotImplementedError

    @abstractmethod
    def all(self) -> list[Trade]:
        """Return every valid trade known to the source."""
        raise NotImplementedError


class EmbeddingPort(ABC):
    """Port for turning text into a fixed-length vector."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for ``text``.

        Raises:
            EmbeddingError: On an empty or malformed upstream result, or a
                vector whose length differs from the expected dimension.
        """
        raise NotImplementedError


class SimilarityStorePort(ABC):
    """Port for storing trade vectors and querying nearest neighbours."""

    @abstractmethod
    async def ensure_collection(self) -> None:
        """Create the backing collection if it does not exist. Idempotent."""
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, trade_id: str, vector: list[float], trade: Trade) -> None:
        """Insert or replace a trade and its vector.

        Raises:
            SimilarityStoreError: After the retry budget is exhausted.
        """
        raise NotImplementedError

    @abstractmethod
    async def query(self, vector: list[float], limit: int) -> list[SimilarTrade]:
        """Return up to ``limit`` stored trades, most similar first."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, trade_id: str) -> Optional[Trade]:
        """Return a stored trade by its id, or None if absent."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release client resources. Stores without any keep the default."""
        return None


class AdvicePort(ABC):
    """Port for generating coaching text from a structured context."""

    @abstractmethod
    async def generate(self, context: CoachingContext) -> str:
        """Return coaching advice for the given context.

        Raises:
            AdviceError: If no usable text is produced after all retries.
        """
        raise NotImplementedError
