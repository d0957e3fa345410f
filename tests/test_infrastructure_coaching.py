"""
Tests for the coaching infrastructure adapters.

The JSON trade source and in-memory store run for real. Gemini calls go
through httpx.MockTransport and the Qdrant client is mocked, so nothing
here needs network access.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest
from conftest import make_trade

from app.core.config import settings
from app.domain.coaching.entities import AnomalyReport, CoachingContext, SimilarTrade
from app.domain.coaching.errors import AdviceError, EmbeddingError, SimilarityStoreError
from app.infrastructure.coaching.gemini_advice_adapter import GeminiAdviceAdapter
from app.infrastructure.coaching.gemini_embedding_adapter import GeminiEmbeddingAdapter
from app.infrastructure.coaching.in_memory_store_adapter import (
    InMemorySimilarityStoreAdapter,
)
from app.infrastructure.coaching.json_trade_source import JsonTradeSourceAdapter
from app.infrastructure.coaching.prompt_loader import PromptLoader
from app.infrastructure.coaching.qdrant_store_adapter import (
    QdrantSimilarityStoreAdapter,
)
from app.infrastructure.coaching.trade_payload import (
    point_id_for,
    trade_from_payload,
    trade_to_payload,
)


def _raw(trade_id: str, timestamp: str, size: float = 1.0) -> dict:
    return {
        "id": trade_id,
        "symbol": "GBPUSD",
        "direction": "SHORT",
        "size": size,
        "entry": 1.27,
        "exit": 1.26,
        "pnl": 100.0,
        "timestamp": timestamp,
    }


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _context() -> CoachingContext:
    trade = make_trade(pnl=-20, size=2)
    return CoachingContext(
        recent_trades=(trade,),
        similar_trades=(),
        anomaly_report=AnomalyReport(risk_score=42),
    )


class TestJsonTradeSource:
    """Tests for the JSON file trade source."""

    def test_all_keeps_file_order_and_drops_invalid(self, tmp_path) -> None:
        path = tmp_path / "trades.json"
        path.write_text(
            json.dumps(
                [
                    _raw("B", "2025-03-02T10:00:00Z"),
                    _raw("BAD", "2025-03-02T11:00:00Z", size=0),
                    _raw("A", "2025-03-01T10:00:00Z"),
                ]
            )
        )

        trades = JsonTradeSourceAdapter(path).all()

        assert [t.id for t in trades] == ["B", "A"]

    def test_recent_is_newest_first(self, tmp_path) -> None:
        path = tmp_path / "trades.json"
        path.write_text(
            json.dumps(
                {
                    "trades": [
                        _raw("A", "2025-03-01T10:00:00Z"),
                        _raw("C", "2025-03-03T10:00:00Z"),
                        _raw("B", "2025-03-02T10:00:00Z"),
                    ]
                }
            )
        )

        trades = JsonTradeSourceAdapter(path).recent(2)

        assert [t.id for t in trades] == ["C", "B"]

    def test_rejects_non_list(self, tmp_path) -> None:
        path = tmp_path / "trades.json"
        path.write_text(json.dumps({"trades": "nope"}))

        with pytest.raises(ValueError):
            JsonTradeSourceAdapter(path).all()

    def test_bundled_sample_file(self) -> None:
        """The sample export has one deliberately invalid record."""
        trades = JsonTradeSourceAdapter(settings.trades_file).all()

        assert len(trades) == 12
        assert "T-1013" not in {t.id for t in trades}


class TestTradePayload:
    """Tests for the store payload mapping."""

    def test_point_id_is_stable_and_unsigned(self) -> None:
        assert point_id_for("T-1001") == point_id_for("T-1001")
        assert point_id_for("T-1001") != point_id_for("T-1002")
        assert 0 <= point_id_for("T-1001") < 2**63

    def test_payload_round_trip(self) -> None:
        trade = make_trade(pnl=-12.5, size=0.75, minute=7)
        assert trade_from_payload(trade_to_payload(trade)) == trade


class TestInMemorySimilarityStore:
    """Tests for the numpy-backed in-memory store."""

    @pytest.mark.asyncio
    async def test_query_orders_by_similarity(self) -> None:
        store = InMemorySimilarityStoreAdapter(vector_size=3)
        await store.upsert("A", [1.0, 0.0, 0.0], make_trade(pnl=1, trade_id="A"))
        await store.upsert("B", [0.0, 1.0, 0.0], make_trade(pnl=1, trade_id="B"))
        await store.upsert("C", [1.0, 1.0, 0.0], make_trade(pnl=1, trade_id="C"))

        results = await store.query([1.0, 0.1, 0.0], limit=2)

        assert [r.trade.id for r in results] == ["A", "C"]
        assert all(0.0 <= r.similarity <= 1.0 for r in results)

    @pytest.mark.asyncio
    async def test_opposite_vectors_clamp_to_zero(self) -> None:
        store = InMemorySimilarityStoreAdapter(vector_size=2)
        await store.upsert("A", [-1.0, 0.0], make_trade(pnl=1, trade_id="A"))

        results = await store.query([1.0, 0.0], limit=5)

        assert results == [SimilarTrade(trade=make_trade(pnl=1, trade_id="A"), similarity=0.0)]

    @pytest.mark.asyncio
    async def test_upsert_replaces_and_get_by_id(self) -> None:
        store = InMemorySimilarityStoreAdapter(vector_size=2)
        await store.upsert("A", [1.0, 0.0], make_trade(pnl=1, trade_id="A"))
        await store.upsert("A", [0.0, 1.0], make_trade(pnl=9, trade_id="A"))

        assert (await store.get_by_id("A")).pnl == 9
        assert await store.get_by_id("missing") is None
        assert len(await store.query([0.0, 1.0], limit=10)) == 1

    @pytest.mark.asyncio
    async def test_wrong_dimension_rejected(self) -> None:
        store = InMemorySimilarityStoreAdapter(vector_size=3)

        with pytest.raises(SimilarityStoreError):
            await store.upsert("A", [1.0, 0.0], make_trade(pnl=1, trade_id="A"))

    @pytest.mark.asyncio
    async def test_empty_store(self) -> None:
        store = InMemorySimilarityStoreAdapter(vector_size=3)
        assert await store.query([1.0, 0.0, 0.0], limit=5) == []


class TestQdrantSimilarityStore:
    """Tests for the Qdrant adapter against a mocked async client."""

    @pytest.mark.asyncio
    async def test_ensure_collection_creates_when_missing(self) -> None:
        client = AsyncMock()
        client.collection_exists.return_value = False
        store = QdrantSimilarityStoreAdapter(client, collection_name="trades", vector_size=8)

        await store.ensure_collection()

        kwargs = client.create_collection.await_args.kwargs
        assert kwargs["collection_name"] == "trades"
        assert kwargs["vectors_config"].size == 8

    @pytest.mark.asyncio
    async def test_ensure_collection_keeps_existing(self) -> None:
        client = AsyncMock()
        client.collection_exists.return_value = True

        await QdrantSimilarityStoreAdapter(client).ensure_collection()

        client.create_collection.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upsert_retries_then_fails(self) -> None:
        client = AsyncMock()
        client.upsert.side_effect = ConnectionError("refused")
        store = QdrantSimilarityStoreAdapter(client, max_attempts=3, base_delay=0)

        with pytest.raises(SimilarityStoreError, match="after 3 attempts"):
            await store.upsert("T-1", [0.1, 0.2], make_trade(pnl=1, trade_id="T-1"))

        assert client.upsert.await_count == 3

    @pytest.mark.asyncio
    async def test_query_maps_points(self) -> None:
        trade = make_trade(pnl=5, trade_id="T-9")
        client = AsyncMock()
        client.query_points.return_value = SimpleNamespace(
            points=[
                SimpleNamespace(payload=trade_to_payload(trade), score=1.0000002),
                SimpleNamespace(payload=None, score=0.5),
            ]
        )
        store = QdrantSimilarityStoreAdapter(client)

        results = await store.query([0.1, 0.2], limit=5)

        assert results == [SimilarTrade(trade=trade, similarity=1.0)]

    @pytest.mark.asyncio
    async def test_close_closes_client(self) -> None:
        client = AsyncMock()

        await QdrantSimilarityStoreAdapter(client).close()

        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_query_failure_is_wrapped(self) -> None:
        client = AsyncMock()
        client.query_points.side_effect = RuntimeError("timeout")

        with pytest.raises(SimilarityStoreError, match="timeout"):
            await QdrantSimilarityStoreAdapter(client).query([0.1], limit=1)


class TestGeminiEmbeddingAdapter:
    """Tests for the Gemini embedding gateway."""

    @pytest.mark.asyncio
    async def test_returns_vector(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"embedding": {"values": [0.1] * 768}})

        adapter = GeminiEmbeddingAdapter(api_key="key", http_client=_mock_client(handler))

        vector = await adapter.embed("EURUSD LONG trade")

        assert len(vector) == 768
        assert requests[0].url.path.endswith("/models/text-embedding-004:embedContent")
        assert requests[0].headers["x-goog-api-key"] == "key"
        body = json.loads(requests[0].content)
        assert body["content"]["parts"][0]["text"] == "EURUSD LONG trade"

    @pytest.mark.asyncio
    async def test_retries_server_errors(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"embedding": {"values": [0.0] * 768}})

        adapter = GeminiEmbeddingAdapter(
            api_key="key", base_delay=0, http_client=_mock_client(handler)
        )

        assert len(await adapter.embed("text")) == 768
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_exhausted_retries(self) -> None:
        adapter = GeminiEmbeddingAdapter(
            api_key="key",
            max_attempts=2,
            base_delay=0,
            http_client=_mock_client(lambda request: httpx.Response(500)),
        )

        with pytest.raises(EmbeddingError, match="^Failed to generate embedding after 2 attempts"):
            await adapter.embed("text")

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"embedding": {"values": [0.1, 0.2, 0.3]}})

        adapter = GeminiEmbeddingAdapter(
            api_key="key", base_delay=0, http_client=_mock_client(handler)
        )

        with pytest.raises(EmbeddingError, match="Expected 768 dimensions, got 3"):
            await adapter.embed("text")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_malformed_payload(self) -> None:
        adapter = GeminiEmbeddingAdapter(
            api_key="key",
            http_client=_mock_client(lambda request: httpx.Response(200, json={"oops": 1})),
        )

        with pytest.raises(EmbeddingError, match="Invalid embedding response"):
            await adapter.embed("text")

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        """A 200 with an unparseable body is a gateway error, not retried."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, content=b"<html>oops</html>")

        adapter = GeminiEmbeddingAdapter(
            api_key="key", base_delay=0, http_client=_mock_client(handler)
        )

        with pytest.raises(EmbeddingError, match="Invalid embedding response"):
            await adapter.embed("text")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_non_numeric_values(self) -> None:
        adapter = GeminiEmbeddingAdapter(
            api_key="key",
            dimensions=3,
            http_client=_mock_client(
                lambda request: httpx.Response(
                    200, json={"embedding": {"values": [None, None, None]}}
                )
            ),
        )

        with pytest.raises(EmbeddingError, match="Invalid embedding response"):
            await adapter.embed("text")


class TestGeminiAdviceAdapter:
    """Tests for the Gemini coaching gateway."""

    @pytest.mark.asyncio
    async def test_returns_joined_text(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "candidates": [
                        {"content": {"parts": [{"text": "Reduce size. "}, {"text": "Take a break."}]}}
                    ]
                },
            )

        adapter = GeminiAdviceAdapter(
            api_key="key", temperature=0.2, http_client=_mock_client(handler)
        )

        text = await adapter.generate(_context())

        assert text == "Reduce size. Take a break."
        body = json.loads(requests[0].content)
        assert body["generationConfig"]["temperature"] == 0.2
        assert "Risk Score: 42/100" in body["contents"][0]["parts"][0]["text"]
        assert body["systemInstruction"]["parts"][0]["text"]

    @pytest.mark.asyncio
    async def test_empty_answer_is_retried(self) -> None:
        answers = [{"candidates": []}, {"candidates": [{"content": {"parts": [{"text": "ok"}]}}]}]

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=answers.pop(0))

        adapter = GeminiAdviceAdapter(
            api_key="key", base_delay=0, http_client=_mock_client(handler)
        )

        assert await adapter.generate(_context()) == "ok"

    @pytest.mark.asyncio
    async def test_exhausted_retries(self) -> None:
        adapter = GeminiAdviceAdapter(
            api_key="key",
            max_attempts=2,
            base_delay=0,
            http_client=_mock_client(
                lambda request: httpx.Response(200, json={"candidates": []})
            ),
        )

        with pytest.raises(AdviceError) as exc_info:
            await adapter.generate(_context())

        assert exc_info.value.message == (
            "Failed to generate coaching after 2 attempts: Empty response from Gemini API"
        )

    @pytest.mark.asyncio
    async def test_malformed_candidates_are_retried(self) -> None:
        """A malformed answer is retried like an empty one."""
        answers = [
            httpx.Response(200, json={"candidates": ["bad"]}),
            httpx.Response(200, content=b"not json"),
        ]
        adapter = GeminiAdviceAdapter(
            api_key="key",
            max_attempts=2,
            base_delay=0,
            http_client=_mock_client(lambda request: answers.pop(0)),
        )

        with pytest.raises(AdviceError) as exc_info:
            await adapter.generate(_context())

        assert answers == []
        assert exc_info.value.message == (
            "Failed to generate coaching after 2 attempts: Invalid response from Gemini API"
        )


class TestPromptLoader:
    """Tests for YAML prompt loading and rendering."""

    def test_bundled_prompts(self) -> None:
        loader = PromptLoader()

        prompt = loader.render_user_prompt(_context())

        assert loader.get_system_prompt()
        assert "EURUSD LONG" in prompt
        assert "Risk Score: 42/100" in prompt
        assert "No similar historical patterns found." in prompt
        assert "No anomalies detected." in prompt

    def test_missing_file_falls_back(self, tmp_path) -> None:
        loader = PromptLoader(tmp_path / "missing.yaml")

        assert "Risk Score: 42/100" in loader.render_user_prompt(_context())
