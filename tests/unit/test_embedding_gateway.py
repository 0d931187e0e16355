"""Unit tests for EmbeddingGateway -- size ceilings, timeouts and error classification."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from lexbrief.interfaces.embedding_provider import IEmbeddingProvider
from lexbrief.services.embedding_gateway import EmbeddingGateway, estimate_tokens
from lexbrief.utils.errors import EmbeddingError, EmbeddingFailureCause


def _mock_provider(dimension: int = 4) -> MagicMock:
    mock = MagicMock(spec=IEmbeddingProvider)
    mock.get_provider_name.return_value = "mock-embedding"
    mock.get_dimension.return_value = dimension
    mock.is_available.return_value = True
    mock.embed_single = AsyncMock(return_value=[0.1] * dimension)
    return mock


class TestEstimateTokens:
    def test_ceil_division(self) -> None:
        assert estimate_tokens("a" * 10, 2.5) == 4
        assert estimate_tokens("a" * 11, 2.5) == 5

    def test_empty(self) -> None:
        assert estimate_tokens("") == 0


class TestPrepare:
    def test_short_text_untouched(self) -> None:
        gw = EmbeddingGateway(_mock_provider())
        assert gw.prepare("short clause") == ("short clause", False)

    def test_char_ceiling_applied_first(self) -> None:
        gw = EmbeddingGateway(_mock_provider())
        prepared, truncated = gw.prepare("x" * 20_000)

        assert truncated is True
        assert len(prepared) == 6000
        assert estimate_tokens(prepared) <= 4000

    def test_token_ceiling(self) -> None:
        gw = EmbeddingGateway(_mock_provider(), max_chars=20_000, max_tokens=100)
        prepared, truncated = gw.prepare("y" * 1000)

        assert truncated is True
        assert len(prepared) == 250
        assert estimate_tokens(prepared) <= 100

    def test_token_ceiling_with_awkward_ratio(self) -> None:
        gw = EmbeddingGateway(
            _mock_provider(), max_chars=20_000, max_tokens=7, chars_per_token=3.3
        )
        prepared, truncated = gw.prepare("z" * 500)

        assert truncated is True
        assert estimate_tokens(prepared, 3.3) <= 7

    @pytest.mark.parametrize("length", [0, 10, 5999, 6000, 6001, 10_000, 50_000])
    def test_idempotent(self, length: int) -> None:
        gw = EmbeddingGateway(_mock_provider())
        once, _ = gw.prepare("w" * length)
        twice, truncated_again = gw.prepare(once)

        assert twice == once
        assert truncated_again is False

    def test_non_positive_ceilings_rejected(self) -> None:
        with pytest.raises(ValueError):
            EmbeddingGateway(_mock_provider(), max_chars=0)
        with pytest.raises(ValueError):
            EmbeddingGateway(_mock_provider(), chars_per_token=0)


class TestEmbed:
    @pytest.mark.asyncio
    async def test_result_records_truncation(self) -> None:
        provider = _mock_provider()
        gw = EmbeddingGateway(provider)

        result = await gw.embed("x" * 20_000)

        sent = provider.embed_single.await_args.args[0]
        assert len(sent) == 6000
        assert result.truncated is True
        assert result.original_chars == 20_000
        assert result.embedded_chars == 6000
        assert result.estimated_tokens == 2400
        assert result.vector == [0.1] * 4

    @pytest.mark.asyncio
    async def test_timeout_classified(self) -> None:
        provider = _mock_provider()

        async def _slow(_text: str) -> list[float]:
            await asyncio.sleep(1)
            return [0.0] * 4

        provider.embed_single = AsyncMock(side_effect=_slow)
        gw = EmbeddingGateway(provider, timeout_seconds=0.01)

        with pytest.raises(EmbeddingError) as exc_info:
            await gw.embed("slow")
        assert exc_info.value.cause == EmbeddingFailureCause.TIMEOUT
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_provider_classification_preserved(self) -> None:
        provider = _mock_provider()
        provider.embed_single.side_effect = EmbeddingError(
            "slow down", cause=EmbeddingFailureCause.RATE_LIMITED
        )
        gw = EmbeddingGateway(provider)

        with pytest.raises(EmbeddingError) as exc_info:
            await gw.embed("text")
        assert exc_info.value.cause == EmbeddingFailureCause.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_unknown(self) -> None:
        provider = _mock_provider()
        provider.embed_single.side_effect = RuntimeError("boom")
        gw = EmbeddingGateway(provider)

        with pytest.raises(EmbeddingError) as exc_info:
            await gw.embed("text")
        assert exc_info.value.cause == EmbeddingFailureCause.UNKNOWN
        assert exc_info.value.provider_name == "mock-embedding"

    @pytest.mark.asyncio
    async def test_dimension_mismatch_rejected(self) -> None:
        provider = _mock_provider(dimension=4)
        provider.embed_single.return_value = [0.1, 0.2]
        gw = EmbeddingGateway(provider)

        with pytest.raises(EmbeddingError) as exc_info:
            await gw.embed("text")
        assert exc_info.value.cause == EmbeddingFailureCause.UNKNOWN
        assert "expected 4" in str(exc_info.value)


class TestEmbedMany:
    @pytest.mark.asyncio
    async def test_results_in_input_order(self, gateway: EmbeddingGateway, fake_embedding_provider) -> None:
        texts = ["lease term", "transfer fee", "foreign quota"]
        results = await gateway.embed_many(texts, concurrency=3)

        assert [r.vector for r in results] == [
            fake_embedding_provider.vector_for(t) for t in texts
        ]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self) -> None:
        provider = _mock_provider()
        in_flight = 0
        peak = 0

        async def _tracked(_text: str) -> list[float]:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return [0.1] * 4

        provider.embed_single = AsyncMock(side_effect=_tracked)
        gw = EmbeddingGateway(provider)

        await gw.embed_many([f"t{i}" for i in range(6)], concurrency=2)

        assert peak == 2

    @pytest.mark.asyncio
    async def test_return_exceptions(self, provider_factory) -> None:
        failure = EmbeddingError("nope", cause=EmbeddingFailureCause.BAD_REQUEST)
        gw = EmbeddingGateway(provider_factory(fail_on={"bad": failure}))

        results = await gw.embed_many(["good one", "bad one"], return_exceptions=True)

        assert results[0].embedded_chars == len("good one")
        assert results[1] is failure

    @pytest.mark.asyncio
    async def test_first_failure_raises_by_default(self, provider_factory) -> None:
        failure = EmbeddingError("nope", cause=EmbeddingFailureCause.AUTH_FAILED)
        gw = EmbeddingGateway(provider_factory(fail_on={"bad": failure}))

        with pytest.raises(EmbeddingError):
            await gw.embed_many(["good one", "bad one"])

    @pytest.mark.asyncio
    async def test_first_failure_cancels_pending_calls(self) -> None:
        provider = _mock_provider()
        seen: list[str] = []

        async def _rate_limited_first(text: str) -> list[float]:
            seen.append(text)
            await asyncio.sleep(0.01)
            if text == "t0":
                raise EmbeddingError("slow down", cause=EmbeddingFailureCause.RATE_LIMITED)
            return [0.1] * 4

        provider.embed_single = AsyncMock(side_effect=_rate_limited_first)
        gw = EmbeddingGateway(provider)

        with pytest.raises(EmbeddingError) as exc_info:
            await gw.embed_many([f"t{i}" for i in range(6)], concurrency=1)
        calls_at_failure = len(seen)
        await asyncio.sleep(0.05)

        assert exc_info.value.cause == EmbeddingFailureCause.RATE_LIMITED
        assert len(seen) == calls_at_failure
        assert calls_at_failure < 6
