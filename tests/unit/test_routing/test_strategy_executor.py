"""Tests for routing strategy execution"""

import asyncio

import pytest

from hybrid_router.models.routing import Capability, RoutingRequest, RoutingStrategy
from hybrid_router.services.routing.base_provider import ProviderResult
from hybrid_router.services.routing.exceptions import (
    ConfigurationError,
    EnsembleExhaustedError,
    FallbackExhaustedError,
    ProviderError,
    ProviderTimeoutError,
    RoutingValidationError,
)
from hybrid_router.services.routing.strategy_executor import ENSEMBLE_PROVIDER, StrategyExecutor


def _request(strategy=RoutingStrategy.SINGLE, task_type=Capability.CHAT, **kwargs) -> RoutingRequest:
    return RoutingRequest(payload="hello", task_type=task_type, strategy=strategy, **kwargs)


@pytest.fixture
def three_models(make_descriptor):
    """Three equally scored ollama models, so ranking keeps registration order"""
    return [make_descriptor("ollama", name) for name in ("m1", "m2", "m3")]


class TestSingleStrategy:
    """Test single execution"""

    @pytest.mark.asyncio
    async def test_top_ranked_model_serves_request(self, make_executor, scripted_provider, three_models, metrics):
        """Test the first ranked model is called once"""
        client = scripted_provider("ollama")
        executor = make_executor(client)

        response = await executor.execute(_request(), three_models, timeout_ms=1000)

        assert response.provider == "ollama"
        assert response.model_id == "m1"
        assert response.result == "ollama:m1"
        assert response.confidence == 0.8
        assert response.metadata.strategy == RoutingStrategy.SINGLE
        assert response.metadata.attempted == ["ollama:m1"]
        assert [c["model_id"] for c in client.calls] == ["m1"]
        assert metrics.get_snapshot("ollama:m1").success_count == 1

    @pytest.mark.asyncio
    async def test_descriptor_settings_forwarded(self, make_executor, scripted_provider, make_descriptor):
        """Test max_tokens and temperature come from the descriptor"""
        client = scripted_provider("ollama")
        descriptor = make_descriptor("ollama", "m1", max_tokens=123, temperature=0.7)

        await make_executor(client).execute(_request(), [descriptor], timeout_ms=1000)

        assert client.calls[0]["max_tokens"] == 123
        assert client.calls[0]["temperature"] == 0.7
        assert client.calls[0]["payload"] == "hello"

    @pytest.mark.asyncio
    async def test_failure_propagates(self, make_executor, scripted_provider, three_models, metrics):
        """Test single strategy never falls back"""
        client = scripted_provider("ollama", responses={"m1": RuntimeError("model offline")})

        with pytest.raises(ProviderError) as exc_info:
            await make_executor(client).execute(_request(), three_models, timeout_ms=1000)

        assert exc_info.value.model_key == "ollama:m1"
        assert "model offline" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert len(client.calls) == 1
        snapshot = metrics.get_snapshot("ollama:m1")
        assert snapshot.failure_count == 1
        assert snapshot.last_error == "model offline"

    @pytest.mark.asyncio
    async def test_timeout_becomes_provider_timeout(self, make_executor, scripted_provider, three_models, metrics):
        """Test a slow call is cut off and recorded as a failure"""
        client = scripted_provider("ollama", delays={"m1": 1.0})

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await make_executor(client).execute(_request(), three_models, timeout_ms=20)

        assert exc_info.value.timeout_ms == 20
        assert metrics.get_snapshot("ollama:m1").failure_count == 1

    @pytest.mark.asyncio
    async def test_no_candidates_makes_no_calls(self, make_executor, scripted_provider):
        """Test an empty candidate list fails before any provider call"""
        client = scripted_provider("ollama")

        with pytest.raises(RoutingValidationError):
            await make_executor(client).execute(_request(), [], timeout_ms=1000)

        assert client.calls == []


class TestFallbackStrategy:
    """Test sequential fallback"""

    @pytest.mark.asyncio
    async def test_third_model_serves_after_two_failures(self, make_executor, scripted_provider, three_models, metrics):
        """Test two failures then success returns the third model's result"""
        client = scripted_provider("ollama", responses={
            "m1": RuntimeError("first down"),
            "m2": RuntimeError("second down"),
        })

        response = await make_executor(client).execute(
            _request(RoutingStrategy.FALLBACK), three_models, timeout_ms=1000
        )

        assert response.model_id == "m3"
        assert response.result == "ollama:m3"
        assert len(response.metadata.fallbacks) == 2
        assert "first down" in response.metadata.fallbacks[0]
        assert "second down" in response.metadata.fallbacks[1]
        assert response.metadata.attempted == ["ollama:m1", "ollama:m2", "ollama:m3"]
        assert metrics.get_snapshot("ollama:m1").failure_count == 1
        assert metrics.get_snapshot("ollama:m2").failure_count == 1
        assert metrics.get_snapshot("ollama:m3").success_count == 1

    @pytest.mark.asyncio
    async def test_first_success_stops_chain(self, make_executor, scripted_provider, three_models):
        """Test later models are not called once one succeeds"""
        client = scripted_provider("ollama")

        response = await make_executor(client).execute(
            _request(RoutingStrategy.FALLBACK), three_models, timeout_ms=1000
        )

        assert response.metadata.fallbacks == []
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_exhausted_chain_reports_every_attempt(self, make_executor, scripted_provider, three_models, metrics):
        """Test all failures raise with errors in attempt order"""
        client = scripted_provider("ollama", responses={
            "m1": RuntimeError("a"),
            "m2": RuntimeError("b"),
            "m3": RuntimeError("c"),
        })

        with pytest.raises(FallbackExhaustedError) as exc_info:
            await make_executor(client).execute(
                _request(RoutingStrategy.FALLBACK), three_models, timeout_ms=1000
            )

        error = exc_info.value
        assert error.attempted == ["ollama:m1", "ollama:m2", "ollama:m3"]
        assert [e.message for e in error.errors] == ["a", "b", "c"]
        assert len(error.to_dict()["attempts"]) == 3
        assert all(s.failure_count == 1 for s in metrics.snapshot_all().values())

    @pytest.mark.asyncio
    async def test_fallback_crosses_providers(self, make_executor, scripted_provider, make_descriptor):
        """Test the chain moves to another provider's client"""
        ollama = scripted_provider("ollama", responses={"local": RuntimeError("daemon down")})
        openai = scripted_provider("openai")
        candidates = [make_descriptor("ollama", "local"), make_descriptor("openai", "remote")]

        response = await make_executor(ollama, openai).execute(
            _request(RoutingStrategy.FALLBACK), candidates, timeout_ms=1000
        )

        assert response.provider == "openai"
        assert len(openai.calls) == 1


class TestEnsembleStrategy:
    """Test concurrent ensemble execution"""

    @pytest.mark.asyncio
    async def test_partial_success_is_combined(self, make_executor, scripted_provider, three_models):
        """Test two of three members succeeding yields two results"""
        client = scripted_provider("ollama", responses={
            "m1": ProviderResult(content="low", confidence=0.6),
            "m2": RuntimeError("member down"),
            "m3": ProviderResult(content="high", confidence=0.9),
        })

        response = await make_executor(client).execute(
            _request(RoutingStrategy.ENSEMBLE), three_models, timeout_ms=1000
        )

        assert response.provider == ENSEMBLE_PROVIDER
        assert response.model_id == "m1+m2+m3"
        assert response.result == "high"
        assert response.confidence == 0.9
        assert len(response.metadata.all_results) == 2
        assert len(response.metadata.errors) == 1
        assert response.metadata.errors[0]["model_id"] == "m2"
        assert response.metadata.combine_method == "best-confidence"

    @pytest.mark.asyncio
    async def test_members_run_concurrently(self, make_executor, scripted_provider, three_models):
        """Test ensemble latency is bounded by the slowest member, not the sum"""
        client = scripted_provider("ollama", delays={"m1": 0.2, "m2": 0.2, "m3": 0.2})

        loop = asyncio.get_running_loop()
        start = loop.time()
        response = await make_executor(client).execute(
            _request(RoutingStrategy.ENSEMBLE), three_models, timeout_ms=5000
        )

        assert loop.time() - start < 0.5
        assert response.latency_ms == max(r.latency_ms for r in response.metadata.all_results)

    @pytest.mark.asyncio
    async def test_ensemble_size_limits_members(self, make_executor, scripted_provider, three_models):
        """Test only the top N ranked models are called"""
        client = scripted_provider("ollama")

        response = await make_executor(client, ensemble_size=2).execute(
            _request(RoutingStrategy.ENSEMBLE), three_models, timeout_ms=1000
        )

        assert response.metadata.attempted == ["ollama:m1", "ollama:m2"]
        assert len(client.calls) == 2

    @pytest.mark.asyncio
    async def test_embeddings_are_averaged(self, make_executor, scripted_provider, make_descriptor):
        """Test embedding ensembles average member vectors"""
        client = scripted_provider("openai", responses={
            "e1": ProviderResult(vector=[1.0, 0.0]),
            "e2": ProviderResult(vector=[0.0, 1.0]),
        })
        candidates = [
            make_descriptor("openai", name, capabilities=[Capability.EMBEDDING])
            for name in ("e1", "e2")
        ]

        response = await make_executor(client).execute(
            _request(RoutingStrategy.ENSEMBLE, Capability.EMBEDDING), candidates, timeout_ms=1000
        )

        assert response.result == [0.5, 0.5]
        assert response.confidence == 0.9
        assert response.metadata.combine_method == "averaging"

    @pytest.mark.asyncio
    async def test_cost_sums_members(self, make_executor, scripted_provider, three_models):
        """Test ensemble cost is the sum of member costs"""
        client = scripted_provider("ollama", responses={
            "m1": ProviderResult(content="x", cost=0.1),
            "m2": ProviderResult(content="y", cost=0.2),
            "m3": ProviderResult(content="z", cost=0.3),
        })

        response = await make_executor(client).execute(
            _request(RoutingStrategy.ENSEMBLE), three_models, timeout_ms=1000
        )

        assert response.cost == pytest.approx(0.6)

    @pytest.mark.asyncio
    async def test_cost_includes_failed_member_partial_cost(self, make_executor, scripted_provider, three_models, metrics):
        """Test a failed member's partial cost is billed and recorded"""
        client = scripted_provider("ollama", responses={
            "m1": ProviderResult(content="x", cost=0.1),
            "m2": ProviderError("ollama", "m2", "stream cut off", cost=0.05),
            "m3": ProviderResult(content="z", cost=0.3),
        })

        response = await make_executor(client).execute(
            _request(RoutingStrategy.ENSEMBLE), three_models, timeout_ms=1000
        )

        assert response.cost == pytest.approx(0.45)
        assert response.metadata.errors[0]["cost"] == 0.05
        assert metrics.get_snapshot("ollama:m2").total_cost == pytest.approx(0.05)

    @pytest.mark.asyncio
    async def test_negative_partial_cost_ignored(self, make_executor, scripted_provider, three_models, metrics):
        """Test a negative cost on a failure is clamped to zero"""
        client = scripted_provider("ollama", responses={
            "m1": ProviderResult(content="x", cost=0.1),
            "m2": ProviderError("ollama", "m2", "refund", cost=-1.0),
            "m3": ProviderResult(content="z", cost=0.2),
        })

        response = await make_executor(client).execute(
            _request(RoutingStrategy.ENSEMBLE), three_models, timeout_ms=1000
        )

        assert response.cost == pytest.approx(0.3)
        assert metrics.get_snapshot("ollama:m2").total_cost == 0.0

    def test_zero_ensemble_size_rejected(self, make_executor, scripted_provider):
        """Test an executor cannot be built with an empty ensemble"""
        with pytest.raises(ConfigurationError):
            make_executor(scripted_provider("ollama"), ensemble_size=0)

    @pytest.mark.asyncio
    async def test_all_members_failing_raises(self, make_executor, scripted_provider, three_models):
        """Test an ensemble with no successes raises with member errors"""
        client = scripted_provider("ollama", responses={
            "m1": RuntimeError("a"),
            "m2": RuntimeError("b"),
            "m3": RuntimeError("c"),
        })

        with pytest.raises(EnsembleExhaustedError) as exc_info:
            await make_executor(client).execute(
                _request(RoutingStrategy.ENSEMBLE), three_models, timeout_ms=1000
            )

        assert len(exc_info.value.errors) == 3

    @pytest.mark.asyncio
    async def test_cancellation_is_not_recorded(self, make_executor, scripted_provider, three_models, metrics):
        """Test cancelling the request cancels members without recording them"""
        client = scripted_provider("ollama", delays={"m1": 5, "m2": 5, "m3": 5})
        task = asyncio.create_task(
            make_executor(client).execute(_request(RoutingStrategy.ENSEMBLE), three_models, timeout_ms=10000)
        )
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert metrics.snapshot_all() == {}


class TestLoadBalanceStrategy:
    """Test least-loaded selection"""

    @pytest.mark.asyncio
    async def test_least_used_model_is_chosen(self, make_executor, scripted_provider, make_descriptor, metrics):
        """Test a model with 0 requests beats one with 5"""
        busy = make_descriptor("ollama", "busy")
        idle = make_descriptor("ollama", "idle")
        for _ in range(5):
            metrics.record_outcome(busy.key, True, 10)
        client = scripted_provider("ollama")

        response = await make_executor(client).execute(
            _request(RoutingStrategy.LOAD_BALANCE), [busy, idle], timeout_ms=1000
        )

        assert response.model_id == "idle"
        assert response.metadata.strategy == RoutingStrategy.LOAD_BALANCE
        assert metrics.get_snapshot(idle.key).request_count == 1


class TestCostEstimation:
    """Test cost accounting on success"""

    def test_reported_tokens_used(self, make_descriptor):
        """Test token count times cost per token"""
        descriptor = make_descriptor("openai", "m", cost_per_token=0.001)

        assert StrategyExecutor.estimate_cost(descriptor, ProviderResult(content="x", tokens=100)) == pytest.approx(0.1)

    def test_tokens_estimated_from_text(self, make_descriptor):
        """Test roughly four characters per token when no count is reported"""
        descriptor = make_descriptor("openai", "m", cost_per_token=0.001)

        assert StrategyExecutor.estimate_cost(descriptor, ProviderResult(content="abcdefghi")) == pytest.approx(0.003)

    @pytest.mark.asyncio
    async def test_reported_cost_wins(self, make_executor, scripted_provider, make_descriptor, metrics):
        """Test a client-reported cost is recorded as is"""
        client = scripted_provider("openai", responses={"m": ProviderResult(content="abc", cost=0.5, tokens=1000)})
        descriptor = make_descriptor("openai", "m")

        response = await make_executor(client).execute(_request(), [descriptor], timeout_ms=1000)

        assert response.cost == 0.5
        assert metrics.get_snapshot(descriptor.key).total_cost == 0.5
