"""Tests for the routing service orchestrator"""

import pytest

from hybrid_router.core.config import (
    ModelCatalogEntry,
    ProvidersConfig,
    RoutingConfig,
    Settings,
)
from hybrid_router.models.routing import Capability, RoutingRequest, RoutingStrategy
from hybrid_router.services.routing.exceptions import (
    ConfigurationError,
    FallbackExhaustedError,
    RoutingValidationError,
)
from hybrid_router.services.routing_service import RoutingService


@pytest.fixture
def settings() -> Settings:
    """Two providers with one chat model each"""
    return Settings(
        routing=RoutingConfig(
            default_provider="ollama",
            default_timeout_ms=1000,
            fallback_threshold=0.5,
            switch_cooldown_seconds=300,
            models=[
                ModelCatalogEntry(provider="ollama", model_id="qwen:7b", capabilities=["chat", "completion"]),
                ModelCatalogEntry(provider="openai", model_id="gpt-4o-mini", capabilities=["chat", "completion"]),
            ],
        ),
        providers=ProvidersConfig(ollama_base_url="http://ollama.test:11434", openai_api_key="sk-test"),
    )


@pytest.fixture
def clients(scripted_provider):
    return {
        "ollama": scripted_provider("ollama", settings_fields={"base_url": "ollama_base_url"}),
        "openai": scripted_provider("openai", settings_fields={"api_key": "openai_api_key"}),
    }


@pytest.fixture
def service(clients, settings) -> RoutingService:
    return RoutingService(clients=clients, settings=settings)


class TestRouteRequest:
    """Test request routing"""

    @pytest.mark.asyncio
    async def test_unsupported_capability_makes_no_calls(self, service, clients):
        """Test a capability nobody serves fails before any provider call"""
        request = RoutingRequest(payload="embed me", task_type=Capability.EMBEDDING)

        with pytest.raises(RoutingValidationError, match="embedding"):
            await service.route_request(request)

        assert sum(len(c.calls) for c in clients.values()) == 0
        assert all(s["request_count"] == 0 for s in service.get_metrics_snapshot().values())

    @pytest.mark.asyncio
    async def test_default_provider_serves_request(self, service, clients):
        """Test the default provider's bonus picks its model"""
        response = await service.route_request(RoutingRequest(payload="hi", task_type=Capability.CHAT))

        assert response.provider == "ollama"
        assert len(clients["ollama"].calls) == 1

    @pytest.mark.asyncio
    async def test_metrics_snapshot_after_request(self, service):
        """Test outcomes show up in the metrics snapshot"""
        await service.route_request(RoutingRequest(payload="hi", task_type=Capability.CHAT))

        snapshot = service.get_metrics_snapshot()
        assert set(snapshot) == {"ollama:qwen:7b", "openai:gpt-4o-mini"}
        assert snapshot["ollama:qwen:7b"]["request_count"] == 1
        assert snapshot["ollama:qwen:7b"]["success_rate"] == 1.0
        assert snapshot["openai:gpt-4o-mini"]["request_count"] == 0

    @pytest.mark.asyncio
    async def test_fallback_failures_switch_default_provider(self, service, clients):
        """Test a failing default provider is demoted after fallback traffic"""
        clients["ollama"].responses["qwen:7b"] = RuntimeError("daemon down")

        response = await service.route_request(
            RoutingRequest(payload="hi", task_type=Capability.CHAT, strategy=RoutingStrategy.FALLBACK)
        )

        assert response.provider == "openai"
        assert service.get_preferred_provider() == "openai"

    @pytest.mark.asyncio
    async def test_switch_considered_after_exhaustion(self, service, clients):
        """Test the switch check also runs when every fallback fails"""
        clients["ollama"].responses["qwen:7b"] = RuntimeError("down")
        clients["openai"].responses["gpt-4o-mini"] = RuntimeError("down too")

        with pytest.raises(FallbackExhaustedError):
            await service.route_request(
                RoutingRequest(payload="hi", task_type=Capability.CHAT, strategy=RoutingStrategy.FALLBACK)
            )

        # Both providers fail equally, so neither is better
        assert service.get_preferred_provider() == "ollama"

    @pytest.mark.asyncio
    async def test_explicit_preference_beats_adaptive_default(self, service, clients):
        """Test a request's preferred provider is honoured after a switch"""
        service.switch_preferred_provider("openai")

        response = await service.route_request(
            RoutingRequest(payload="hi", task_type=Capability.CHAT, preferred_provider="ollama")
        )

        assert response.provider == "ollama"

    def test_unknown_provider_switch_rejected(self, service):
        """Test manual switches are validated"""
        with pytest.raises(RoutingValidationError):
            service.switch_preferred_provider("mistral")

    def test_available_models(self, service):
        """Test registered descriptors are listed"""
        keys = [d.key for d in service.get_available_models()]

        assert keys == ["ollama:qwen:7b", "openai:gpt-4o-mini"]


class TestConstruction:
    """Test service wiring"""

    def test_missing_client_is_configuration_error(self, settings, scripted_provider):
        """Test every catalog provider needs a client"""
        with pytest.raises(ConfigurationError):
            RoutingService(clients={"ollama": scripted_provider("ollama")}, settings=settings)

    def test_unknown_default_provider_falls_back_to_first(self, settings, clients):
        """Test an unregistered default provider is replaced by the first registered one"""
        settings.routing.default_provider = "mistral"

        service = RoutingService(clients=clients, settings=settings)

        assert service.get_preferred_provider() == "ollama"


class TestLifecycle:
    """Test initialization, health and shutdown"""

    @pytest.mark.asyncio
    async def test_initialize_passes_provider_config(self, service, clients):
        """Test clients receive their connection settings"""
        await service.initialize()

        assert clients["ollama"].initialized_with["base_url"] == "http://ollama.test:11434"
        assert clients["openai"].initialized_with["api_key"] == "sk-test"
        assert "api_key" not in clients["ollama"].initialized_with
        assert clients["openai"].initialized_with["options"] == {}

    @pytest.mark.asyncio
    async def test_unhealthy_default_provider_replaced_at_startup(self, service, clients):
        """Test startup health checks move off a dead default provider"""
        clients["ollama"].healthy = False

        await service.initialize()

        assert service.get_preferred_provider() == "openai"
        assert service.switcher.last_switch_at is None

    @pytest.mark.asyncio
    async def test_health_check_reports_each_provider(self, service, clients):
        """Test a raising health check counts as unhealthy"""
        clients["openai"].healthy = ConnectionError("unreachable")

        health = await service.health_check()

        assert health["providers"] == {"ollama": True, "openai": False}
        assert health["status"] == "healthy"
        assert health["preferred_provider"] == "ollama"

    @pytest.mark.asyncio
    async def test_all_unhealthy_is_degraded(self, service, clients):
        """Test no healthy provider reports degraded"""
        for client in clients.values():
            client.healthy = False

        health = await service.health_check()

        assert health["status"] == "degraded"
