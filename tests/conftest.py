"""Pytest configuration and shared fixtures"""

import asyncio
from typing import Any, Callable, Dict, Iterable, Optional

import pytest

from hybrid_router.core.config import ScoringConfig
from hybrid_router.models.routing import Capability
from hybrid_router.services.routing.base_provider import (
    ModelDescriptor,
    ProviderClient,
    ProviderResult,
)
from hybrid_router.services.routing.model_registry import ModelRegistry
from hybrid_router.services.routing.model_selector import ModelSelector
from hybrid_router.services.routing.performance_metrics import PerformanceMetricsStore
from hybrid_router.services.routing.result_combiner import ResultCombiner
from hybrid_router.services.routing.strategy_executor import StrategyExecutor


TEXT_CAPABILITIES = (
    Capability.COMPLETION,
    Capability.CHAT,
    Capability.ANALYSIS,
    Capability.CREATIVE,
)


class ScriptedProvider(ProviderClient):
    """Provider client whose behaviour is scripted per model id

    ``responses`` maps a model id to a ProviderResult to return or an
    exception to raise. ``delays`` maps a model id to seconds to sleep first.
    Unscripted models answer with ``"<provider>:<model>"``.
    """

    def __init__(
        self,
        name: str,
        capabilities: Iterable[Capability] = tuple(Capability),
        responses: Optional[Dict[str, Any]] = None,
        delays: Optional[Dict[str, float]] = None,
        healthy: bool = True,
        settings_fields: Optional[Dict[str, str]] = None
    ):
        super().__init__()
        self.provider_name = name
        self.settings_fields = settings_fields or {}
        self.supported_capabilities = frozenset(capabilities)
        self.responses = responses or {}
        self.delays = delays or {}
        self.healthy = healthy
        self.calls = []
        self.initialized_with = None
        self.shut_down = False

    async def initialize(self, config: Dict[str, Any]) -> None:
        self.initialized_with = config

    async def execute(self, capability, payload, model_id, timeout_ms, **kwargs) -> ProviderResult:
        self.calls.append({"capability": capability, "model_id": model_id, "payload": payload, **kwargs})

        delay = self.delays.get(model_id)
        if delay:
            await asyncio.sleep(delay)

        behaviour = self.responses.get(model_id)
        if behaviour is None:
            return ProviderResult(content=f"{self.provider_name}:{model_id}")
        if isinstance(behaviour, BaseException):
            raise behaviour
        return behaviour

    async def health_check(self) -> bool:
        if isinstance(self.healthy, BaseException):
            raise self.healthy
        return self.healthy

    async def shutdown(self) -> None:
        self.shut_down = True


@pytest.fixture
def scripted_provider():
    """The ScriptedProvider class, for building fake clients"""
    return ScriptedProvider


@pytest.fixture
def make_descriptor() -> Callable[..., ModelDescriptor]:
    """Build a model descriptor with neutral defaults"""
    def _make(provider: str, model_id: str, capabilities=TEXT_CAPABILITIES, **overrides) -> ModelDescriptor:
        return ModelDescriptor(
            provider=provider,
            model_id=model_id,
            capabilities=frozenset(capabilities),
            **overrides
        )
    return _make


@pytest.fixture
def make_registry() -> Callable[..., ModelRegistry]:
    """Register descriptors in order and freeze the registry"""
    def _make(*descriptors: ModelDescriptor) -> ModelRegistry:
        registry = ModelRegistry()
        for descriptor in descriptors:
            registry.register(descriptor)
        registry.freeze()
        return registry
    return _make


@pytest.fixture
def metrics() -> PerformanceMetricsStore:
    """Empty metrics store"""
    return PerformanceMetricsStore()


@pytest.fixture
def scoring() -> ScoringConfig:
    """Default score weights"""
    return ScoringConfig()


@pytest.fixture
def selector(metrics, scoring) -> ModelSelector:
    return ModelSelector(metrics, scoring)


@pytest.fixture
def make_executor(metrics, selector) -> Callable[..., StrategyExecutor]:
    """Build a strategy executor over scripted clients"""
    def _make(*clients: ScriptedProvider, ensemble_size: int = 3) -> StrategyExecutor:
        return StrategyExecutor(
            {client.provider_name: client for client in clients},
            metrics,
            selector,
            ResultCombiner(),
            ensemble_size=ensemble_size
        )
    return _make
