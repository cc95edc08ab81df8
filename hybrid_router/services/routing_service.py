"""Request orchestrator routing capability requests across model providers"""

import asyncio
import time
from typing import Any, Dict, List, Mapping, Optional

from .base_service import BaseService
from .service_factory import ServiceFactory, ServiceType
from ..core.config import Settings
from ..core.telemetry import get_meter
from ..models.routing import RoutingRequest, RoutingResponse, RoutingStrategy
from .routing.base_provider import ModelDescriptor, ProviderClient
from .routing.exceptions import RoutingValidationError
from .routing.model_registry import ModelRegistry
from .routing.model_selector import ModelSelector
from .routing.performance_metrics import PerformanceMetricsStore
from .routing.provider_decorators import create_provider_clients, scan_and_import_providers
from .routing.provider_switcher import ProviderSwitcher
from .routing.result_combiner import ResultCombiner
from .routing.strategy_executor import StrategyExecutor


class RoutingService(BaseService):
    """Routes requests to model providers under a chosen strategy

    Wires the model registry, metrics store, selector, combiner, strategy
    executor and adaptive provider switcher together.
    """

    def __init__(
        self,
        clients: Optional[Mapping[str, ProviderClient]] = None,
        registry: Optional[ModelRegistry] = None,
        metrics: Optional[PerformanceMetricsStore] = None,
        settings: Optional[Settings] = None
    ):
        """Initialize routing service

        Args:
            clients: Provider id to client (defaults to decorated providers)
            registry: Model registry (defaults to the configured catalog)
            metrics: Metrics store (defaults to a fresh store)
            settings: Application settings (defaults to get_settings())

        Raises:
            ConfigurationError: If a registered model has no capable client
        """
        super().__init__("RoutingService", settings=settings)
        routing = self.settings.routing

        if registry is None:
            registry = ModelRegistry.from_catalog(routing.models)
        self.registry = registry

        if clients is None:
            scan_and_import_providers()
            clients = create_provider_clients()
        self.clients = dict(clients)
        self.registry.validate_clients(self.clients)

        if metrics is None:
            metrics = PerformanceMetricsStore(d.key for d in self.registry.all())
        self.metrics = metrics
        self.selector = ModelSelector(self.metrics, routing.scoring)
        self.combiner = ResultCombiner(routing.default_confidence)
        self.executor = StrategyExecutor(
            self.clients,
            self.metrics,
            self.selector,
            self.combiner,
            ensemble_size=routing.ensemble_size
        )

        initial = routing.default_provider
        if initial not in self.registry.providers():
            providers = self.registry.providers()
            initial = providers[0] if providers else None
        self.switcher = ProviderSwitcher(
            self.registry,
            self.metrics,
            threshold=routing.fallback_threshold,
            cooldown_seconds=routing.switch_cooldown_seconds,
            initial_provider=initial
        )

        meter = get_meter(__name__)
        self._request_counter = meter.create_counter(
            "routing.requests",
            description="Routed requests by strategy and outcome"
        )
        self._latency_histogram = meter.create_histogram(
            "routing.request.duration",
            unit="ms",
            description="End-to-end routing latency"
        )

        self.logger.info(
            f"Routing service ready: {len(self.registry)} models, "
            f"providers: {', '.join(self.registry.providers())}"
        )

    async def route_request(self, request: RoutingRequest) -> RoutingResponse:
        """Route a request under its strategy

        Args:
            request: Routing request

        Returns:
            Routing response with strategy metadata

        Raises:
            RoutingValidationError: If no model supports the task type
            ProviderError: Single/load-balance call failed
            FallbackExhaustedError: Every fallback model failed
            EnsembleExhaustedError: Every ensemble member failed
            CombineError: Ensemble results could not be merged
        """
        with self.traced_operation(
            "route_request",
            task_type=request.task_type.value,
            strategy=request.strategy.value
        ) as span:
            candidates = self.registry.lookup(request.task_type)
            if not candidates:
                raise RoutingValidationError(
                    f"No registered model supports capability '{request.task_type.value}'"
                )

            timeout_ms = request.timeout_ms or self.settings.routing.default_timeout_ms
            attributes = {"strategy": request.strategy.value, "task_type": request.task_type.value}
            start = time.perf_counter()

            try:
                response = await self.executor.execute(
                    request,
                    candidates,
                    timeout_ms,
                    default_provider=self.switcher.current_provider
                )
            except Exception:
                self._request_counter.add(1, {**attributes, "outcome": "error"})
                raise
            finally:
                self._latency_histogram.record((time.perf_counter() - start) * 1000, attributes)
                if request.strategy == RoutingStrategy.FALLBACK:
                    self.switcher.consider_switch()

            self._request_counter.add(1, {**attributes, "outcome": "success"})
            span.set_attributes({
                "routing.provider": response.provider,
                "routing.model_id": response.model_id,
                "routing.cost": response.cost,
            })
            return response

    def get_metrics_snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Per-model counters with derived rates, keyed by provider:model"""
        return {key: snapshot.to_dict() for key, snapshot in self.metrics.snapshot_all().items()}

    def get_available_models(self) -> List[ModelDescriptor]:
        return self.registry.all()

    def get_preferred_provider(self) -> Optional[str]:
        return self.switcher.current_provider

    def switch_preferred_provider(self, provider: str) -> None:
        """Manually set the default preferred provider

        Raises:
            RoutingValidationError: If the provider has no registered models
        """
        self.switcher.switch(provider)

    async def initialize(self) -> None:
        """Initialize provider clients and run startup health checks

        Switches away from an unhealthy default provider to the first healthy
        one, without starting a cooldown window.
        """
        for client in self.clients.values():
            await client.initialize(client.client_config(self.settings.providers))

        health = await self.check_providers()
        current = self.switcher.current_provider
        if current is not None and not health.get(current, False):
            healthy = [p for p in self.registry.providers() if health.get(p)]
            if healthy:
                self.logger.warning(
                    f"Default provider {current} failed its health check, using {healthy[0]}"
                )
                self.switcher.switch(healthy[0], cooldown=False)
            else:
                self.logger.warning("No provider passed its startup health check")

    async def check_providers(self) -> Dict[str, bool]:
        """Run every client's health check concurrently

        Returns:
            Provider id to health; a check that raises counts as unhealthy
        """
        names = list(self.clients)
        results = await asyncio.gather(
            *(self.clients[name].health_check() for name in names),
            return_exceptions=True
        )

        health = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                self.logger.warning(f"Health check failed for {name}: {result}")
                health[name] = False
            else:
                health[name] = bool(result)
        return health

    async def health_check(self) -> Dict[str, Any]:
        """Report provider health and the current preferred provider"""
        providers = await self.check_providers()
        return {
            "status": "healthy" if any(providers.values()) else "degraded",
            "service": self.service_name,
            "preferred_provider": self.switcher.current_provider,
            "providers": providers,
        }

    async def shutdown(self) -> None:
        for name, client in self.clients.items():
            try:
                await client.shutdown()
            except Exception as e:
                self.logger.warning(f"Error shutting down {name} client: {str(e)}")


# Register with factory
ServiceFactory.register(ServiceType.ROUTING, RoutingService)
