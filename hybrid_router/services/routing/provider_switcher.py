"""Adaptive switching of the default preferred provider"""

import time
from typing import Callable, Optional

from ...core.logger import CentralizedLogger
from .exceptions import RoutingValidationError
from .model_registry import ModelRegistry
from .performance_metrics import PerformanceMetricsStore


class ProviderSwitcher:
    """Tracks the default preferred provider and demotes it when it degrades

    The default provider only affects requests that do not name a preferred
    provider themselves.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        metrics: PerformanceMetricsStore,
        threshold: float = 0.5,
        cooldown_seconds: float = 300.0,
        initial_provider: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.registry = registry
        self.metrics = metrics
        self.threshold = threshold
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._current: Optional[str] = initial_provider
        self._last_switch_at: Optional[float] = None
        self.logger = CentralizedLogger("ProviderSwitcher")

    @property
    def current_provider(self) -> Optional[str]:
        return self._current

    @property
    def last_switch_at(self) -> Optional[float]:
        return self._last_switch_at

    def error_rate(self, provider: str) -> Optional[float]:
        keys = [d.key for d in self.registry.models_for_provider(provider)]
        return self.metrics.provider_error_rate(keys)

    def switch(self, provider: str, cooldown: bool = True) -> None:
        """Make a provider the default preferred provider

        Args:
            provider: Provider id with at least one registered model
            cooldown: Whether the switch starts a cooldown window

        Raises:
            RoutingValidationError: If no model of that provider is registered
        """
        if provider not in self.registry.providers():
            raise RoutingValidationError(f"Provider '{provider}' is not available")

        previous = self._current
        self._current = provider
        if cooldown:
            self._last_switch_at = self._clock()
        self.logger.info(f"Preferred provider switched: {previous} -> {provider}")

    def in_cooldown(self) -> bool:
        if self._last_switch_at is None:
            return False
        return self._clock() - self._last_switch_at < self.cooldown_seconds

    def consider_switch(self) -> bool:
        """Promote a healthier provider if the current one is failing

        Returns:
            True if the preferred provider changed
        """
        if self._current is None:
            return False

        current_rate = self.error_rate(self._current)
        if current_rate is None or current_rate <= self.threshold:
            return False

        if self.in_cooldown():
            self.logger.debug(
                f"Provider {self._current} error rate {current_rate:.2f} above threshold, "
                f"switch suppressed by cooldown"
            )
            return False

        best_provider, best_rate = None, current_rate
        for provider in self.registry.providers():
            if provider == self._current:
                continue
            rate = self.error_rate(provider)
            # Providers without traffic have no evidence of being healthier
            if rate is not None and rate < best_rate:
                best_provider, best_rate = provider, rate

        if best_provider is None:
            return False

        self.logger.warning(
            f"Provider {self._current} error rate {current_rate:.2f} exceeds "
            f"{self.threshold:.2f}; promoting {best_provider} ({best_rate:.2f})"
        )
        self.switch(best_provider)
        return True
