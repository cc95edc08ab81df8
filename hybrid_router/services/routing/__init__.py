"""Multi-provider request routing"""

from .base_provider import (
    ModelDescriptor,
    ProviderClient,
    ProviderResult,
    AttemptOutcome,
    payload_to_messages,
    payload_to_text,
)
from .exceptions import (
    RoutingError,
    ConfigurationError,
    RoutingValidationError,
    ProviderError,
    ProviderTimeoutError,
    FallbackExhaustedError,
    EnsembleExhaustedError,
    CombineError,
)
from .model_registry import ModelRegistry
from .performance_metrics import PerformanceMetricsStore, MetricsSnapshot
from .model_selector import ModelSelector
from .result_combiner import ResultCombiner, CombinedResult
from .strategy_executor import StrategyExecutor, ENSEMBLE_PROVIDER
from .provider_switcher import ProviderSwitcher
from .provider_decorators import (
    register_provider,
    get_registered_providers,
    scan_and_import_providers,
    create_provider_clients,
)

__all__ = [
    # Provider contract
    "ModelDescriptor",
    "ProviderClient",
    "ProviderResult",
    "AttemptOutcome",
    "payload_to_messages",
    "payload_to_text",

    # Errors
    "RoutingError",
    "ConfigurationError",
    "RoutingValidationError",
    "ProviderError",
    "ProviderTimeoutError",
    "FallbackExhaustedError",
    "EnsembleExhaustedError",
    "CombineError",

    # Components
    "ModelRegistry",
    "PerformanceMetricsStore",
    "MetricsSnapshot",
    "ModelSelector",
    "ResultCombiner",
    "CombinedResult",
    "StrategyExecutor",
    "ENSEMBLE_PROVIDER",
    "ProviderSwitcher",

    # Provider registration
    "register_provider",
    "get_registered_providers",
    "scan_and_import_providers",
    "create_provider_clients",
]
