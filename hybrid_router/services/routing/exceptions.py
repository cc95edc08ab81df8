"""Error taxonomy for request routing

Every routing failure surfaces as a ``RoutingError`` subclass carrying enough
detail (attempted models, per-attempt reasons) to diagnose it without logs.
"""

from typing import Any, Dict, List, Optional


class RoutingError(Exception):
    """Base class for all routing errors"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"type": type(self).__name__, "message": self.message}


class ConfigurationError(RoutingError):
    """Registry or provider client wiring is inconsistent"""


class RoutingValidationError(RoutingError):
    """Request cannot be routed; no provider call was attempted"""


class ProviderError(RoutingError):
    """A single provider call failed"""

    def __init__(
        self,
        provider: str,
        model_id: str,
        message: str,
        cost: float = 0.0
    ):
        super().__init__(message)
        self.provider = provider
        self.model_id = model_id
        self.cost = cost

    @property
    def model_key(self) -> str:
        return f"{self.provider}:{self.model_id}"

    def __str__(self) -> str:
        return f"[{self.model_key}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "provider": self.provider,
            "model_id": self.model_id,
            "cost": self.cost,
        })
        return data


class ProviderTimeoutError(ProviderError):
    """A provider call exceeded its timeout"""

    def __init__(self, provider: str, model_id: str, timeout_ms: float):
        super().__init__(provider, model_id, f"Timed out after {timeout_ms:g} ms")
        self.timeout_ms = timeout_ms


class _ExhaustedError(RoutingError):
    def __init__(self, message: str, errors: List[ProviderError]):
        details = "; ".join(str(e) for e in errors)
        super().__init__(f"{message}: {details}" if details else message)
        self.errors = list(errors)

    @property
    def attempted(self) -> List[str]:
        return [e.model_key for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["attempts"] = [e.to_dict() for e in self.errors]
        return data


class FallbackExhaustedError(_ExhaustedError):
    """Every model of the fallback chain failed; errors are in attempt order"""

    def __init__(self, errors: List[ProviderError]):
        super().__init__("All fallback models failed", errors)


class EnsembleExhaustedError(_ExhaustedError):
    """Every ensemble member failed"""

    def __init__(self, errors: List[ProviderError]):
        super().__init__("All ensemble members failed", errors)


class CombineError(RoutingError):
    """Ensemble member results cannot be merged"""

    def __init__(self, message: str, method: Optional[str] = None):
        super().__init__(message)
        self.method = method
