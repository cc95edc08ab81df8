"""Base provider architecture for multi-model routing"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List, FrozenSet, Mapping
from dataclasses import dataclass, field

from ...core.config import ProvidersConfig
from ...models.routing import Capability


@dataclass(frozen=True)
class ModelDescriptor:
    """Static description of a (provider, model) pair"""
    provider: str
    model_id: str
    capabilities: FrozenSet[Capability]
    max_tokens: int = 2048
    temperature: float = 0.3
    priority: int = 1  # 1 is the highest priority
    cost_per_token: float = 0.001
    latency_ms: float = 500  # Nominal latency
    reliability: float = 0.9  # Nominal reliability, 0.0 to 1.0

    @property
    def key(self) -> str:
        return f"{self.provider}:{self.model_id}"

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "provider": self.provider,
            "model_id": self.model_id,
            "capabilities": sorted(c.value for c in self.capabilities),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "priority": self.priority,
            "cost_per_token": self.cost_per_token,
            "latency_ms": self.latency_ms,
            "reliability": self.reliability,
        }


@dataclass
class ProviderResult:
    """Raw outcome reported by a provider client

    Exactly one of ``content`` or ``vector`` is expected to be set.
    ``cost``, ``latency_ms`` and ``tokens`` are optional; the router measures
    or estimates whatever the client leaves out.
    """
    content: Any = None
    vector: Optional[List[float]] = None
    confidence: Optional[float] = None
    cost: Optional[float] = None
    latency_ms: Optional[float] = None
    tokens: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def output(self) -> Any:
        return self.vector if self.vector is not None else self.content


def payload_to_messages(payload: Any) -> List[Dict[str, Any]]:
    """Normalize a payload into chat messages

    Accepts a prompt string, a list of messages, or a dict with ``messages``
    or ``prompt``.
    """
    if isinstance(payload, str):
        return [{"role": "user", "content": payload}]
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        if "messages" in payload:
            return list(payload["messages"])
        if "prompt" in payload:
            return [{"role": "user", "content": payload["prompt"]}]
    raise ValueError(f"Unsupported payload type: {type(payload).__name__}")


def payload_to_text(payload: Any) -> str:
    """Flatten a payload into a single prompt string"""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict) and "prompt" in payload:
        return str(payload["prompt"])
    return "\n".join(str(m.get("content", "")) for m in payload_to_messages(payload))


@dataclass
class AttemptOutcome:
    """A successful call as seen by the router (measured latency, final cost)"""
    descriptor: ModelDescriptor
    output: Any
    is_vector: bool
    confidence: Optional[float]
    latency_ms: float
    cost: float


class ProviderClient(ABC):
    """Abstract base class for provider clients

    One implementation per concrete provider. A client serves every model the
    registry lists under its provider id; the router passes the model id on
    each call.
    """

    # Set by @register_provider
    provider_name: str = ""
    supported_capabilities: FrozenSet[Capability] = frozenset()

    # initialize() config key -> ProvidersConfig attribute
    settings_fields: Mapping[str, str] = {}

    def __init__(self):
        self._client = None

    def client_config(self, providers: ProvidersConfig) -> Dict[str, Any]:
        """Build the initialize() config for this client from provider settings"""
        config: Dict[str, Any] = {"options": dict(providers.options.get(self.provider_name, {}))}
        for key, attribute in self.settings_fields.items():
            config[key] = getattr(providers, attribute)
        return config

    async def initialize(self, config: Dict[str, Any]) -> None:
        """Initialize the client with provider-specific configuration"""

    @abstractmethod
    async def execute(
        self,
        capability: Capability,
        payload: Any,
        model_id: str,
        timeout_ms: float,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        **kwargs
    ) -> ProviderResult:
        """Execute a request against one model

        Args:
            capability: Task type being served
            payload: Prompt text or provider-specific payload
            model_id: Provider model identifier
            timeout_ms: Caller-supplied timeout for the call
            max_tokens: Generation limit from the model descriptor
            temperature: Sampling temperature from the model descriptor
            **kwargs: Provider-specific parameters

        Returns:
            ProviderResult with content or vector

        Raises:
            Exception: Any failure; the router records it as a provider error
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """Check provider availability"""

    def supports(self, capability: Capability) -> bool:
        return capability in self.supported_capabilities

    async def shutdown(self) -> None:
        """Cleanup client resources"""
        self._client = None
