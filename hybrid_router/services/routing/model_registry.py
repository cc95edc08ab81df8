"""Registry of model descriptors available for routing"""

from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ...core.logger import CentralizedLogger
from ...models.routing import Capability
from .base_provider import ModelDescriptor, ProviderClient
from .exceptions import ConfigurationError


class ModelRegistry:
    """Catalog of (provider, model) descriptors

    Descriptors are registered at startup only. Once frozen the registry is
    read-only, so lookups need no synchronization.
    """

    _logger = CentralizedLogger("ModelRegistry")

    def __init__(self):
        self._descriptors: Dict[str, ModelDescriptor] = {}
        self._frozen = False

    @classmethod
    def from_catalog(cls, entries: Iterable) -> "ModelRegistry":
        """Build and freeze a registry from catalog entries

        Args:
            entries: ModelCatalogEntry objects (or dicts with the same fields)

        Returns:
            Frozen registry
        """
        registry = cls()
        for entry in entries:
            data = entry if isinstance(entry, Mapping) else entry.model_dump()
            try:
                capabilities = frozenset(Capability(c) for c in data["capabilities"])
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid capability for {data['provider']}:{data['model_id']}: {e}"
                ) from e

            registry.register(ModelDescriptor(
                provider=data["provider"],
                model_id=data["model_id"],
                capabilities=capabilities,
                max_tokens=data.get("max_tokens", 2048),
                temperature=data.get("temperature", 0.3),
                priority=data.get("priority", 1),
                cost_per_token=data.get("cost_per_token", 0.001),
                latency_ms=data.get("latency_ms", 500),
                reliability=data.get("reliability", 0.9),
            ))
        registry.freeze()
        return registry

    def register(self, descriptor: ModelDescriptor) -> None:
        """Register a model descriptor

        Args:
            descriptor: Descriptor to add

        Raises:
            ConfigurationError: If the registry is frozen or the key exists
        """
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register {descriptor.key}: registry is frozen"
            )
        if descriptor.key in self._descriptors:
            raise ConfigurationError(f"Model {descriptor.key} is already registered")
        if not descriptor.capabilities:
            raise ConfigurationError(f"Model {descriptor.key} declares no capabilities")

        self._descriptors[descriptor.key] = descriptor
        self._logger.debug(f"Registered model: {descriptor.key}")

    def freeze(self) -> None:
        self._frozen = True
        self._logger.info(
            f"Model registry ready with {len(self._descriptors)} models "
            f"across {len(self.providers())} providers"
        )

    @property
    def frozen(self) -> bool:
        return self._frozen

    def lookup(self, capability: Capability) -> Tuple[ModelDescriptor, ...]:
        """Find models supporting a capability

        Args:
            capability: Requested capability

        Returns:
            Matching descriptors in registration order
        """
        return tuple(d for d in self._descriptors.values() if d.supports(capability))

    def get(self, key: str) -> Optional[ModelDescriptor]:
        return self._descriptors.get(key)

    def all(self) -> List[ModelDescriptor]:
        return list(self._descriptors.values())

    def providers(self) -> List[str]:
        """Distinct provider ids in first-registration order"""
        return list(dict.fromkeys(d.provider for d in self._descriptors.values()))

    def models_for_provider(self, provider: str) -> List[ModelDescriptor]:
        return [d for d in self._descriptors.values() if d.provider == provider]

    def validate_clients(self, clients: Mapping[str, ProviderClient]) -> None:
        """Check every advertised capability is callable through a client

        Args:
            clients: Provider id to client instance

        Raises:
            ConfigurationError: On the first descriptor a client cannot serve
        """
        for descriptor in self._descriptors.values():
            client = clients.get(descriptor.provider)
            if client is None:
                raise ConfigurationError(
                    f"No provider client registered for '{descriptor.provider}' "
                    f"(needed by {descriptor.key})"
                )
            missing = [c.value for c in descriptor.capabilities if not client.supports(c)]
            if missing:
                raise ConfigurationError(
                    f"Provider client '{descriptor.provider}' cannot serve "
                    f"{', '.join(sorted(missing))} for {descriptor.key}"
                )

    def __len__(self) -> int:
        return len(self._descriptors)

    def __contains__(self, key: str) -> bool:
        return key in self._descriptors
