"""Decorator-based registration for provider clients"""

import importlib
from pathlib import Path
from typing import Dict, Iterable, List, Type

from ...core.logger import CentralizedLogger
from ...models.routing import Capability
from .base_provider import ProviderClient


logger = CentralizedLogger("ProviderDecorators")

# Provider id -> client class, filled by @register_provider
_decorated_providers: Dict[str, Type[ProviderClient]] = {}


def register_provider(provider_name: str, capabilities: Iterable[Capability]):
    """Decorator to register a provider client class

    Args:
        provider_name: Provider id used by model descriptors
        capabilities: Capabilities the client can serve

    Returns:
        Decorator function
    """
    def decorator(cls: Type[ProviderClient]) -> Type[ProviderClient]:
        if not issubclass(cls, ProviderClient):
            raise TypeError(f"{cls} must inherit from ProviderClient")

        cls.provider_name = provider_name
        cls.supported_capabilities = frozenset(capabilities)
        _decorated_providers[provider_name] = cls
        return cls

    return decorator


def get_registered_providers() -> Dict[str, Type[ProviderClient]]:
    """Get all decorated client classes"""
    return dict(_decorated_providers)


def scan_and_import_providers(
    package_path: str = "hybrid_router.services.routing.implementations"
) -> List[str]:
    """Import every *_providers.py module so their decorators run

    Args:
        package_path: Python package path containing provider modules

    Returns:
        List of imported module names
    """
    imported_modules = []
    base_path = Path(__file__).parent / "implementations"

    if not base_path.exists():
        return imported_modules

    for file_path in sorted(base_path.glob("*_providers.py")):
        full_module_path = f"{package_path}.{file_path.stem}"
        try:
            importlib.import_module(full_module_path)
            imported_modules.append(full_module_path)
        except ImportError as e:
            # A missing vendor SDK disables that provider only
            logger.warning(f"Could not import provider module {full_module_path}: {e}")

    return imported_modules


def create_provider_clients() -> Dict[str, ProviderClient]:
    """Instantiate one client per registered provider

    Returns:
        Provider id to (uninitialized) client
    """
    return {name: cls() for name, cls in _decorated_providers.items()}
