"""Data models for the Hybrid AI Router"""

from .routing import (
    Capability,
    RoutingStrategy,
    ModelPreference,
    RoutingRequest,
    MemberResult,
    RoutingMetadata,
    RoutingResponse,
    ProviderSwitchRequest,
)

__all__ = [
    "Capability",
    "RoutingStrategy",
    "ModelPreference",
    "RoutingRequest",
    "MemberResult",
    "RoutingMetadata",
    "RoutingResponse",
    "ProviderSwitchRequest",
]
