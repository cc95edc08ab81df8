"""Services module for the Hybrid AI Router"""

from .base_service import BaseService
from .service_factory import ServiceFactory, ServiceType
from .routing_service import RoutingService

__all__ = [
    # Base classes
    "BaseService",

    # Factory
    "ServiceFactory",
    "ServiceType",

    # Services
    "RoutingService",
]
