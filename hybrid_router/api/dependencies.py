"""API Dependencies for dependency injection"""

from ..services.service_factory import ServiceFactory, ServiceType
from ..services.routing_service import RoutingService


async def get_routing_service() -> RoutingService:
    """Get routing service instance"""
    return ServiceFactory.create(ServiceType.ROUTING)
