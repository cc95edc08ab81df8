"""Routing endpoints: route requests, inspect metrics and models, switch provider"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ...core.logger import CentralizedLogger
from ...models.routing import ProviderSwitchRequest, RoutingRequest, RoutingResponse
from ...services.routing_service import RoutingService
from ..dependencies import get_routing_service


# Initialize router and logger
router = APIRouter()
logger = CentralizedLogger("RoutingAPI")


class ProviderResponse(BaseModel):
    """Current default preferred provider"""
    provider: Optional[str]
    available: List[str]


@router.post("/requests", response_model=RoutingResponse)
async def route_request(
    request: RoutingRequest,
    service: RoutingService = Depends(get_routing_service)
) -> RoutingResponse:
    """
    Route a request to one or more model providers.

    The strategy decides whether one model, a fallback chain, an ensemble or
    the least loaded model serves the request.
    """
    logger.info(
        f"Routing {request.task_type.value} request with {request.strategy.value} strategy"
    )
    return await service.route_request(request)


@router.get("/metrics")
async def get_metrics(
    service: RoutingService = Depends(get_routing_service)
) -> Dict[str, Dict[str, Any]]:
    """Per-model performance counters keyed by provider:model"""
    return service.get_metrics_snapshot()


@router.get("/models")
async def get_models(
    service: RoutingService = Depends(get_routing_service)
) -> List[Dict[str, Any]]:
    """Registered model descriptors"""
    return [d.to_dict() for d in service.get_available_models()]


@router.get("/provider", response_model=ProviderResponse)
async def get_provider(
    service: RoutingService = Depends(get_routing_service)
) -> ProviderResponse:
    """Current default preferred provider"""
    return ProviderResponse(
        provider=service.get_preferred_provider(),
        available=service.registry.providers()
    )


@router.put("/provider", response_model=ProviderResponse)
async def switch_provider(
    body: ProviderSwitchRequest,
    service: RoutingService = Depends(get_routing_service)
) -> ProviderResponse:
    """Manually switch the default preferred provider"""
    service.switch_preferred_provider(body.provider)
    logger.info(f"Preferred provider set to {body.provider} via API")
    return ProviderResponse(
        provider=service.get_preferred_provider(),
        available=service.registry.providers()
    )
