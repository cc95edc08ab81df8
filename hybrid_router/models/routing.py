"""Routing request/response models for the Hybrid AI Router"""

from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class Capability(str, Enum):
    """Task types a model can serve"""
    COMPLETION = "completion"
    CHAT = "chat"
    EMBEDDING = "embedding"
    ANALYSIS = "analysis"
    CREATIVE = "creative"


class RoutingStrategy(str, Enum):
    """Execution strategies for a routing request"""
    SINGLE = "single"
    FALLBACK = "fallback"
    ENSEMBLE = "ensemble"
    LOAD_BALANCE = "load-balance"


class ModelPreference(BaseModel):
    """Explicit (provider, model) preference supplied by the caller"""
    model_config = ConfigDict(protected_namespaces=(), frozen=True)

    provider: str
    model_id: str

    @property
    def key(self) -> str:
        return f"{self.provider}:{self.model_id}"


class RoutingRequest(BaseModel):
    """Request for a capability, routed to one or more model providers"""
    payload: Any = Field(..., description="Prompt text or provider-specific payload")
    task_type: Capability
    strategy: RoutingStrategy = RoutingStrategy.SINGLE
    preferred_provider: Optional[str] = None
    model_preferences: List[ModelPreference] = Field(default_factory=list)
    timeout_ms: Optional[int] = Field(default=None, gt=0, description="Per provider call timeout")


class MemberResult(BaseModel):
    """Outcome of one successful provider call"""
    model_config = ConfigDict(protected_namespaces=())

    provider: str
    model_id: str
    result: Any
    confidence: float
    latency_ms: float
    cost: float


class RoutingMetadata(BaseModel):
    """Strategy-specific diagnostics attached to every response"""
    strategy: RoutingStrategy
    attempted: List[str] = Field(default_factory=list)
    fallbacks: List[str] = Field(default_factory=list)
    all_results: List[MemberResult] = Field(default_factory=list)
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    combine_method: Optional[str] = None
    performance: Dict[str, float] = Field(default_factory=dict)


class RoutingResponse(BaseModel):
    """Result of a routed request"""
    model_config = ConfigDict(protected_namespaces=())

    result: Any
    provider: str
    model_id: str
    confidence: float
    latency_ms: float
    cost: float = Field(ge=0)
    metadata: RoutingMetadata


class ProviderSwitchRequest(BaseModel):
    """Manual override of the default preferred provider"""
    provider: str
