"""Central configuration management for the Hybrid AI Router"""

import os
from typing import Dict, Any, Optional, List
from pathlib import Path
import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class ModelCatalogEntry(BaseModel):
    """A single model entry of the routing catalog"""
    model_config = ConfigDict(protected_namespaces=())

    provider: str
    model_id: str
    capabilities: List[str]
    max_tokens: int = 2048
    temperature: float = 0.3
    priority: int = 1  # 1 is the highest priority
    cost_per_token: float = 0.001
    latency_ms: int = 500  # Nominal latency
    reliability: float = 0.9  # 0.0 to 1.0


class ScoringConfig(BaseSettings):
    """Weights for the model ranking score"""
    model_config = SettingsConfigDict(env_prefix="ROUTER_SCORING_")

    priority_weight: float = 1.0
    reliability_weight: float = 10.0
    success_rate_weight: float = 5.0
    latency_weight: float = 5.0
    latency_budget_ms: float = 1000.0
    cost_weight: float = 3.0
    cost_baseline: float = 0.003  # Cost per token that earns no bonus
    preference_bonus: float = 10.0


def _default_catalog() -> List[ModelCatalogEntry]:
    return [
        # Local Ollama models
        ModelCatalogEntry(
            provider="ollama",
            model_id="qwen:7b",
            capabilities=["completion", "chat", "analysis"],
            max_tokens=2048,
            priority=1,
            cost_per_token=0.0001,
            latency_ms=500,
            reliability=0.95,
        ),
        ModelCatalogEntry(
            provider="ollama",
            model_id="llama2:7b",
            capabilities=["completion", "chat", "creative"],
            max_tokens=4096,
            priority=2,
            cost_per_token=0.0001,
            latency_ms=600,
            reliability=0.93,
        ),
        ModelCatalogEntry(
            provider="ollama",
            model_id="nomic-embed-text",
            capabilities=["embedding"],
            max_tokens=8192,
            priority=2,
            cost_per_token=0.0,
            latency_ms=150,
            reliability=0.95,
        ),
        # Anthropic models
        ModelCatalogEntry(
            provider="anthropic",
            model_id="claude-sonnet-4-5",
            capabilities=["completion", "chat", "analysis", "creative"],
            max_tokens=4096,
            priority=1,
            cost_per_token=0.003,
            latency_ms=400,
            reliability=0.98,
        ),
        # OpenAI models
        ModelCatalogEntry(
            provider="openai",
            model_id="gpt-4o-mini",
            capabilities=["completion", "chat", "analysis"],
            max_tokens=2000,
            priority=2,
            cost_per_token=0.0006,
            latency_ms=800,
            reliability=0.97,
        ),
        ModelCatalogEntry(
            provider="openai",
            model_id="text-embedding-3-small",
            capabilities=["embedding"],
            max_tokens=8191,
            priority=1,
            cost_per_token=0.00002,
            latency_ms=100,
            reliability=0.99,
        ),
    ]


class RoutingConfig(BaseSettings):
    """Routing and orchestration settings"""
    model_config = SettingsConfigDict(env_prefix="ROUTER_")

    # Provider preferred for default selection until the switcher promotes another
    default_provider: Optional[str] = "ollama"
    default_timeout_ms: int = Field(default=30000, gt=0)
    ensemble_size: int = Field(default=3, gt=0)
    default_confidence: float = 0.8

    # Adaptive switching
    fallback_threshold: float = Field(default=0.5, description="Error rate that triggers a provider switch")
    switch_cooldown_seconds: float = Field(default=300.0, description="Minimum time between provider switches")

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    models: List[ModelCatalogEntry] = Field(default_factory=_default_catalog)


class ProvidersConfig(BaseSettings):
    """Connection settings for the bundled provider clients"""
    model_config = SettingsConfigDict(populate_by_name=True)

    ollama_base_url: str = Field(default="http://localhost:11434", validation_alias="OLLAMA_BASE_URL")
    anthropic_api_key: Optional[str] = Field(default=None, validation_alias="ANTHROPIC_API_KEY")
    openai_api_key: Optional[str] = Field(default=None, validation_alias="OPENAI_API_KEY")
    # OpenAI-compatible gateways
    openai_base_url: Optional[str] = Field(default=None, validation_alias="OPENAI_BASE_URL")

    # Per-provider client options, e.g. {"ollama": {"keep_alive": "5m"}}
    options: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class TelemetryConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TELEMETRY_", populate_by_name=True)

    enabled: bool = False
    service_name: str = "hybrid-ai-router"
    otlp_endpoint: str = Field(default="http://localhost:4317", validation_alias="OTEL_EXPORTER_OTLP_ENDPOINT")
    otlp_insecure: bool = True
    metric_export_interval_ms: int = Field(default=10000, gt=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_nested_delimiter="__", extra="ignore")

    app_name: str = "Hybrid AI Router"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @classmethod
    def load_from_yaml(cls, yaml_path: Optional[str] = None) -> "Settings":
        """Load settings from YAML file with environment overrides"""
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
                return cls(**config_data)
        return cls()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    yaml_path = os.getenv("CONFIG_PATH", "./config/settings.yaml")
    return Settings.load_from_yaml(yaml_path)
