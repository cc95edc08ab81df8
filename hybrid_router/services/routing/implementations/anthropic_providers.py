"""Anthropic provider client"""

from typing import Dict, Any, Optional

from anthropic import AsyncAnthropic

from ..base_provider import ProviderClient, ProviderResult, payload_to_messages
from ..provider_decorators import register_provider
from ....models.routing import Capability


@register_provider(
    "anthropic",
    capabilities=[
        Capability.COMPLETION,
        Capability.CHAT,
        Capability.ANALYSIS,
        Capability.CREATIVE,
    ]
)
class AnthropicProvider(ProviderClient):
    """Claude models through the Anthropic Messages API"""

    settings_fields = {"api_key": "anthropic_api_key"}

    async def initialize(self, config: Dict[str, Any]) -> None:
        """Initialize Anthropic client"""
        api_key = config.get("api_key")
        if api_key:
            self._client = AsyncAnthropic(api_key=api_key)

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
        """Generate text using Claude"""
        if self._client is None:
            raise RuntimeError("Anthropic API key not configured")

        messages = payload_to_messages(payload)
        system = [m["content"] for m in messages if m.get("role") == "system"]
        params: Dict[str, Any] = {
            "model": model_id,
            "max_tokens": max_tokens or 4000,
            "messages": [m for m in messages if m.get("role") != "system"],
            "timeout": timeout_ms / 1000,
        }
        if system:
            params["system"] = "\n\n".join(system)
        if temperature is not None:
            params["temperature"] = temperature

        response = await self._client.messages.create(**params, **kwargs)

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        usage = response.usage
        return ProviderResult(
            content=text,
            tokens=usage.input_tokens + usage.output_tokens,
            raw={"stop_reason": response.stop_reason}
        )

    async def health_check(self) -> bool:
        """Healthy once an API key has been configured"""
        return self._client is not None
