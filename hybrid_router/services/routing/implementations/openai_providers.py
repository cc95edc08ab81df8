"""OpenAI provider client"""

from typing import Dict, Any, Optional

from openai import AsyncOpenAI

from ..base_provider import ProviderClient, ProviderResult, payload_to_messages, payload_to_text
from ..provider_decorators import register_provider
from ....models.routing import Capability


@register_provider(
    "openai",
    capabilities=[
        Capability.COMPLETION,
        Capability.CHAT,
        Capability.ANALYSIS,
        Capability.CREATIVE,
        Capability.EMBEDDING,
    ]
)
class OpenAIProvider(ProviderClient):
    """GPT chat models and OpenAI embeddings"""

    settings_fields = {"api_key": "openai_api_key", "base_url": "openai_base_url"}

    async def initialize(self, config: Dict[str, Any]) -> None:
        """Initialize OpenAI client"""
        api_key = config.get("api_key")
        if api_key:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.get("base_url"))

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
        """Generate a chat completion or an embedding"""
        if self._client is None:
            raise RuntimeError("OpenAI API key not configured")

        timeout = timeout_ms / 1000

        if capability == Capability.EMBEDDING:
            response = await self._client.embeddings.create(
                model=model_id,
                input=payload_to_text(payload),
                timeout=timeout
            )
            return ProviderResult(
                vector=list(response.data[0].embedding),
                tokens=response.usage.total_tokens
            )

        params: Dict[str, Any] = {
            "model": model_id,
            "messages": payload_to_messages(payload),
            "timeout": timeout,
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if temperature is not None:
            params["temperature"] = temperature

        response = await self._client.chat.completions.create(**params, **kwargs)

        tokens = response.usage.total_tokens if response.usage else None
        return ProviderResult(
            content=response.choices[0].message.content,
            tokens=tokens,
            raw={"finish_reason": response.choices[0].finish_reason}
        )

    async def health_check(self) -> bool:
        """Healthy once an API key has been configured"""
        return self._client is not None
