"""Ollama provider client over its HTTP API"""

from typing import Dict, Any, Optional

import httpx

from ..base_provider import ProviderClient, ProviderResult, payload_to_messages, payload_to_text
from ..provider_decorators import register_provider
from ....models.routing import Capability


@register_provider(
    "ollama",
    capabilities=[
        Capability.COMPLETION,
        Capability.CHAT,
        Capability.ANALYSIS,
        Capability.CREATIVE,
        Capability.EMBEDDING,
    ]
)
class OllamaProvider(ProviderClient):
    """Local models served by an Ollama daemon"""

    DEFAULT_BASE_URL = "http://localhost:11434"
    settings_fields = {"base_url": "ollama_base_url"}

    def __init__(self):
        super().__init__()
        self._base_url = self.DEFAULT_BASE_URL
        self._options: Dict[str, Any] = {}

    async def initialize(self, config: Dict[str, Any]) -> None:
        """Create the HTTP client"""
        self._base_url = config.get("base_url") or self.DEFAULT_BASE_URL
        self._options = dict(config.get("options", {}))
        self._client = httpx.AsyncClient(base_url=self._base_url)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url)
        return self._client

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
        """Run a generation, chat or embedding call"""
        timeout = timeout_ms / 1000

        if capability == Capability.EMBEDDING:
            response = await self._http().post(
                "/api/embeddings",
                json={"model": model_id, "prompt": payload_to_text(payload)},
                timeout=timeout
            )
            response.raise_for_status()
            return ProviderResult(vector=response.json()["embedding"])

        options = dict(self._options)
        if max_tokens is not None:
            options["num_predict"] = max_tokens
        if temperature is not None:
            options["temperature"] = temperature

        if capability == Capability.CHAT:
            response = await self._http().post(
                "/api/chat",
                json={
                    "model": model_id,
                    "messages": payload_to_messages(payload),
                    "stream": False,
                    "options": options,
                },
                timeout=timeout
            )
            response.raise_for_status()
            data = response.json()
            content = data["message"]["content"]
        else:
            response = await self._http().post(
                "/api/generate",
                json={
                    "model": model_id,
                    "prompt": payload_to_text(payload),
                    "stream": False,
                    "options": options,
                },
                timeout=timeout
            )
            response.raise_for_status()
            data = response.json()
            content = data["response"]

        tokens = None
        if "eval_count" in data:
            tokens = data.get("prompt_eval_count", 0) + data["eval_count"]

        return ProviderResult(content=content, tokens=tokens, raw={"done_reason": data.get("done_reason")})

    async def health_check(self) -> bool:
        """Ollama answers /api/tags when the daemon is up"""
        try:
            response = await self._http().get("/api/tags", timeout=5.0)
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    async def shutdown(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        self._client = None
