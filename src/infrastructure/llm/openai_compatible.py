"""OpenAI-compatible adapter - LM Studio, vLLM, LocalAI."""

import logging

import httpx

from src.domain.ports.config import OpenAICompatibleConfig
from src.domain.ports.llm import LLMMessage, LLMResponse
from src.infrastructure.resilience import CircuitBreakerConfig, get_circuit_breaker

logger = logging.getLogger(__name__)


class OpenAICompatibleAdapter:
    """LM Studio, vLLM, LocalAI - implements LLMPort via /v1/chat/completions."""

    def __init__(self, config: OpenAICompatibleConfig) -> None:
        """Initialize with OpenAI-compatible config."""
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        if config.api_key:
            self._headers["Authorization"] = f"Bearer {config.api_key}"
        self._client: httpx.AsyncClient | None = None
        self._breaker = get_circuit_breaker(
            "openai_compatible",
            CircuitBreakerConfig(
                failure_threshold=5,
                recovery_timeout=30.0,
                success_threshold=2,
            ),
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create persistent async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                headers=self._headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client (call during app shutdown)."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _chat_body(
        self,
        model: str,
        messages: list[LLMMessage],
        temperature: float,
        json_mode: bool,
    ) -> dict:
        """Build request body; optional max_tokens from config."""
        body: dict = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "stream": False,
        }
        if self._config.max_tokens is not None:
            body["max_tokens"] = self._config.max_tokens
        if json_mode:
            body["response_format"] = {"type": "json_object"}
        return body

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a single response through the circuit breaker.

        Raises httpx.HTTPStatusError on API errors and CircuitOpenError while
        the breaker is open.
        """
        model = model or "default"
        body = self._chat_body(model, messages, temperature, json_mode)

        async def _call() -> LLMResponse:
            client = self._get_client()
            resp = await client.post(f"{self._base_url}/chat/completions", json=body)
            if resp.status_code >= 400:
                logger.error("LLM API error %s: %s", resp.status_code, resp.text[:500])
            resp.raise_for_status()
            data = resp.json()
            choice = (data.get("choices") or [{}])[0]
            content = (choice.get("message") or {}).get("content") or ""
            return LLMResponse(content=content, model=model, done=True)

        return await self._breaker.call(_call)

    async def is_available(self) -> bool:
        """Check if LM Studio / vLLM / LocalAI is available."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self._base_url}/models", headers=self._headers)
                return resp.status_code == 200
        except (httpx.ConnectTimeout, httpx.ConnectError, httpx.ReadTimeout, OSError) as e:
            logger.debug("OpenAI-compatible availability check failed (connection): %s", e)
            return False
        except httpx.HTTPError as e:
            logger.debug("OpenAI-compatible availability check failed (HTTP): %s", e)
            return False

    async def list_models(self) -> list[str]:
        """List available models from /v1/models."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self._base_url}/models", headers=self._headers)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.ConnectTimeout, httpx.ConnectError, httpx.ReadTimeout, OSError) as e:
            logger.debug("OpenAI-compatible list_models failed (connection): %s", e)
            return []
        except httpx.HTTPError as e:
            logger.debug("OpenAI-compatible list_models failed (HTTP): %s", e)
            return []
        return [m.get("id", "") for m in data.get("data", []) if m.get("id")]
