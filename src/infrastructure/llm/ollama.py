"""Ollama adapter - implements LLMPort with Circuit Breaker."""

import logging

import httpx
from ollama import AsyncClient

from src.domain.ports.config import OllamaConfig
from src.domain.ports.llm import LLMMessage, LLMResponse
from src.infrastructure.resilience import CircuitBreakerConfig, get_circuit_breaker

logger = logging.getLogger(__name__)

# Fail fast when the host is down; the read timeout covers slow generations.
DEFAULT_CONNECT_TIMEOUT = 5.0


class OllamaAdapter:
    """Ollama implementation of LLMPort with Circuit Breaker protection."""

    def __init__(self, config: OllamaConfig) -> None:
        self._config = config
        read_timeout = float(config.timeout) if config.timeout else 120.0
        # httpx requires all four values when any is set explicitly
        timeout = httpx.Timeout(
            connect=DEFAULT_CONNECT_TIMEOUT,
            read=read_timeout,
            write=read_timeout,
            pool=30.0,
        )
        self._client = AsyncClient(host=config.host, timeout=timeout)
        self._breaker = get_circuit_breaker(
            "ollama",
            CircuitBreakerConfig(
                failure_threshold=5,
                recovery_timeout=30.0,
                success_threshold=2,
            ),
        )

    def _ollama_options(self, temperature: float) -> dict:
        """Build options dict: temperature + optional num_ctx, num_predict from config."""
        opts: dict = {"temperature": temperature}
        if self._config.num_ctx is not None:
            opts["num_ctx"] = self._config.num_ctx
        if self._config.num_predict is not None:
            opts["num_predict"] = self._config.num_predict
        return opts

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Generate a single response through the circuit breaker.

        Raises CircuitOpenError while the breaker is open.
        """
        model = model or "llama2"
        kwargs: dict = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "options": self._ollama_options(temperature),
        }
        if json_mode:
            kwargs["format"] = "json"

        async def _call() -> LLMResponse:
            response = await self._client.chat(**kwargs)
            content = response.message.content if response.message else ""
            return LLMResponse(content=content or "", model=response.model or model, done=True)

        return await self._breaker.call(_call)

    async def is_available(self) -> bool:
        """Check if Ollama server is available. Fail-fast, no stale cache."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self._config.host.rstrip('/')}/api/tags")
                return resp.status_code == 200
        except Exception as e:
            logger.debug("Ollama availability check failed: %s", e)
        return False

    async def list_models(self) -> list[str]:
        """List available models from Ollama."""
        try:
            resp = await self._client.list()
        except (httpx.ConnectTimeout, httpx.ConnectError, ConnectionError) as e:
            logger.debug("Ollama list_models failed (unreachable): %s", e)
            return []
        except Exception as e:
            logger.warning("Ollama list_models failed: %s", e, exc_info=True)
            return []
        names = []
        for m in resp.models or []:
            # newer ollama releases expose 'model', older ones 'name'
            name = getattr(m, "model", None) or getattr(m, "name", None)
            if name:
                names.append(name)
        return names
