"""Dependency Injection Container - centralized service management."""

from functools import cached_property

import structlog

from src.api.store import SessionStore
from src.domain.ports.config import AppConfig
from src.domain.ports.gateway import SchemaGatewayPort
from src.domain.ports.llm import LLMPort
from src.infrastructure.config import load_config

log = structlog.get_logger()


class Container:
    """Dependency Injection Container with lazy initialization.

    All dependencies are created on first access and cached.

    Usage:
        container = Container()
        store = container.session_store
    """

    def __init__(self, config: AppConfig | None = None):
        """Initialize container with optional config override."""
        self._config_override = config

    @cached_property
    def config(self) -> AppConfig:
        """Application configuration."""
        if self._config_override:
            return self._config_override
        return load_config()

    @cached_property
    def llm(self) -> LLMPort:
        """LLM adapter based on config provider."""
        if self.config.llm.provider == "lm_studio":
            from src.infrastructure.llm.openai_compatible import OpenAICompatibleAdapter
            return OpenAICompatibleAdapter(self.config.openai_compatible)

        from src.infrastructure.llm.ollama import OllamaAdapter
        return OllamaAdapter(self.config.ollama)

    @cached_property
    def schema_gateway(self) -> SchemaGatewayPort:
        """Schema gateway backed by the LLM."""
        from src.infrastructure.gateway import LLMSchemaGateway
        return LLMSchemaGateway(self.llm, self.config.generation)

    @cached_property
    def session_store(self) -> SessionStore:
        """In-memory generation sessions."""
        return SessionStore(
            self.schema_gateway,
            idle_ttl_seconds=self.config.sessions.idle_ttl_seconds,
            max_sessions=self.config.sessions.max_sessions,
        )

    def reset(self) -> None:
        """Reset all cached instances (useful for testing)."""
        if "session_store" in self.__dict__:
            self.session_store.close_all()
        for attr in list(self.__dict__.keys()):
            if not attr.startswith("_"):
                delattr(self, attr)


# Global container instance
_container: Container | None = None


def get_container() -> Container:
    """Get or create global container instance."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Reset global container (for testing)."""
    global _container
    if _container:
        _container.reset()
    _container = None


async def close_container() -> None:
    """Close the global container's LLM client and sessions, then drop it."""
    if _container is not None and "llm" in _container.__dict__:
        llm = _container.llm
        if hasattr(llm, "close"):
            try:
                await llm.close()
            except Exception:  # noqa: BLE001
                log.debug("llm_close_error", exc_info=True)
    reset_container()
