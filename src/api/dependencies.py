"""FastAPI dependencies - thin providers over the DI container."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from src.api.container import get_container
from src.api.store import SessionStore
from src.domain.ports.config import AppConfig
from src.domain.ports.llm import LLMPort

limiter = Limiter(key_func=get_remote_address)


def get_config() -> AppConfig:
    """Current configuration (loaded once by the container)."""
    return get_container().config


def get_llm_adapter() -> LLMPort:
    """LLM adapter for the configured provider."""
    return get_container().llm


def get_session_store() -> SessionStore:
    """Process-wide session store."""
    return get_container().session_store
