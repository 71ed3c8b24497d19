"""Config Port - interface for configuration access."""

from typing import Protocol

from pydantic import BaseModel, field_validator


class LLMConfig(BaseModel):
    """LLM provider selection."""

    provider: str = "ollama"  # "ollama" | "lm_studio"


class OllamaConfig(BaseModel):
    """Ollama connection configuration."""

    host: str = "http://localhost:11434"
    timeout: int = 120
    # Optional: context window and generation cap. None = model defaults.
    num_ctx: int | None = None
    num_predict: int | None = None


class OpenAICompatibleConfig(BaseModel):
    """LM Studio, vLLM, LocalAI - OpenAI-compatible API."""

    base_url: str = "http://localhost:1234/v1"
    api_key: str = ""
    timeout: int = 120
    max_tokens: int | None = None


class GenerationConfig(BaseModel):
    """Schema generation settings."""

    model: str = "qwen2.5-coder:7b"
    temperature: float = 0.2
    # Attempts for transport errors (connection refused, timeout) inside the gateway.
    transport_attempts: int = 3


class SessionsConfig(BaseModel):
    """In-memory session store limits."""

    idle_ttl_seconds: int = 3600
    max_sessions: int = 1000


class SecurityConfig(BaseModel):
    """Security settings."""

    rate_limit_requests_per_minute: int = 100
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Full application configuration."""

    server: ServerConfig = ServerConfig()
    llm: LLMConfig = LLMConfig()
    ollama: OllamaConfig = OllamaConfig()
    openai_compatible: OpenAICompatibleConfig = OpenAICompatibleConfig()
    generation: GenerationConfig = GenerationConfig()
    sessions: SessionsConfig = SessionsConfig()
    security: SecurityConfig = SecurityConfig()
    log_level: str = "INFO"
    # Log file: path relative to cwd or absolute. Empty = only stdout.
    log_file: str = ""
    log_rotation_max_mb: int = 5
    log_rotation_backups: int = 3

    @field_validator("log_file")
    @classmethod
    def _strip_log_file(cls, v: str) -> str:
        return v.strip()


class ConfigPort(Protocol):
    """Interface for configuration providers."""

    def get_config(self) -> AppConfig:
        """Get the full application configuration."""
        ...
