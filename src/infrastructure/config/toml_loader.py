"""TOML configuration loader with env overrides."""

import logging
import os
import tomllib
from pathlib import Path

from src.domain.ports.config import (
    AppConfig,
    GenerationConfig,
    LLMConfig,
    OllamaConfig,
    OpenAICompatibleConfig,
    SecurityConfig,
    ServerConfig,
    SessionsConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"


def _load_toml(path: Path) -> dict:
    """Load TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _set_int(config: dict, section: str, key: str, env_name: str) -> None:
    raw = os.getenv(env_name)
    if not raw:
        return
    try:
        config.setdefault(section, {})[key] = int(raw)
    except ValueError:
        logger.warning("Invalid %s env value: %r, ignoring", env_name, raw)


def _apply_env_overrides(config: dict) -> dict:
    """Apply environment variable overrides."""
    if provider := os.getenv("LLM_PROVIDER"):
        config.setdefault("llm", {})["provider"] = provider
    if host := os.getenv("OLLAMA_HOST"):
        config.setdefault("ollama", {})["host"] = host
    if base_url := os.getenv("OPENAI_BASE_URL"):
        config.setdefault("openai_compatible", {})["base_url"] = base_url
    if api_key := os.getenv("OPENAI_API_KEY"):
        config.setdefault("openai_compatible", {})["api_key"] = api_key.strip()
    _set_int(config, "server", "port", "PORT")
    if level := os.getenv("LOG_LEVEL"):
        config.setdefault("logging", {})["level"] = level.upper()
    if path := os.getenv("LOG_FILE"):
        config.setdefault("logging", {})["file"] = path.strip()
    if origins := os.getenv("CORS_ORIGINS"):
        config.setdefault("security", {})["cors_origins"] = [o.strip() for o in origins.split(",")]
    _set_int(config, "security", "rate_limit_requests_per_minute", "RATE_LIMIT_PER_MINUTE")
    if model := os.getenv("GENERATION_MODEL"):
        config.setdefault("generation", {})["model"] = model.strip()
    if temperature := os.getenv("GENERATION_TEMPERATURE"):
        try:
            config.setdefault("generation", {})["temperature"] = float(temperature)
        except ValueError:
            logger.warning("Invalid GENERATION_TEMPERATURE env value: %r, ignoring", temperature)
    _set_int(config, "sessions", "idle_ttl_seconds", "SESSION_TTL_SECONDS")
    _set_int(config, "sessions", "max_sessions", "MAX_SESSIONS")
    return config


def merge_config(base: dict, override: dict) -> dict:
    """Merge override into base one section deep."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _build_config(config: dict) -> AppConfig:
    """Validate a raw config dict into AppConfig.

    Raises:
        pydantic.ValidationError: a value has the wrong type.
    """
    logging_raw = config.get("logging") or {}
    return AppConfig(
        server=ServerConfig(**(config.get("server") or {})),
        llm=LLMConfig(**(config.get("llm") or {})),
        ollama=OllamaConfig(**(config.get("ollama") or {})),
        openai_compatible=OpenAICompatibleConfig(**(config.get("openai_compatible") or {})),
        generation=GenerationConfig(**(config.get("generation") or {})),
        sessions=SessionsConfig(**(config.get("sessions") or {})),
        security=SecurityConfig(**(config.get("security") or {})),
        log_level=logging_raw.get("level", "INFO"),
        log_file=logging_raw.get("file") or "",
        log_rotation_max_mb=logging_raw.get("log_rotation_max_mb", 5),
        log_rotation_backups=logging_raw.get("log_rotation_backups", 3),
    )


def _default_raw(config_dir: Path) -> dict:
    default_path = config_dir / "default.toml"
    return _load_toml(default_path) if default_path.exists() else {}


def load_config(config_dir: Path | None = None) -> AppConfig:
    """Load configuration from TOML files with env overrides.

    Loads default.toml, then development.toml if exists.
    """
    if config_dir is None:
        config_dir = DEFAULT_CONFIG_DIR

    config = _default_raw(config_dir)
    dev_path = config_dir / "development.toml"
    if dev_path.exists():
        config = merge_config(config, _load_toml(dev_path))
    return _build_config(_apply_env_overrides(config))


def validate_development_config(development: dict, config_dir: Path | None = None) -> AppConfig:
    """Config that would result from writing ``development`` as development.toml.

    Raises:
        pydantic.ValidationError: the merged config is invalid.
    """
    config = merge_config(_default_raw(config_dir or DEFAULT_CONFIG_DIR), development)
    return _build_config(_apply_env_overrides(config))
