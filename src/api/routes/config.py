"""Config API - read and update settings."""

import logging
import tomllib
from pathlib import Path

import tomli_w
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ValidationError

from src.api.container import close_container, get_container
from src.api.dependencies import get_config, limiter
from src.domain.ports.config import AppConfig
from src.infrastructure.config.toml_loader import DEFAULT_CONFIG_DIR, validate_development_config
from src.shared.logging import setup_logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/config", tags=["config"])

_EDITABLE_SECTIONS = ("llm", "ollama", "openai_compatible", "generation", "sessions", "logging")


class ConfigPatch(BaseModel):
    """Partial config update. All fields optional."""

    llm: dict | None = None
    ollama: dict | None = None
    openai_compatible: dict | None = None
    generation: dict | None = None
    sessions: dict | None = None
    logging: dict | None = None


def _development_path() -> Path:
    return DEFAULT_CONFIG_DIR / "development.toml"


def _mask_key(value: str | None) -> str:
    if not value or not value.strip():
        return ""
    s = value.strip()
    return f"***{s[-4:]}" if len(s) >= 4 else "***"


@router.get("")
@limiter.limit("60/minute")
async def get_config_route(request: Request, config: AppConfig = Depends(get_config)) -> dict:
    """Return editable config subset for the settings screen."""
    ollama: dict = {"host": config.ollama.host, "timeout": config.ollama.timeout}
    if config.ollama.num_ctx is not None:
        ollama["num_ctx"] = config.ollama.num_ctx
    if config.ollama.num_predict is not None:
        ollama["num_predict"] = config.ollama.num_predict
    openai_compatible: dict = {
        "base_url": config.openai_compatible.base_url,
        "api_key": _mask_key(config.openai_compatible.api_key),
        "timeout": config.openai_compatible.timeout,
    }
    if config.openai_compatible.max_tokens is not None:
        openai_compatible["max_tokens"] = config.openai_compatible.max_tokens
    return {
        "llm": {"provider": config.llm.provider},
        "ollama": ollama,
        "openai_compatible": openai_compatible,
        "generation": config.generation.model_dump(),
        "sessions": config.sessions.model_dump(),
        "logging": {
            "level": config.log_level,
            "file": config.log_file or "",
            "log_rotation_max_mb": config.log_rotation_max_mb,
            "log_rotation_backups": config.log_rotation_backups,
        },
    }


def _to_toml_structure(updates: dict) -> dict:
    """Keep editable sections, drop None values."""
    result: dict = {}
    for section in _EDITABLE_SECTIONS:
        values = updates.get(section)
        if not values:
            continue
        cleaned = {k: v for k, v in values.items() if v is not None}
        if section == "openai_compatible" and str(cleaned.get("api_key", "")).startswith("***"):
            # masked value echoed back from GET; keep the stored key
            cleaned.pop("api_key")
        if cleaned:
            result[section] = cleaned
    return result


def _deep_merge(base: dict, patch: dict) -> dict:
    result = dict(base)
    for k, v in patch.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


@router.patch("")
@limiter.limit("10/minute")
async def patch_config_route(request: Request, updates: ConfigPatch) -> dict:
    """Update development.toml with partial config.

    The merged result is validated before anything is written; an invalid value
    answers 422 and leaves the file untouched. Changes apply immediately: the
    container is rebuilt, which ends live sessions.
    """
    updates_dict = updates.model_dump(exclude_none=True)
    toml_updates = _to_toml_structure(updates_dict)
    if not toml_updates:
        return {"ok": True, "message": "No changes."}

    path = _development_path()
    existing: dict = {}
    if path.exists():
        with open(path, "rb") as f:
            existing = tomllib.load(f)

    merged = _deep_merge(existing, toml_updates)
    try:
        validate_development_config(merged)
    except ValidationError as e:
        logger.warning("Rejected config update: %s", e)
        raise HTTPException(
            status_code=422,
            detail=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()],
        )

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump(merged, f)

    await close_container()

    if "logging" in toml_updates:
        c = get_container().config
        setup_logging(
            level=c.log_level,
            file_path=c.log_file or "",
            rotation_max_mb=c.log_rotation_max_mb,
            rotation_backups=c.log_rotation_backups,
        )

    return {"ok": True, "message": "Config saved."}
