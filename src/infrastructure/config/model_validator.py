"""Validate the configured generation model against the provider at startup."""

import structlog

from src.domain.ports.config import AppConfig
from src.domain.ports.llm import LLMPort

log = structlog.get_logger()


def model_is_listed(model: str, available: list[str]) -> bool:
    """Match exact names and base names ("qwen2.5-coder" matches "qwen2.5-coder:7b")."""
    wanted = model.strip().lower()
    wanted_base = wanted.split(":")[0]
    for name in available:
        if not name:
            continue
        name = name.strip().lower()
        if name == wanted or name.split(":")[0] == wanted_base:
            return True
    return False


async def validate_generation_model(llm: LLMPort, config: AppConfig) -> bool:
    """Log a warning when the generation model is missing. Never fails startup."""
    provider = config.llm.provider
    model = config.generation.model

    try:
        available = await llm.list_models()
    except Exception as e:
        log.warning(
            "model_validation_skipped",
            reason="llm_unreachable",
            provider=provider,
            error=str(e),
        )
        return False

    if not available:
        log.warning("model_validation_skipped", reason="no_models_returned", provider=provider)
        return False

    if not model_is_listed(model, available):
        log.warning(
            "generation_model_missing",
            provider=provider,
            model=model,
            available=available[:20],
        )
        return False

    log.info("generation_model_ok", provider=provider, model=model)
    return True
