"""Models API - list available models and resilience stats."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.dependencies import get_config, get_llm_adapter, limiter
from src.domain.ports.config import AppConfig
from src.domain.ports.llm import LLMPort
from src.infrastructure.config.model_validator import model_is_listed
from src.infrastructure.resilience import get_all_breakers, reset_all_breakers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/models", tags=["models"])


@router.get("")
@limiter.limit("60/minute")
async def list_models(
    request: Request,
    llm: LLMPort = Depends(get_llm_adapter),
    config: AppConfig = Depends(get_config),
) -> dict:
    """List models of the configured provider and whether the generation model is among them."""
    try:
        models = await llm.list_models()
    except Exception:
        logger.exception("Failed to list models for provider=%s", config.llm.provider)
        raise HTTPException(status_code=502, detail="Failed to list models from LLM provider")
    return {
        "provider": config.llm.provider,
        "generation_model": config.generation.model,
        "generation_model_available": model_is_listed(config.generation.model, models),
        "models": models,
    }


@router.get("/resilience")
@limiter.limit("60/minute")
async def get_resilience_stats(request: Request) -> dict:
    """Get Circuit Breaker statistics for all services."""
    return {"circuit_breakers": get_all_breakers()}


@router.post("/resilience/reset")
@limiter.limit("10/minute")
async def reset_resilience(request: Request) -> dict:
    """Reset all Circuit Breakers (admin action)."""
    reset_all_breakers()
    return {"status": "ok", "message": "All circuit breakers reset"}
