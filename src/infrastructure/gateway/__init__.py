"""Schema gateway implementations."""

from src.infrastructure.gateway.llm_schema_gateway import LLMSchemaGateway

__all__ = ["LLMSchemaGateway"]
