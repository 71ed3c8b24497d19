"""Generation application layer."""

from src.application.generation.dto import (
    DataSourceForm,
    RegenerateExamplesRequest,
    RequestSummary,
    SessionResponse,
    SessionStreamEvent,
)
from src.application.generation.orchestrator import GenerationOrchestrator

__all__ = [
    "DataSourceForm",
    "GenerationOrchestrator",
    "RegenerateExamplesRequest",
    "RequestSummary",
    "SessionResponse",
    "SessionStreamEvent",
]
