"""Session event types pushed to listeners and SSE clients."""

from enum import Enum

from pydantic import BaseModel

from src.domain.entities.generation import OutcomeKind, SessionState


class SessionEventType(str, Enum):
    """Event types streamed to client."""

    STATE = "state"  # state replaced
    NOTIFICATION = "notification"  # generation finished with an outcome
    ERROR = "error"  # generation failed
    DONE = "done"


class SessionEvent(BaseModel):
    """Single event emitted by the orchestrator."""

    event_type: SessionEventType
    state: SessionState
    outcome: OutcomeKind | None = None
    title: str | None = None
    description: str | None = None
