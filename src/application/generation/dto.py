"""Generation DTOs."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.application.generation.views import (
    ExamplesPanel,
    SchemaPanel,
    examples_panel,
    schema_panel,
)
from src.domain.entities.generation import (
    DataSourceType,
    GenerationRequest,
    SessionState,
    SessionStatus,
)


class DataSourceForm(BaseModel):
    """Data source form as submitted by the client."""

    model_config = ConfigDict(populate_by_name=True)

    data_source_type: DataSourceType = Field(..., alias="dataSourceType")
    connection_string: str = Field(..., alias="connectionString", min_length=1, max_length=10_000)
    object_identifier: str | None = Field(None, alias="objectIdentifier", max_length=500)

    @field_validator("connection_string")
    @classmethod
    def _connection_string_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Connection string or API details cannot be empty.")
        return v

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            data_source_type=self.data_source_type,
            connection_string=self.connection_string,
            object_identifier=self.object_identifier,
        )


class RegenerateExamplesRequest(BaseModel):
    """Edited schema to regenerate examples for."""

    model_config = ConfigDict(populate_by_name=True)

    edited_schema: str = Field(..., alias="editedSchema", max_length=500_000)


class RequestSummary(BaseModel):
    """Submitted data source as echoed to clients. The connection string is never sent back."""

    data_source_type: DataSourceType
    object_identifier: str | None = None

    @classmethod
    def from_request(cls, request: GenerationRequest | None) -> "RequestSummary | None":
        if request is None:
            return None
        return cls(
            data_source_type=request.data_source_type,
            object_identifier=request.object_identifier,
        )


class SessionResponse(BaseModel):
    """Session snapshot plus the view models derived from it."""

    session_id: str
    status: SessionStatus
    generation_id: int
    schema_text: str | None = None
    examples: str | None = None
    error: str | None = None
    is_editing: bool = False
    has_schema: bool = False
    has_non_trivial_schema: bool = False
    last_request: RequestSummary | None = None
    schema_panel: SchemaPanel
    examples_panel: ExamplesPanel

    @classmethod
    def from_state(cls, session_id: str, state: SessionState) -> "SessionResponse":
        return cls(
            session_id=session_id,
            status=state.status,
            generation_id=state.generation_id,
            schema_text=state.schema_text,
            examples=state.examples,
            error=state.error,
            is_editing=state.is_editing,
            has_schema=state.has_schema,
            has_non_trivial_schema=state.has_non_trivial_schema,
            last_request=RequestSummary.from_request(state.last_request),
            schema_panel=schema_panel(state),
            examples_panel=examples_panel(state),
        )


class SessionStreamEvent(BaseModel):
    """SSE event for streaming generation progress."""

    event_type: str  # state, notification, error, done
    session: SessionResponse
    title: str | None = None
    description: str | None = None
    outcome: str | None = None
