"""Generation session entities: request, result, and session state.

All models are frozen. The orchestrator replaces ``SessionState`` wholesale on
every transition instead of mutating fields in place.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DataSourceType(str, Enum):
    """Closed list of data sources the form accepts."""

    POSTGRESQL = "PostgreSQL"
    MYSQL = "MySQL"
    SQL_SERVER = "SQL Server"
    ORACLE = "Oracle"
    MONGODB = "MongoDB"
    SALESFORCE = "Salesforce"
    OTHER = "Other"


DEFAULT_DATA_SOURCE_TYPE = DataSourceType.POSTGRESQL


class SessionStatus(str, Enum):
    """Lifecycle of a generation session."""

    IDLE = "idle"  # start marker, never re-entered
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"


class GenerationRequest(BaseModel):
    """Data source description sent to the schema gateway.

    ``edited_schema`` switches the gateway from "schema + examples" to
    "examples only, echo the schema".
    """

    model_config = ConfigDict(frozen=True)

    data_source_type: DataSourceType
    connection_string: str = Field(..., min_length=1, max_length=10_000)
    object_identifier: str | None = Field(None, max_length=500)
    edited_schema: str | None = None

    @field_validator("connection_string")
    @classmethod
    def _connection_string_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Connection string or API details cannot be empty.")
        return v

    @field_validator("object_identifier")
    @classmethod
    def _blank_identifier_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    def with_edited_schema(self, edited_schema: str) -> "GenerationRequest":
        """Copy of this request asking for examples of ``edited_schema``."""
        return self.model_copy(update={"edited_schema": edited_schema})

    def without_edited_schema(self) -> "GenerationRequest":
        return self.model_copy(update={"edited_schema": None})


class GenerationResult(BaseModel):
    """Normalized gateway output. ``examples`` is None unless non-blank."""

    model_config = ConfigDict(frozen=True)

    schema_text: str
    examples: str | None = None


class OutcomeKind(str, Enum):
    """Classification of a completed generation for notifications."""

    SCHEMA_AND_EXAMPLES = "schema_and_examples"
    SCHEMA_ONLY = "schema_only"
    EXAMPLES_ONLY = "examples_only"  # gateway contract violation, still shown
    EMPTY = "empty"


class SessionState(BaseModel):
    """Snapshot of one generation session.

    ``schema_text is None`` means no generation has produced a schema yet;
    an empty string means a generation finished with an empty schema.
    """

    model_config = ConfigDict(frozen=True)

    status: SessionStatus = SessionStatus.IDLE
    last_request: GenerationRequest | None = None
    schema_text: str | None = None
    examples: str | None = None
    error: str | None = None
    is_editing: bool = False
    generation_id: int = 0

    @property
    def is_generating(self) -> bool:
        return self.status == SessionStatus.GENERATING

    @property
    def has_schema(self) -> bool:
        """A generation has produced some schema text (possibly empty)."""
        return self.schema_text is not None

    @property
    def has_non_trivial_schema(self) -> bool:
        return self.schema_text is not None and self.schema_text.strip() != ""

    @property
    def has_examples(self) -> bool:
        return self.examples is not None and self.examples.strip() != ""
