"""View models derived from a session snapshot.

"Has a schema been generated" (``schema_text is not None``) and "is the schema
non-trivial" (non-blank) are separate questions; every decision below keeps
them apart.
"""

from typing import Literal

from pydantic import BaseModel

from src.domain.entities.generation import SessionState, SessionStatus

SCHEMA_FILENAME = "schema.graphql"
SCHEMA_MEDIA_TYPE = "application/graphql"

PanelMode = Literal["loading", "error", "content", "placeholder", "missing"]


class SchemaPanel(BaseModel):
    """What the schema viewer should show."""

    mode: PanelMode
    title: str | None = None
    message: str | None = None
    content: str | None = None
    can_download: bool = False
    can_edit: bool = False


class ExamplesPanel(BaseModel):
    """What the examples viewer should show."""

    mode: PanelMode
    title: str | None = None
    message: str | None = None
    content: str | None = None
    can_copy: bool = False


class SchemaDownload(BaseModel):
    filename: str = SCHEMA_FILENAME
    media_type: str = SCHEMA_MEDIA_TYPE
    content: str


def can_download(state: SessionState) -> bool:
    return (
        state.has_non_trivial_schema
        and state.status != SessionStatus.GENERATING
        and state.error is None
    )


def can_copy(state: SessionState) -> bool:
    return (
        state.has_examples
        and state.status != SessionStatus.GENERATING
        and state.error is None
    )


def can_edit(state: SessionState) -> bool:
    return state.has_schema and not state.is_generating and not state.is_editing


def schema_panel(state: SessionState) -> SchemaPanel:
    if state.is_generating:
        return SchemaPanel(
            mode="loading",
            title="Generating schema...",
            message="This may take a moment.",
            # An edited schema is shown while its examples are regenerated.
            content=state.schema_text,
        )
    if state.error is not None:
        return SchemaPanel(
            mode="error",
            title="Error Generating Schema",
            message=state.error,
            content=state.schema_text,
            can_edit=can_edit(state),
        )
    if state.has_non_trivial_schema:
        return SchemaPanel(
            mode="content",
            content=state.schema_text,
            can_download=can_download(state),
            can_edit=can_edit(state),
        )
    if state.schema_text is None:
        return SchemaPanel(
            mode="placeholder",
            title="No schema generated yet.",
            message="Connect to a data source to see the schema here.",
        )
    return SchemaPanel(
        mode="placeholder",
        title="Generated schema is empty.",
        message=(
            "The AI processed the request but did not return any schema content. "
            "Try different inputs or be more specific."
        ),
        content=state.schema_text,
        can_edit=can_edit(state),
    )


def examples_panel(state: SessionState) -> ExamplesPanel:
    if state.is_generating:
        return ExamplesPanel(
            mode="loading",
            title="Generating examples...",
            message="This may take a moment.",
        )
    if state.error is not None:
        return ExamplesPanel(
            mode="error",
            title="Error During Generation",
            message=f"{state.error}\nExample operations could not be generated due to this error.",
        )
    if state.has_examples:
        return ExamplesPanel(mode="content", content=state.examples, can_copy=can_copy(state))
    if not state.has_schema:
        return ExamplesPanel(
            mode="placeholder",
            title="No Examples Yet",
            message="Connect to a data source and generate a schema to see example GraphQL operations here.",
        )
    return ExamplesPanel(
        mode="missing",
        title="No Examples Provided",
        message="The AI did not provide example operations for the generated schema.",
    )


def schema_download(state: SessionState) -> SchemaDownload | None:
    """Downloadable schema file, or None when the download is disabled."""
    if not can_download(state):
        return None
    return SchemaDownload(content=state.schema_text or "")
