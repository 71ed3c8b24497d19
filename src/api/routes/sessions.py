"""Generation session API routes."""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse
from sse_starlette.sse import EventSourceResponse

from src.api.dependencies import get_session_store, limiter
from src.api.store import SessionStore
from src.application.generation.dto import (
    DataSourceForm,
    RegenerateExamplesRequest,
    SessionResponse,
    SessionStreamEvent,
)
from src.application.generation.orchestrator import GenerationOrchestrator
from src.application.generation.views import can_copy, schema_download
from src.domain.entities.session_events import SessionEvent, SessionEventType
from src.domain.errors import EmptySchemaError, MissingContextError
from src.shared.logging import bind_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])

GENERATION_IN_PROGRESS = "A generation is already in progress for this session."
SESSION_CLOSED = "Session was closed."

# Streamed generations keep running after the client disconnects.
_background_tasks: set[asyncio.Task] = set()


def _get_orchestrator(session_id: str, store: SessionStore) -> GenerationOrchestrator:
    orchestrator = store.get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail="Session not found")
    bind_session(session_id)
    return orchestrator


def _snapshot(session_id: str, orchestrator: GenerationOrchestrator) -> SessionResponse:
    return SessionResponse.from_state(session_id, orchestrator.state)


@router.post("", status_code=201)
@limiter.limit("30/minute")
async def create_session(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Create a session in the idle state."""
    session_id, orchestrator = store.create()
    bind_session(session_id)
    logger.info("Session created")
    return _snapshot(session_id, orchestrator)


@router.get("/{session_id}")
@limiter.limit("120/minute")
async def get_session(
    session_id: str,
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Current session snapshot with view models."""
    return _snapshot(session_id, _get_orchestrator(session_id, store))


@router.delete("/{session_id}")
@limiter.limit("30/minute")
async def delete_session(
    session_id: str,
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> dict:
    """End a session. A pending generation result will be discarded."""
    if not store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"ok": True}


@router.post("/{session_id}/generate", response_model=None)
@limiter.limit("20/minute")
async def generate(
    session_id: str,
    request: Request,
    form: DataSourceForm,
    store: SessionStore = Depends(get_session_store),
    stream: bool = False,
) -> SessionResponse | EventSourceResponse:
    """Generate a schema and examples. Use stream=true for SSE progress events."""
    orchestrator = _get_orchestrator(session_id, store)
    if orchestrator.state.is_generating:
        raise HTTPException(status_code=409, detail=GENERATION_IN_PROGRESS)
    generation_request = form.to_request()
    if stream:
        return _stream_response(session_id, orchestrator, orchestrator.submit(generation_request))
    try:
        accepted = await orchestrator.submit(generation_request)
    except Exception:
        logger.exception("Schema generation crashed")
        raise HTTPException(status_code=500, detail="Schema generation failed")
    if not accepted:
        raise HTTPException(status_code=409, detail=GENERATION_IN_PROGRESS)
    return _snapshot(session_id, orchestrator)


@router.post("/{session_id}/edit")
@limiter.limit("60/minute")
async def begin_edit(
    session_id: str,
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Open the schema for manual edits."""
    orchestrator = _get_orchestrator(session_id, store)
    if not orchestrator.begin_edit():
        raise HTTPException(status_code=409, detail="Schema cannot be edited right now.")
    return _snapshot(session_id, orchestrator)


@router.post("/{session_id}/edit/cancel")
@limiter.limit("60/minute")
async def cancel_edit(
    session_id: str,
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Close editing mode without changes."""
    orchestrator = _get_orchestrator(session_id, store)
    orchestrator.cancel_edit()
    return _snapshot(session_id, orchestrator)


@router.post("/{session_id}/examples")
@limiter.limit("20/minute")
async def regenerate_examples(
    session_id: str,
    request: Request,
    body: RegenerateExamplesRequest,
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Save an edited schema and regenerate example operations for it."""
    orchestrator = _get_orchestrator(session_id, store)
    if orchestrator.state.is_generating:
        raise HTTPException(status_code=409, detail=GENERATION_IN_PROGRESS)
    if not orchestrator.state.is_editing:
        raise HTTPException(status_code=409, detail="Schema is not open for editing.")
    try:
        accepted = await orchestrator.regenerate_examples(body.edited_schema)
    except MissingContextError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except EmptySchemaError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not accepted:
        raise HTTPException(status_code=409, detail=GENERATION_IN_PROGRESS)
    return _snapshot(session_id, orchestrator)


@router.get("/{session_id}/schema.graphql")
@limiter.limit("60/minute")
async def download_schema(
    session_id: str,
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> Response:
    """Download the displayed schema as schema.graphql."""
    download = schema_download(_get_orchestrator(session_id, store).state)
    if download is None:
        raise HTTPException(status_code=404, detail="No schema content to download.")
    return Response(
        content=download.content,
        media_type=download.media_type,
        headers={"Content-Disposition": f'attachment; filename="{download.filename}"'},
    )


@router.get("/{session_id}/examples.graphql")
@limiter.limit("60/minute")
async def copy_examples(
    session_id: str,
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> PlainTextResponse:
    """Example operations as plain text, for copying."""
    state = _get_orchestrator(session_id, store).state
    if not can_copy(state):
        raise HTTPException(status_code=404, detail="No examples to copy.")
    return PlainTextResponse(state.examples or "")


def _to_stream_event(session_id: str, event: SessionEvent) -> SessionStreamEvent:
    return SessionStreamEvent(
        event_type=event.event_type.value,
        session=SessionResponse.from_state(session_id, event.state),
        title=event.title,
        description=event.description,
        outcome=event.outcome.value if event.outcome else None,
    )


def _stream_response(
    session_id: str,
    orchestrator: GenerationOrchestrator,
    operation,
) -> EventSourceResponse:
    """Run ``operation`` in the background and stream the session events it produces."""
    queue: asyncio.Queue[SessionEvent | None] = asyncio.Queue()
    orchestrator.subscribe(queue.put_nowait)

    async def run() -> None:
        try:
            accepted = await operation
        except Exception:
            logger.exception("Streamed generation crashed")
        else:
            if not accepted:
                # Another request started a generation after the 409 check, or the session closed
                queue.put_nowait(
                    SessionEvent(
                        event_type=SessionEventType.ERROR,
                        state=orchestrator.state,
                        title="Generation Rejected",
                        description=SESSION_CLOSED if orchestrator.closed else GENERATION_IN_PROGRESS,
                    )
                )
        finally:
            orchestrator.unsubscribe(queue.put_nowait)
            queue.put_nowait(None)

    task = asyncio.create_task(run())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    async def event_generator():
        while True:
            event = await queue.get()
            if event is None:
                break
            evt = _to_stream_event(session_id, event)
            yield {"event": evt.event_type, "data": evt.model_dump_json()}
        done = SessionStreamEvent(
            event_type=SessionEventType.DONE.value,
            session=_snapshot(session_id, orchestrator),
        )
        yield {"event": done.event_type, "data": done.model_dump_json()}

    return EventSourceResponse(event_generator())
