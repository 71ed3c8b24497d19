"""Generation orchestrator - state machine of a single generation session.

States: idle -> generating -> ready | failed. ``generating`` is entered from any
state by ``submit`` or ``regenerate_examples`` and doubles as the in-flight
guard: only one gateway call per session at a time.
"""

import asyncio
from collections.abc import Callable

import structlog

from src.application.generation.outcome import (
    classify_outcome,
    describe_failure,
    describe_outcome,
    normalize_response,
)
from src.domain.entities.generation import (
    GenerationRequest,
    GenerationResult,
    SessionState,
    SessionStatus,
)
from src.domain.entities.session_events import SessionEvent, SessionEventType
from src.domain.errors import EmptySchemaError, MissingContextError
from src.domain.ports.gateway import SchemaGatewayPort

log = structlog.get_logger()

SessionListener = Callable[[SessionEvent], None]

CANCELLED_MESSAGE = "Generation was cancelled before the AI responded."


class GenerationOrchestrator:
    """Owns one ``SessionState`` and every transition applied to it."""

    def __init__(self, gateway: SchemaGatewayPort, session_id: str | None = None) -> None:
        self._gateway = gateway
        self._session_id = session_id
        self._state = SessionState()
        self._listeners: list[SessionListener] = []
        # Generation token whose response may still be applied; None after close().
        self._active_generation: int | None = None
        self._closed = False

    @property
    def state(self) -> SessionState:
        """Current snapshot. Never mutated; replaced on each transition."""
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def submit(self, request: GenerationRequest) -> bool:
        """Start a fresh generation for ``request``.

        Returns False without touching state when a generation is already in
        flight or the session is closed.
        """
        if not self._can_start():
            log.info(
                "generation_rejected",
                session_id=self._session_id,
                reason="closed" if self._closed else "in_flight",
            )
            return False

        request = request.without_edited_schema()
        token = self._start(
            last_request=request,
            schema_text=None,
            examples=None,
            is_editing=False,
        )
        log.info(
            "generation_started",
            session_id=self._session_id,
            generation_id=token,
            data_source_type=request.data_source_type.value,
        )
        await self._run(token, request, fallback_schema="", exit_editing=False)
        return True

    async def regenerate_examples(self, edited_schema: str) -> bool:
        """Regenerate examples for a user-edited schema.

        Raises:
            MissingContextError: no data source was ever submitted.
            EmptySchemaError: ``edited_schema`` is blank; editing stays open.

        Returns False without touching state when a generation is in flight.
        """
        if self._state.last_request is None:
            raise MissingContextError()
        if not edited_schema.strip():
            raise EmptySchemaError()
        if not self._can_start():
            log.info("regeneration_rejected", session_id=self._session_id)
            return False

        request = self._state.last_request.with_edited_schema(edited_schema)
        # Show the edit right away; a failure below keeps it.
        token = self._start(schema_text=edited_schema, examples=None)
        log.info("regeneration_started", session_id=self._session_id, generation_id=token)
        await self._run(token, request, fallback_schema=edited_schema, exit_editing=True)
        return True

    def begin_edit(self) -> bool:
        """Open the schema for manual edits. Refused while generating or before any schema exists."""
        if self._closed or self._state.is_generating or not self._state.has_schema:
            return False
        if not self._state.is_editing:
            self._replace(is_editing=True)
        return True

    def cancel_edit(self) -> None:
        if not self._closed and self._state.is_editing:
            self._replace(is_editing=False)

    def close(self) -> None:
        """Tear the session down. An in-flight response will be discarded."""
        if self._closed:
            return
        self._closed = True
        self._active_generation = None
        self._listeners.clear()
        log.info("session_closed", session_id=self._session_id)

    def _can_start(self) -> bool:
        return not self._closed and not self._state.is_generating

    def _start(self, **changes) -> int:
        token = self._state.generation_id + 1
        self._active_generation = token
        self._replace(
            status=SessionStatus.GENERATING,
            error=None,
            generation_id=token,
            **changes,
        )
        return token

    async def _run(
        self,
        token: int,
        request: GenerationRequest,
        fallback_schema: str,
        exit_editing: bool,
    ) -> None:
        try:
            response = await self._gateway.generate(request)
        except asyncio.CancelledError:
            if self._is_current(token):
                self._fail(token, CANCELLED_MESSAGE)
            raise
        except Exception as e:
            if not self._is_current(token):
                log.info("stale_failure_discarded", session_id=self._session_id, generation_id=token)
                return
            log.warning(
                "generation_failed",
                session_id=self._session_id,
                generation_id=token,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._fail(token, describe_failure(e))
            return

        if not self._is_current(token):
            log.info("stale_response_discarded", session_id=self._session_id, generation_id=token)
            return
        self._succeed(token, normalize_response(response, fallback_schema), exit_editing)

    def _is_current(self, token: int) -> bool:
        return not self._closed and self._active_generation == token

    def _succeed(self, token: int, result: GenerationResult, exit_editing: bool) -> None:
        self._active_generation = None
        changes: dict = {
            "status": SessionStatus.READY,
            "schema_text": result.schema_text,
            "examples": result.examples,
            "error": None,
        }
        if exit_editing:
            changes["is_editing"] = False
        self._replace(**changes)

        kind = classify_outcome(result)
        title, description = describe_outcome(kind)
        log.info(
            "generation_completed",
            session_id=self._session_id,
            generation_id=token,
            outcome=kind.value,
        )
        self._emit(
            SessionEvent(
                event_type=SessionEventType.NOTIFICATION,
                state=self._state,
                outcome=kind,
                title=title,
                description=description,
            )
        )

    def _fail(self, token: int, message: str) -> None:
        # schema_text stays as set at start: None after submit, the edit after regeneration.
        self._active_generation = None
        self._replace(status=SessionStatus.FAILED, error=message, examples=None)
        self._emit(
            SessionEvent(
                event_type=SessionEventType.ERROR,
                state=self._state,
                title="Generation Failed",
                description=message,
            )
        )

    def _replace(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)
        self._emit(SessionEvent(event_type=SessionEventType.STATE, state=self._state))

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # noqa: BLE001
                log.warning("session_listener_failed", session_id=self._session_id, exc_info=True)
