"""Tests for GenerationOrchestrator state machine."""

import asyncio

import pytest

from src.application.generation.orchestrator import CANCELLED_MESSAGE, GenerationOrchestrator
from src.domain.entities.generation import OutcomeKind, SessionStatus
from src.domain.entities.session_events import SessionEventType
from src.domain.errors import EmptySchemaError, GatewayError, MissingContextError

SCHEMA = "type User { id: ID! name: String }\ntype Query { users: [User] }"
EXAMPLES = "query { users { id name } }"


@pytest.fixture
def orchestrator(fake_gateway):
    return GenerationOrchestrator(fake_gateway, session_id="s1")


async def _ready(orchestrator, fake_gateway, postgres_request, schema=SCHEMA, examples=EXAMPLES):
    fake_gateway.respond(schema, examples)
    await orchestrator.submit(postgres_request)
    return orchestrator.state


class TestSubmit:
    """Fresh generation from a data source form."""

    @pytest.mark.asyncio
    async def test_initial_state_is_idle(self, orchestrator):
        state = orchestrator.state
        assert state.status == SessionStatus.IDLE
        assert state.schema_text is None
        assert state.examples is None
        assert state.last_request is None
        assert state.is_editing is False

    @pytest.mark.asyncio
    async def test_success_sets_schema_and_examples(self, orchestrator, fake_gateway, postgres_request):
        """Full response lands in the ready state."""
        fake_gateway.respond(SCHEMA, EXAMPLES)
        assert await orchestrator.submit(postgres_request) is True
        state = orchestrator.state
        assert state.status == SessionStatus.READY
        assert state.schema_text == SCHEMA
        assert state.examples == EXAMPLES
        assert state.error is None
        assert state.last_request == postgres_request
        assert fake_gateway.calls[0].edited_schema is None

    @pytest.mark.asyncio
    async def test_missing_schema_becomes_empty_string(self, orchestrator, fake_gateway, postgres_request):
        """Absent schema is stored as "" so the empty-schema view is distinct from never-generated."""
        fake_gateway.respond(None, None)
        await orchestrator.submit(postgres_request)
        assert orchestrator.state.schema_text == ""
        assert orchestrator.state.examples is None
        assert orchestrator.state.status == SessionStatus.READY

    @pytest.mark.asyncio
    async def test_blank_examples_dropped(self, orchestrator, fake_gateway, postgres_request):
        fake_gateway.respond(SCHEMA, "   \n")
        await orchestrator.submit(postgres_request)
        assert orchestrator.state.examples is None

    @pytest.mark.asyncio
    async def test_failure_sets_error(self, orchestrator, fake_gateway, postgres_request):
        """Gateway error message is kept verbatim; schema stays absent."""
        fake_gateway.fail(GatewayError("AI returned malformed output."))
        assert await orchestrator.submit(postgres_request) is True
        state = orchestrator.state
        assert state.status == SessionStatus.FAILED
        assert state.error == "AI returned malformed output."
        assert state.schema_text is None
        assert state.examples is None
        assert state.last_request == postgres_request

    @pytest.mark.asyncio
    async def test_failure_without_message(self, orchestrator, fake_gateway, postgres_request):
        fake_gateway.fail(RuntimeError())
        await orchestrator.submit(postgres_request)
        assert orchestrator.state.error == "An unknown error occurred."

    @pytest.mark.asyncio
    async def test_submit_clears_previous_output(self, orchestrator, fake_gateway, postgres_request):
        """A new submission wipes the old schema even when it then fails."""
        await _ready(orchestrator, fake_gateway, postgres_request)
        fake_gateway.fail(GatewayError("boom"))
        await orchestrator.submit(postgres_request)
        assert orchestrator.state.schema_text is None
        assert orchestrator.state.error == "boom"

    @pytest.mark.asyncio
    async def test_submit_exits_editing(self, orchestrator, fake_gateway, postgres_request):
        await _ready(orchestrator, fake_gateway, postgres_request)
        assert orchestrator.begin_edit() is True
        fake_gateway.respond(SCHEMA, EXAMPLES)
        await orchestrator.submit(postgres_request)
        assert orchestrator.state.is_editing is False

    @pytest.mark.asyncio
    async def test_submit_strips_edited_schema_from_request(self, orchestrator, fake_gateway, postgres_request):
        fake_gateway.respond(SCHEMA, EXAMPLES)
        await orchestrator.submit(postgres_request.with_edited_schema("type X { a: Int }"))
        assert fake_gateway.calls[0].edited_schema is None
        assert orchestrator.state.last_request.edited_schema is None

    @pytest.mark.asyncio
    async def test_generation_id_increments(self, orchestrator, fake_gateway, postgres_request):
        await _ready(orchestrator, fake_gateway, postgres_request)
        await _ready(orchestrator, fake_gateway, postgres_request)
        assert orchestrator.state.generation_id == 2


class TestInFlightGuard:
    """Only one gateway call per session at a time."""

    @pytest.mark.asyncio
    async def test_second_submit_is_noop(self, orchestrator, fake_gateway, postgres_request):
        fake_gateway.hold = True
        fake_gateway.respond(SCHEMA, EXAMPLES)
        task = asyncio.create_task(orchestrator.submit(postgres_request))
        await fake_gateway.started.wait()

        assert orchestrator.state.status == SessionStatus.GENERATING
        snapshot = orchestrator.state
        assert await orchestrator.submit(postgres_request) is False
        assert orchestrator.state is snapshot
        assert len(fake_gateway.calls) == 1

        fake_gateway.release()
        assert await task is True
        assert orchestrator.state.status == SessionStatus.READY

    @pytest.mark.asyncio
    async def test_regenerate_while_generating_is_noop(self, orchestrator, fake_gateway, postgres_request):
        await _ready(orchestrator, fake_gateway, postgres_request)
        fake_gateway.hold = True
        fake_gateway.started.clear()
        task = asyncio.create_task(orchestrator.submit(postgres_request))
        await fake_gateway.started.wait()
        assert await orchestrator.regenerate_examples("type A { b: Int }") is False
        fake_gateway.release()
        await task

    @pytest.mark.asyncio
    async def test_begin_edit_refused_while_generating(self, orchestrator, fake_gateway, postgres_request):
        await _ready(orchestrator, fake_gateway, postgres_request)
        fake_gateway.hold = True
        fake_gateway.started.clear()
        task = asyncio.create_task(orchestrator.submit(postgres_request))
        await fake_gateway.started.wait()
        assert orchestrator.begin_edit() is False
        fake_gateway.release()
        await task

    @pytest.mark.asyncio
    async def test_cancelled_call_marks_failed(self, orchestrator, fake_gateway, postgres_request):
        fake_gateway.hold = True
        task = asyncio.create_task(orchestrator.submit(postgres_request))
        await fake_gateway.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert orchestrator.state.status == SessionStatus.FAILED
        assert orchestrator.state.error == CANCELLED_MESSAGE


class TestEditing:
    """Edit mode transitions."""

    @pytest.mark.asyncio
    async def test_begin_edit_requires_schema(self, orchestrator):
        assert orchestrator.begin_edit() is False
        assert orchestrator.state.is_editing is False

    @pytest.mark.asyncio
    async def test_begin_edit_allowed_for_empty_schema(self, orchestrator, fake_gateway, postgres_request):
        await _ready(orchestrator, fake_gateway, postgres_request, schema="", examples=None)
        assert orchestrator.begin_edit() is True
        assert orchestrator.state.is_editing is True

    @pytest.mark.asyncio
    async def test_cancel_edit(self, orchestrator, fake_gateway, postgres_request):
        await _ready(orchestrator, fake_gateway, postgres_request)
        orchestrator.begin_edit()
        orchestrator.cancel_edit()
        assert orchestrator.state.is_editing is False
        assert orchestrator.state.schema_text == SCHEMA


class TestRegenerateExamples:
    """Examples regeneration for a user-edited schema."""

    @pytest.mark.asyncio
    async def test_missing_context(self, orchestrator):
        """No prior submission: raises and leaves state untouched."""
        before = orchestrator.state
        with pytest.raises(MissingContextError):
            await orchestrator.regenerate_examples("type A { b: Int }")
        assert orchestrator.state is before

    @pytest.mark.asyncio
    async def test_blank_edit_rejected(self, orchestrator, fake_gateway, postgres_request):
        await _ready(orchestrator, fake_gateway, postgres_request)
        orchestrator.begin_edit()
        before = orchestrator.state
        with pytest.raises(EmptySchemaError):
            await orchestrator.regenerate_examples("  \n ")
        assert orchestrator.state is before
        assert orchestrator.state.is_editing is True
        assert len(fake_gateway.calls) == 1

    @pytest.mark.asyncio
    async def test_success_echoes_edit(self, orchestrator, fake_gateway, postgres_request):
        """Edited schema is sent with the original request and exits editing."""
        await _ready(orchestrator, fake_gateway, postgres_request)
        orchestrator.begin_edit()
        edited = "type User { id: ID! email: String }"
        fake_gateway.respond(edited, "query { users { email } }")

        assert await orchestrator.regenerate_examples(edited) is True

        sent = fake_gateway.calls[-1]
        assert sent.edited_schema == edited
        assert sent.connection_string == postgres_request.connection_string
        state = orchestrator.state
        assert state.status == SessionStatus.READY
        assert state.schema_text == edited
        assert state.examples == "query { users { email } }"
        assert state.is_editing is False
        assert state.last_request.edited_schema is None

    @pytest.mark.asyncio
    async def test_missing_schema_falls_back_to_edit(self, orchestrator, fake_gateway, postgres_request):
        await _ready(orchestrator, fake_gateway, postgres_request)
        orchestrator.begin_edit()
        fake_gateway.respond(None, "query { a }")
        await orchestrator.regenerate_examples("type A { a: Int }")
        assert orchestrator.state.schema_text == "type A { a: Int }"

    @pytest.mark.asyncio
    async def test_failure_keeps_edit(self, orchestrator, fake_gateway, postgres_request):
        """Failed regeneration keeps the user's schema and editing mode."""
        await _ready(orchestrator, fake_gateway, postgres_request)
        orchestrator.begin_edit()
        fake_gateway.fail(GatewayError("timeout"))
        edited = "type B { c: Int }"

        await orchestrator.regenerate_examples(edited)

        state = orchestrator.state
        assert state.status == SessionStatus.FAILED
        assert state.schema_text == edited
        assert state.examples is None
        assert state.error == "timeout"
        assert state.is_editing is True

    @pytest.mark.asyncio
    async def test_edit_visible_while_generating(self, orchestrator, fake_gateway, postgres_request):
        await _ready(orchestrator, fake_gateway, postgres_request)
        orchestrator.begin_edit()
        fake_gateway.hold = True
        fake_gateway.started.clear()
        task = asyncio.create_task(orchestrator.regenerate_examples("type C { d: Int }"))
        await fake_gateway.started.wait()
        assert orchestrator.state.schema_text == "type C { d: Int }"
        assert orchestrator.state.examples is None
        fake_gateway.release()
        await task


class TestClose:
    """Session teardown."""

    @pytest.mark.asyncio
    async def test_response_after_close_is_discarded(self, orchestrator, fake_gateway, postgres_request):
        fake_gateway.hold = True
        fake_gateway.respond(SCHEMA, EXAMPLES)
        task = asyncio.create_task(orchestrator.submit(postgres_request))
        await fake_gateway.started.wait()
        orchestrator.close()
        fake_gateway.release()
        await task
        assert orchestrator.state.status == SessionStatus.GENERATING
        assert orchestrator.state.schema_text is None

    @pytest.mark.asyncio
    async def test_submit_after_close_rejected(self, orchestrator, postgres_request):
        orchestrator.close()
        assert orchestrator.closed is True
        assert await orchestrator.submit(postgres_request) is False


class TestEvents:
    """Listener notifications."""

    @pytest.mark.asyncio
    async def test_success_events(self, orchestrator, fake_gateway, postgres_request):
        events = []
        orchestrator.subscribe(events.append)
        fake_gateway.respond(SCHEMA, None)
        await orchestrator.submit(postgres_request)

        types = [e.event_type for e in events]
        assert types == [
            SessionEventType.STATE,
            SessionEventType.STATE,
            SessionEventType.NOTIFICATION,
        ]
        assert events[0].state.status == SessionStatus.GENERATING
        assert events[-1].outcome == OutcomeKind.SCHEMA_ONLY
        assert events[-1].title == "Schema Generated"

    @pytest.mark.asyncio
    async def test_error_event(self, orchestrator, fake_gateway, postgres_request):
        events = []
        orchestrator.subscribe(events.append)
        fake_gateway.fail(GatewayError("nope"))
        await orchestrator.submit(postgres_request)
        assert events[-1].event_type == SessionEventType.ERROR
        assert events[-1].description == "nope"

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_generation(self, orchestrator, fake_gateway, postgres_request):
        def broken(_event):
            raise RuntimeError("listener bug")

        orchestrator.subscribe(broken)
        fake_gateway.respond(SCHEMA, EXAMPLES)
        await orchestrator.submit(postgres_request)
        assert orchestrator.state.status == SessionStatus.READY

    @pytest.mark.asyncio
    async def test_unsubscribe(self, orchestrator, fake_gateway, postgres_request):
        events = []
        orchestrator.subscribe(events.append)
        orchestrator.unsubscribe(events.append)
        await _ready(orchestrator, fake_gateway, postgres_request)
        assert events == []


class TestScenarios:
    """End-to-end flows against a scripted gateway."""

    @pytest.mark.asyncio
    async def test_schema_and_examples(self, orchestrator, fake_gateway, postgres_request):
        fake_gateway.respond("type User { id: ID! }", "# Query\nquery { users { id } }")
        await orchestrator.submit(postgres_request)
        state = orchestrator.state
        assert state.status == SessionStatus.READY
        assert state.schema_text == "type User { id: ID! }"
        assert state.examples == "# Query\nquery { users { id } }"

    @pytest.mark.asyncio
    async def test_empty_schema(self, orchestrator, fake_gateway, postgres_request):
        fake_gateway.respond("", None)
        await orchestrator.submit(postgres_request)
        state = orchestrator.state
        assert state.status == SessionStatus.READY
        assert state.schema_text == ""
        assert state.examples is None
        assert state.has_schema and not state.has_non_trivial_schema

    @pytest.mark.asyncio
    async def test_network_timeout(self, orchestrator, fake_gateway, postgres_request):
        fake_gateway.fail(GatewayError("network timeout"))
        await orchestrator.submit(postgres_request)
        state = orchestrator.state
        assert state.status == SessionStatus.FAILED
        assert state.error == "network timeout"
        assert state.schema_text is None
        assert state.examples is None

    @pytest.mark.asyncio
    async def test_regenerate_after_success(self, orchestrator, fake_gateway, postgres_request):
        fake_gateway.respond("type User { id: ID! }", "# Query\nquery { users { id } }")
        await orchestrator.submit(postgres_request)
        edited = "type User { id: ID! name: String }"
        fake_gateway.respond(edited, None)

        await orchestrator.regenerate_examples(edited)

        state = orchestrator.state
        assert state.status == SessionStatus.READY
        assert state.schema_text == edited
        assert state.examples is None
