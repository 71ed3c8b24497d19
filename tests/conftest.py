"""Pytest configuration and shared fixtures."""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.dependencies import get_session_store, limiter
from src.api.store import SessionStore
from src.domain.entities.generation import DataSourceType, GenerationRequest
from src.domain.ports.gateway import GatewayResponse
from src.infrastructure.resilience import reset_all_breakers
from src.main import app


class FakeGateway:
    """Scriptable SchemaGatewayPort.

    Queued items are returned in order; exceptions are raised. Set ``hold`` to
    keep calls suspended until ``release()``.
    """

    def __init__(self) -> None:
        self.calls: list[GenerationRequest] = []
        self._queue: list[GatewayResponse | BaseException] = []
        self.hold = False
        self._gate = asyncio.Event()
        self.started = asyncio.Event()

    def respond(self, schema: str | None = None, examples: str | None = None) -> "FakeGateway":
        self._queue.append(GatewayResponse(graphqlSchema=schema, exampleQueriesMutations=examples))
        return self

    def fail(self, exc: BaseException) -> "FakeGateway":
        self._queue.append(exc)
        return self

    def release(self) -> None:
        self._gate.set()

    async def generate(self, request: GenerationRequest) -> GatewayResponse:
        self.calls.append(request)
        self.started.set()
        if self.hold:
            await self._gate.wait()
        item = self._queue.pop(0) if self._queue else GatewayResponse()
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def postgres_request() -> GenerationRequest:
    return GenerationRequest(
        data_source_type=DataSourceType.POSTGRESQL,
        connection_string="postgres://x",
        object_identifier="users",
    )


@pytest.fixture(autouse=True)
def _reset_shared_state():
    limiter.reset()
    reset_all_breakers()
    yield
    reset_all_breakers()


@pytest.fixture
def session_store(fake_gateway: FakeGateway) -> SessionStore:
    return SessionStore(fake_gateway, idle_ttl_seconds=3600, max_sessions=10)


@pytest.fixture
async def client(session_store: SessionStore):
    """API client whose sessions use the fake gateway."""
    app.dependency_overrides[get_session_store] = lambda: session_store
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_session_store, None)
        session_store.close_all()
