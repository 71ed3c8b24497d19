"""Background purge of idle sessions."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.api.store import SessionStore
from src.main import purge_sessions_periodically


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_purge_closes_idle_sessions(fake_gateway):
    """Each tick closes sessions idle past their TTL."""
    clock = _Clock()
    store = SessionStore(fake_gateway, idle_ttl_seconds=60, clock=clock)
    session_id, orchestrator = store.create()
    clock.now += 61
    container = MagicMock()
    container.session_store = store

    sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])
    with patch("src.main.asyncio.sleep", sleep), patch("src.main.get_container", return_value=container):
        with pytest.raises(asyncio.CancelledError):
            await purge_sessions_periodically(interval=5)

    sleep.assert_awaited_with(5)
    assert orchestrator.closed is True
    assert store.get(session_id) is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_purge_keeps_active_sessions(fake_gateway):
    clock = _Clock()
    store = SessionStore(fake_gateway, idle_ttl_seconds=60, clock=clock)
    session_id, orchestrator = store.create()
    container = MagicMock()
    container.session_store = store

    sleep = AsyncMock(side_effect=[None, None, asyncio.CancelledError()])
    with patch("src.main.asyncio.sleep", sleep), patch("src.main.get_container", return_value=container):
        with pytest.raises(asyncio.CancelledError):
            await purge_sessions_periodically()

    assert sleep.await_count == 3
    assert orchestrator.closed is False
    assert store.get(session_id) is orchestrator
