"""Tests for config API."""

import tomllib
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.container import get_container, reset_container
from src.main import app


@pytest.fixture
def dev_config(tmp_path, monkeypatch):
    """Redirect development.toml writes to a temp file."""
    path = tmp_path / "development.toml"
    monkeypatch.setattr("src.api.routes.config._development_path", lambda: path)
    yield path
    reset_container()


@pytest.fixture
async def client(dev_config):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.mark.asyncio
async def test_config_get_returns_editable_fields(client: AsyncClient):
    """GET /config returns llm, generation, sessions and logging."""
    resp = await client.get("/config")
    assert resp.status_code == 200
    data = resp.json()
    assert data["llm"]["provider"] in ("ollama", "lm_studio")
    assert "model" in data["generation"]
    assert "temperature" in data["generation"]
    assert "idle_ttl_seconds" in data["sessions"]
    assert "level" in data["logging"]
    assert "base_url" in data["openai_compatible"]


@pytest.mark.asyncio
async def test_config_patch_writes_development_toml(client: AsyncClient, dev_config):
    """PATCH /config saves updates and returns success message."""
    resp = await client.patch(
        "/config",
        json={"generation": {"model": "llama3.1:8b", "temperature": 0.4}},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["ok"] is True
    assert data["message"] == "Config saved."
    with open(dev_config, "rb") as f:
        saved = tomllib.load(f)
    assert saved["generation"] == {"model": "llama3.1:8b", "temperature": 0.4}


@pytest.mark.asyncio
async def test_config_patch_keeps_masked_api_key(client: AsyncClient, dev_config):
    """Masked key echoed back from GET does not overwrite the stored one."""
    dev_config.write_text('[openai_compatible]\napi_key = "sk-secret-1234"\n')
    resp = await client.patch(
        "/config",
        json={"openai_compatible": {"api_key": "***1234", "base_url": "http://lm:1234/v1"}},
    )
    assert resp.status_code == 200
    with open(dev_config, "rb") as f:
        saved = tomllib.load(f)
    assert saved["openai_compatible"]["api_key"] == "sk-secret-1234"
    assert saved["openai_compatible"]["base_url"] == "http://lm:1234/v1"


@pytest.mark.asyncio
async def test_config_patch_empty(client: AsyncClient, dev_config):
    resp = await client.patch("/config", json={})
    assert resp.json()["message"] == "No changes."
    assert not dev_config.exists()


@pytest.mark.asyncio
async def test_config_patch_invalid_value_rejected(client: AsyncClient, dev_config):
    """Invalid values answer 422 and nothing is written."""
    resp = await client.patch("/config", json={"sessions": {"idle_ttl_seconds": "soon"}})
    assert resp.status_code == 422
    assert resp.json()["detail"][0]["loc"][0] == "idle_ttl_seconds"
    assert not dev_config.exists()

    resp = await client.get("/config")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_config_patch_invalid_keeps_existing_file(client: AsyncClient, dev_config):
    dev_config.write_text('[generation]\nmodel = "a"\n')
    resp = await client.patch("/config", json={"generation": {"temperature": "warm"}})
    assert resp.status_code == 422
    assert dev_config.read_text() == '[generation]\nmodel = "a"\n'


@pytest.mark.asyncio
async def test_config_patch_closes_previous_llm_client(client: AsyncClient, dev_config):
    """Rebuilding the container closes the old adapter's HTTP client."""
    llm = AsyncMock()
    get_container().__dict__["llm"] = llm

    resp = await client.patch("/config", json={"generation": {"model": "llama3.1:8b"}})

    assert resp.status_code == 200
    llm.close.assert_awaited_once()
    assert get_container().__dict__.get("llm") is not llm
