from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from cinescript.api.deps import get_app_settings, get_gateway, get_session_store, get_ws_manager
from cinescript.config import Settings
from cinescript.main import create_app
from cinescript.services.session_store import SessionStore
from tests.fakes import FakeGateway, RecordingWsManager


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return Settings(
        llm_provider="gemini",
        gemini_api_key="test-key",
        anthropic_api_key="test-key",
    )


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture()
def ws_manager() -> RecordingWsManager:
    return RecordingWsManager()


@pytest.fixture()
def app(test_settings: Settings, gateway: FakeGateway, store: SessionStore, ws_manager: RecordingWsManager):
    app = create_app()

    async def override_get_settings() -> Settings:
        return test_settings

    async def override_get_gateway() -> FakeGateway:
        return gateway

    async def override_get_store() -> SessionStore:
        return store

    async def override_get_ws() -> RecordingWsManager:
        return ws_manager

    app.dependency_overrides[get_app_settings] = override_get_settings
    app.dependency_overrides[get_gateway] = override_get_gateway
    app.dependency_overrides[get_session_store] = override_get_store
    app.dependency_overrides[get_ws_manager] = override_get_ws
    return app


@pytest_asyncio.fixture(scope="function")
async def async_client(app):
    transport = ASGITransport(app=app)

    class _AsyncClientWithYield(AsyncClient):
        async def request(self, *args, **kwargs):
            loop = asyncio.get_running_loop()
            task = loop.create_task(super().request(*args, **kwargs))
            # ASGITransport + body-carrying requests can deadlock on this runtime
            # unless the request coroutine gets at least one scheduling slice.
            await asyncio.sleep(0.01)
            return await task

    async with _AsyncClientWithYield(transport=transport, base_url="http://test") as client:
        yield client
