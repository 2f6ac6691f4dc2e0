"""API-specific test fixtures."""

from contextlib import asynccontextmanager

import httpx
import pytest
from fastapi import FastAPI

from orderhook.main import create_app


@asynccontextmanager
async def noop_lifespan(app: FastAPI):
    """No-op lifespan: the engine fixture already installed the session factory."""
    app.state.shutting_down = False
    yield


@pytest.fixture
def make_client(make_services):
    """Build an in-process client around an app wired with fake collaborators."""

    @asynccontextmanager
    async def _client(**overrides):
        app = create_app(services=make_services(**overrides), lifespan_handler=noop_lifespan)
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client

    return _client


@pytest.fixture
async def api_client(make_client):
    async with make_client() as client:
        yield client
