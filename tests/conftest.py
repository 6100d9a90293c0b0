"""Shared pytest fixtures for Trestle tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from tests.fixtures import FakeGateway
from trestle.config import TrestleConfig
from trestle.main import app
from trestle.outline.router import get_outline_service
from trestle.outline.service import OutlineService
from trestle.tree.store import NodeStore


@pytest.fixture
def config():
    """Config pointing at a test endpoint and base URI."""
    return TrestleConfig(
        sparql_endpoint="http://sparql.test/trestle",
        base_uri="http://example.org/trestle/",
    )


@pytest.fixture
def store(config):
    """Uninitialized NodeStore."""
    return NodeStore(config)


@pytest.fixture
def ready_store(store):
    """NodeStore with a root."""
    store.create_root()
    return store


@pytest.fixture
def gateway():
    """In-memory SyncGateway that records saved documents."""
    return FakeGateway()


@pytest.fixture
def service(store, gateway, config):
    return OutlineService(store, gateway, config)


@pytest.fixture
async def client(service):
    """Async test client with a root-only outline wired into the app."""
    service.store.create_root()
    app.dependency_overrides[get_outline_service] = lambda: service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
