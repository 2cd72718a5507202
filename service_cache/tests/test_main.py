"""
Tests for the cache gateway HTTP service.
"""

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.config import get_config
from shared.errors import NotFoundError, StoreError, ValidationError
from service_cache.app.main import CacheService, create_app
from service_cache.app.store import MemoryCacheStore


@pytest.fixture
def config():
    return get_config("cache", 8080, store_backend="memory", expire_cas_attempts=3)


@pytest.fixture
def store():
    return MemoryCacheStore()


@pytest.fixture
def service(config, store):
    return CacheService(config=config, store=store)


@pytest.fixture
def client(service):
    """Create test client."""
    return TestClient(service.app)


def test_root_endpoint(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "cache"
    assert data["store"] == "memory"
    assert data["conditional_expire"] is True


def test_health_check(client):
    """Health reports the store as a dependency."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["dependencies"] == {"memory": "ok"}


def test_health_check_store_down(client, store):
    """An unreachable store makes the service unhealthy."""
    with patch.object(store, "ping", new_callable=AsyncMock) as mock_ping:
        mock_ping.return_value = False
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["dependencies"] == {"memory": "error"}


def test_scenario(client):
    """Set, read, change expiry, read again, and miss on unknown keys."""
    response = client.post("/set", json={"Key": "a", "Value": "1"})
    assert response.status_code == 200
    assert response.content == b""

    response = client.post("/get", json={"Key": "a"})
    assert response.status_code == 200
    assert response.content == b"1"

    response = client.post("/expire", json={"Key": "a", "Expiration": 30})
    assert response.status_code == 200
    assert response.content == b""

    response = client.post("/get", json={"Key": "a"})
    assert response.status_code == 200
    assert response.content == b"1"

    assert client.post("/get", json={"Key": "b"}).status_code == 404
    assert client.post("/expire", json={"Key": "b", "Expiration": 10}).status_code == 404

    response = client.post("/set", content=b'{"Key": "a", "Value":')
    assert response.status_code == 400
    assert response.content == b""


def test_get_returns_raw_bytes(client):
    """Values come back as raw bytes, not JSON."""
    client.post("/set", json={"Key": "k", "Value": "héllo wörld"})

    response = client.post("/get", json={"Key": "k"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/octet-stream"
    assert response.content == "héllo wörld".encode("utf-8")


@pytest.mark.parametrize("path", ["/get", "/set", "/expire"])
@pytest.mark.parametrize("body", [b"", b"not json", b"[1, 2]"])
def test_malformed_body_never_reaches_store(client, store, path, body):
    """Decode failures are 400 with an empty body and no store access."""
    response = client.post(path, content=body)

    assert response.status_code == 400
    assert response.content == b""
    assert store.total_calls == 0


@pytest.mark.parametrize("path,payload", [
    ("/get", {"Key": ""}),
    ("/set", {"Key": "", "Value": "1"}),
    ("/expire", {"Key": "", "Expiration": 5}),
    ("/expire", {"Key": "a", "Expiration": -1}),
])
def test_invalid_request_is_rejected(client, store, path, payload):
    """Semantically invalid requests are 400 without store access."""
    response = client.post(path, json=payload)

    assert response.status_code == 400
    assert store.total_calls == 0


def test_negative_expiration_on_existing_key(client):
    client.post("/set", json={"Key": "a", "Value": "1"})

    response = client.post("/expire", json={"Key": "a", "Expiration": -1})

    assert response.status_code == 400
    assert client.post("/get", json={"Key": "a"}).content == b"1"


def test_store_error_is_500_without_detail(client, store):
    """Internal error text never reaches the caller."""
    with patch.object(store, "get", new_callable=AsyncMock) as mock_get:
        mock_get.side_effect = StoreError("memory", "backend exploded")
        response = client.post("/get", json={"Key": "a"})

    assert response.status_code == 500
    assert response.content == b""


def test_expire_conflict_is_409(client, store):
    """Exhausted conditional updates are reported as a conflict."""
    client.post("/set", json={"Key": "a", "Value": "1"})

    with patch.object(store, "compare_and_set", new_callable=AsyncMock) as mock_cas:
        mock_cas.return_value = False
        response = client.post("/expire", json={"Key": "a", "Expiration": 30})

    assert response.status_code == 409
    assert mock_cas.await_count == 3


def test_request_id_is_echoed(client):
    response = client.post("/get", json={"Key": "a"}, headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_metrics_endpoint(client):
    """Operation outcomes show up in the Prometheus exposition."""
    client.post("/set", json={"Key": "a", "Value": "1"})
    client.post("/get", json={"Key": "missing"})

    response = client.get("/metrics")

    assert response.status_code == 200
    text = response.text
    assert 'cache_operations_total{operation="set",outcome="success"} 1.0' in text
    assert 'cache_operations_total{operation="get",outcome="not_found"} 1.0' in text


def test_create_app_uses_configured_store(config):
    store = MemoryCacheStore()
    app = create_app(config=config, store=store)

    with TestClient(app) as client:
        client.post("/set", json={"Key": "a", "Value": "1"})

    assert store.calls["set"] == 1


def test_injected_store_is_used(config):
    """An empty injected store is kept rather than replaced from config."""
    store = MemoryCacheStore()
    service = CacheService(config=config, store=store)

    assert service.store is store
    assert service.gateway.store is store


def test_set_reaches_injected_store(client, store):
    client.post("/set", json={"Key": "a", "Value": "1"})

    assert store.calls["set"] == 1
    assert len(store) == 1


def test_snake_case_wire_fields_are_rejected(client, store):
    """Python attribute names are not accepted in place of the wire names."""
    client.post("/set", json={"Key": "a", "Value": "1"})
    store.calls.clear()

    response = client.post("/expire", json={"Key": "a", "expiration_seconds": 5})

    assert response.status_code == 400
    assert store.total_calls == 0


@pytest.mark.parametrize("exc,status_code", [
    (ValidationError("Key must not be empty"), 400),
    (NotFoundError("a"), 404),
    (StoreError("memory", "backend exploded"), 500),
])
def test_escaped_service_errors_keep_their_class(service, client, exc, status_code):
    """Errors raised past the gateway map to their own status, with no body."""
    with patch.object(service.gateway, "handle_get", new_callable=AsyncMock) as mock_get:
        mock_get.side_effect = exc
        response = client.post("/get", json={"Key": "a"})

    assert response.status_code == status_code
    assert response.content == b""
