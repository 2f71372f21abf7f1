import pytest

from gateway_core.upstream import create_upstream_client
from gateway_core.upstream.endpoints import ENDPOINTS, get_endpoint
from gateway_core.upstream.http_client import HttpUpstreamClient


def test_create_upstream_client_default(monkeypatch):
    class DummySettings:
        ai_engine_url = "http://ai-engine:8001"
        ai_request_timeout = 30.0
        ai_health_timeout = 3.0

    monkeypatch.setattr("gateway_core.upstream.settings", DummySettings())
    client = create_upstream_client()
    assert isinstance(client, HttpUpstreamClient)
    assert client.base_url == "http://ai-engine:8001"
    assert client.timeout == 30.0


def test_create_upstream_client_explicit_url(monkeypatch):
    class DummySettings:
        ai_engine_url = "http://ai-engine:8001"
        ai_request_timeout = 10.0
        ai_health_timeout = 3.0

    monkeypatch.setattr("gateway_core.upstream.settings", DummySettings())
    client = create_upstream_client("http://other:9000/")
    assert client.base_url == "http://other:9000"


def test_endpoint_table():
    assert len(ENDPOINTS) == 9
    assert get_endpoint("chat").path == "/api/v1/ai/chat"
    assert get_endpoint("search-documents").method == "GET"
    assert get_endpoint("transcribe").path == "/api/v1/ai/transcribe"
    with pytest.raises(KeyError):
        get_endpoint("summarize")
