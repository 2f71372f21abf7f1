import threading

import pytest

from gateway_core.domain.exceptions import TransportError
from gateway_core.gateway.health import ConnectionHealthTracker


class SettingsStub:
    ai_health_timeout = 3.0


class ToggleUpstream:
    base_url = "http://fake"

    def __init__(self, up=True):
        self.up = up
        self.calls = []

    def request(self, method, path, json=None, params=None, files=None, data=None, timeout=None):
        self.calls.append((method, path, timeout))
        if not self.up:
            raise TransportError(code="TIMEOUT", message="timed out", http_status=504)
        return {"status": "healthy", "service": "zenai-ai-engine"}


def test_probe_on_construction():
    upstream = ToggleUpstream(up=True)
    tracker = ConnectionHealthTracker(upstream, SettingsStub())
    assert upstream.calls == [("GET", "/health", 3.0)]
    assert tracker.is_available() is True
    assert tracker.state.last_checked_at is not None


def test_unknown_until_first_probe():
    upstream = ToggleUpstream(up=True)
    tracker = ConnectionHealthTracker(upstream, SettingsStub(), probe_on_init=False)
    assert upstream.calls == []
    assert tracker.state.available is None
    assert tracker.is_available() is False


def test_state_follows_last_probe():
    upstream = ToggleUpstream(up=False)
    tracker = ConnectionHealthTracker(upstream, SettingsStub())
    assert tracker.is_available() is False
    assert tracker.is_available() is False

    upstream.up = True
    assert tracker.probe() is True
    assert tracker.is_available() is True

    upstream.up = False
    assert tracker.probe() is False
    assert tracker.is_available() is False
    assert len(upstream.calls) == 3


def test_state_to_dict():
    tracker = ConnectionHealthTracker(ToggleUpstream(up=True), SettingsStub())
    data = tracker.state.to_dict()
    assert data["available"] is True
    assert data["lastCheckedAt"].endswith("Z")


def test_background_refresh():
    probed = threading.Event()

    class SignallingUpstream(ToggleUpstream):
        def request(self, *a, **kw):
            result = super().request(*a, **kw)
            if len(self.calls) >= 2:
                probed.set()
            return result

    upstream = SignallingUpstream(up=True)
    tracker = ConnectionHealthTracker(upstream, SettingsStub())
    tracker.start(0.01)
    try:
        assert probed.wait(2.0)
    finally:
        tracker.stop(timeout=1.0)
    assert tracker.is_available() is True


def test_start_rejects_non_positive_interval():
    tracker = ConnectionHealthTracker(ToggleUpstream(), SettingsStub(), probe_on_init=False)
    with pytest.raises(ValueError):
        tracker.start(0)


def test_probe_with_invalid_engine_url_reports_unavailable():
    from gateway_core.upstream.http_client import HttpUpstreamClient

    class ClientSettings:
        ai_engine_url = "http://localhost:8001"
        ai_request_timeout = 30.0

    upstream = HttpUpstreamClient(ClientSettings(), base_url="http://exa mple.com:notaport")
    tracker = ConnectionHealthTracker(upstream, SettingsStub(), probe_on_init=False)
    assert tracker.probe() is False
    assert tracker.state.available is False


def test_background_probe_survives_unexpected_error():
    class FlakyUpstream(ToggleUpstream):
        def request(self, method, path, **kw):
            self.calls.append((method, path, kw.get("timeout")))
            if len(self.calls) == 1:
                raise RuntimeError("boom")
            return {"status": "healthy"}

    upstream = FlakyUpstream()
    tracker = ConnectionHealthTracker(upstream, SettingsStub(), probe_on_init=False)
    tracker.start(0.01)
    try:
        for _ in range(200):
            if tracker.state.available:
                break
            threading.Event().wait(0.01)
    finally:
        tracker.stop(timeout=1.0)
    assert len(upstream.calls) >= 2
    assert tracker.is_available() is True
