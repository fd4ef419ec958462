"""Tests for HelixClient using httpx.MockTransport (no network)."""
import json

import httpx
import pytest

from integrations.helix_client import HelixClient, TTLCache

STATUS = {
    "ucf_state": {"harmony": 0.6, "prana": 0.5},
    "agents": {
        "kael": {"active": True, "consciousness": {
            "personality": {"empathy": 0.8, "intelligence": 0.6, "creativity": 0.4},
            "ethical_alignment": 0.9, "dominant_emotion": "calm"}},
        "lumina": {"active": False, "consciousness": {
            "personality": {"empathy": 0.4, "intelligence": 0.8, "creativity": 0.6},
            "ethical_alignment": 0.7, "dominant_emotion": "calm"}},
    },
}


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def hits():
    return []


@pytest.fixture
def transport(hits):
    def handler(request: httpx.Request):
        hits.append((request.method, request.url.path))
        if request.url.path == "/health":
            return httpx.Response(200, json={"status": "healthy"})
        if request.url.path == "/status":
            return httpx.Response(200, json=STATUS)
        if request.url.path == "/visualize/ritual":
            return httpx.Response(200, json={"received": json.loads(request.content)})
        return httpx.Response(503, json={"detail": "unavailable"})
    return httpx.MockTransport(handler)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def client(transport, clock):
    with HelixClient("https://helix.test/", cache=TTLCache(clock), transport=transport) as c:
        yield c


def test_base_url_trailing_slash_stripped(client):
    assert client.base_url == "https://helix.test"


def test_responses_are_cached_within_ttl(client, clock, hits):
    assert client.get_system_status() == STATUS
    clock.now = 4.9
    client.get_system_status()
    assert hits == [("GET", "/status")]
    clock.now = 5.0
    client.get_system_status()
    assert hits == [("GET", "/status"), ("GET", "/status")]


def test_health_check_uses_longer_ttl(client, clock, hits):
    client.health_check()
    clock.now = 9.0
    assert client.is_healthy() is True
    assert hits == [("GET", "/health")]


def test_clear_cache(client, hits):
    client.get_ucf_state()
    client.clear_cache()
    client.get_ucf_state()
    assert len(hits) == 2
    assert client.get_ucf_state() == {"harmony": 0.6, "prana": 0.5}


def test_http_error_is_raised_and_not_cached(client, hits):
    with pytest.raises(httpx.HTTPStatusError):
        client.get_agents()
    with pytest.raises(httpx.HTTPStatusError):
        client.get_agents()
    assert hits == [("GET", "/agents"), ("GET", "/agents")]


def test_is_healthy_false_on_error(clock):
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    with HelixClient("https://helix.test", cache=TTLCache(clock), transport=transport) as c:
        assert c.is_healthy() is False


def test_generate_visualization_filters_fields_and_skips_cache(client, hits):
    body = client.generate_visualization({"harmony": 0.7, "zoom": 1.2, "bogus": 1})
    assert body == {"received": {"harmony": 0.7, "zoom": 1.2}}
    client.generate_visualization()
    assert hits.count(("POST", "/visualize/ritual")) == 2


def test_generate_visualization_error(clock):
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    with HelixClient("https://helix.test", cache=TTLCache(clock), transport=transport) as c:
        with pytest.raises(httpx.HTTPStatusError):
            c.generate_visualization({"harmony": 1.0})


def test_collective_metrics(client):
    metrics = client.get_collective_metrics()
    assert metrics["totalAgents"] == 2
    assert metrics["activeAgents"] == 1
    assert metrics["averageEmpathy"] == pytest.approx(0.6)
    assert metrics["ethicalAlignment"] == pytest.approx(0.8)
    assert metrics["dominantEmotion"] == "calm"


def test_collective_metrics_without_agents(clock):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"agents": {}}))
    with HelixClient("https://helix.test", cache=TTLCache(clock), transport=transport) as c:
        assert c.get_collective_metrics()["dominantEmotion"] == "unknown"


def test_separate_caches_are_independent(transport, clock, hits):
    shared = TTLCache(clock)
    with HelixClient("https://helix.test", cache=shared, transport=transport) as a, \
            HelixClient("https://helix.test", cache=TTLCache(clock), transport=transport) as b:
        a.get_system_status()
        b.get_system_status()
    assert len(hits) == 2
    assert len(shared) == 1
