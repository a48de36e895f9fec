import pytest
from fastapi.testclient import TestClient

import app.main as api
from fakes import StubOracle
from plg.models.infer import initialize
from plg.models.scaler import StandardScaler


@pytest.fixture
def stub():
    return StubOracle(0.9)


@pytest.fixture
def client(monkeypatch, stub):
    engine = initialize(
        bad_feed=["bad-feed-domain.test"],
        allow_list=["trusted.example"],
        scaler=StandardScaler.identity(),
        threshold=0.5,
        oracle=stub,
    )
    monkeypatch.setattr(api, "ENGINE", engine)
    monkeypatch.setattr(api, "INIT_ERROR", None)
    return TestClient(api.app)


@pytest.fixture
def not_ready(monkeypatch):
    monkeypatch.setattr(api, "ENGINE", None)
    monkeypatch.setattr(api, "INIT_ERROR", "artifact load failed: allowlist.txt")
    return TestClient(api.app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["ready"] is True
    assert body["threshold"] == 0.5
    assert r.headers["Cache-Control"] == "no-store"


def test_ping(client):
    r = client.get("/ping")
    assert r.text == "pong"


def test_classify_post_feed_confirmed(client):
    r = client.post("/classify", json={"url": "http://bad-feed-domain.test"})
    assert r.status_code == 200
    body = r.json()
    assert body["label"] == "malicious"
    assert body["reason"] == "bloom_feed_confirmed"
    assert body["score"] == pytest.approx(0.9)
    assert body["domain"] == "bad-feed-domain.test"
    assert "X-Request-Latency-ms" in r.headers


def test_classify_get_allow_listed(client, stub):
    r = client.get("/classify", params={"url": "https://trusted.example"})
    assert r.status_code == 200
    assert r.json()["reason"] == "allow_listed"
    assert r.json()["score"] is None
    assert stub.calls == []


def test_classify_debug_includes_explain(client):
    r = client.post("/classify", json={"url": "unknown-domain.test", "debug": True})
    assert r.status_code == 200
    explain = r.json()["explain"]
    assert set(explain["features"]) >= {"length", "entropy"}
    assert len(explain["scaled"]) == 8


def test_classify_invalid(client):
    r = client.post("/classify", json={"url": ""})
    assert r.status_code == 422
    assert r.json()["error"] == "validation_error"


def test_classify_blank_get(client):
    r = client.get("/classify", params={"url": "   "})
    assert r.status_code == 400


def test_classification_error_surfaces(client, stub):
    stub.p = RuntimeError("session exploded")
    r = client.post("/classify", json={"url": "https://unknown-domain.test"})
    assert r.status_code == 500
    assert r.json()["error"] == "classification_error"


def test_not_ready(not_ready):
    assert not_ready.get("/health").json()["ready"] is False
    r = not_ready.post("/classify", json={"url": "https://example.com"})
    assert r.status_code == 503
    assert "allowlist.txt" in r.json()["detail"]


def test_lifespan_with_missing_artifacts(tmp_path, monkeypatch):
    monkeypatch.setattr(api, "ARTIFACT_DIR", tmp_path / "empty")
    monkeypatch.setattr(api, "ENGINE", None)
    with TestClient(api.app) as c:
        body = c.get("/health").json()
    assert body["ready"] is False
    assert body["error"]
