"""Tests for the local HTTP API."""
import pytest
from fastapi.testclient import TestClient

from breakshield.api import app, server, set_services
from breakshield.services.engine import ProcessShieldEngine
from breakshield.services.lifecycle import LifecycleService
from breakshield.services.shield import ShieldProvider


@pytest.fixture
def client(store, session_factory, schedules, clock, monkeypatch):
    engine = ProcessShieldEngine(session_factory)
    service = LifecycleService(store, engine, schedules, clock=clock)
    provider = ShieldProvider(service)
    engine.set_shield_provider(provider)
    monkeypatch.setattr(server, "lifecycle_service", None)
    monkeypatch.setattr(server, "shield_provider", None)
    monkeypatch.setattr(server, "engine_service", None)
    set_services(service, provider, engine)
    return TestClient(app)


def test_routes_exist():
    routes = [route.path for route in app.routes]
    assert "/" in routes
    assert "/status" in routes
    assert "/shield/{target}" in routes


def test_health(client):
    assert client.get("/").json()["status"] == "online"


def test_setup_status_and_disable(client):
    response = client.post("/protection", json={
        "applications": ["tiktok"],
        "web_domains": ["reddit.com"],
        "mode": "instant",
    })
    assert response.status_code == 200
    assert response.json()["phase"] == "blocking"

    status = client.get("/status").json()
    assert status["enabled"] is True
    assert status["countdown"] == "5:00"
    assert status["summary"] == "1 app + 1 website blocked"
    assert status["shield_active"] is True

    blocked = client.get("/website-activity/check-blocked/www.reddit.com").json()
    assert blocked["blocked"] is True
    assert blocked["shield"]["remaining"] == 300

    assert client.delete("/protection").json()["phase"] == "idle"
    assert client.get("/website-activity/check-blocked/www.reddit.com").json() == {"blocked": False}
    assert client.post("/protection/restart").status_code == 409


def test_setup_rejects_empty_selection(client):
    response = client.post("/protection", json={"mode": "delayed"})
    assert response.status_code == 400


def test_shield_endpoint(client):
    client.post("/protection", json={"applications": ["tiktok"], "mode": "instant"})
    response = client.get("/shield/web_domain_in_category")
    assert response.status_code == 200
    assert response.json()["cleared"] is False
    assert client.get("/shield/spaceship").status_code == 422


def test_services_unavailable(monkeypatch):
    monkeypatch.setattr(server, "lifecycle_service", None)
    monkeypatch.setattr(server, "shield_provider", None)
    client = TestClient(app)
    assert client.get("/status").status_code == 503
    assert client.get("/shield/application").status_code == 503


def test_category_check(client):
    client.post("/protection", json={"categories": ["Social"], "mode": "instant"})
    assert client.get("/website-activity/check-category/social").json() == {"blocked": True}
    assert client.get("/website-activity/check-category/games").json() == {"blocked": False}
