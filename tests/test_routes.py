"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from report_engine.main import app


@pytest.fixture
def client(engine):
    app.state.engine = engine
    with TestClient(app) as test_client:
        yield test_client
    app.state.engine = None


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_generate_and_get(client, complete_inputs):
    response = client.post("/reports/42/career_transitions/generate")
    assert response.status_code == 200
    assert response.json()["version"] == 1

    response = client.get("/reports/42/career_transitions")
    assert response.status_code == 200
    assert response.json()["payload"] == {"summary": "Strong transition candidate."}


def test_get_missing_report(client):
    assert client.get("/reports/42/career_transitions").status_code == 404


def test_unknown_kind(client):
    assert client.get("/reports/42/horoscope").status_code == 404
    assert client.post("/reports/42/horoscope/generate").status_code == 404


def test_insufficient_data_is_conflict(client):
    response = client.post("/reports/42/career_transitions/generate")

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "INSUFFICIENT_DATA"
    assert detail["missing_forms"] == ["task_analysis", "skills_gap"]


def test_generation_failure_is_unavailable(client, provider, complete_inputs):
    provider.responses = ["no json at all"]

    response = client.post("/reports/42/career_transitions/generate")

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "PARSE_ERROR"
    assert "no json" not in response.text


def test_enqueue_and_poll(client, complete_inputs, engine):
    response = client.post("/reports/42/career_transitions/enqueue")
    assert response.status_code == 202
    assert response.json()["status"] == "pending"

    assert client.get("/reports/42/career_transitions/status").json()["status"] == "pending"
    assert client.get("/queue/status").json() == {"pending": 1}


def test_listing_and_versions(client, complete_inputs):
    client.post("/reports/42/career_transitions/generate")
    client.post("/reports/42/career_transitions/generate", params={"force": True})

    listing = client.get("/reports/42").json()
    assert [item["kind"] for item in listing] == ["career_transitions"]
    assert listing[0]["version"] == 2

    versions = client.get("/reports/42/career_transitions/versions").json()
    assert [v["version"] for v in versions] == [2, 1]

    assert client.get("/reports/42/career_transitions/versions/1").status_code == 200
    assert client.get("/reports/42/career_transitions/versions/5").status_code == 404

    comparison = client.get("/reports/42/career_transitions/compare", params={"v1": 1, "v2": 2}).json()
    assert comparison["data_changed"] is False
