"""
tests/test_health.py -- Integration tests for GET / and GET /health.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' against the test store
  - No authentication required
  - Plain-text liveness message on the root path
"""

from __future__ import annotations

from api.main import VERSION


def test_health_returns_200_with_components(api_client):
    """Health endpoint returns 200 with status, version, and components."""
    resp = api_client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["version"] == VERSION
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_no_auth_required(api_client):
    resp = api_client.get("/health", headers={})
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_root_reports_liveness_as_plain_text(api_client):
    resp = api_client.get("/")
    assert resp.status_code == 200
    assert resp.text == "Backend is up and running"
    assert resp.headers["content-type"].startswith("text/plain")
