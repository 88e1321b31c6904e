"""Smoke tests for the health endpoints."""
from __future__ import annotations


def test_health_endpoint(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json == {"status": "ok"}


def test_db_health_endpoint(client) -> None:
    response = client.get("/db-health")

    assert response.status_code == 200
    assert response.json == {"database": "ok"}


def test_every_route_documents_its_api(app) -> None:
    for rule in app.url_map.iter_rules():
        if rule.endpoint == "static":
            continue
        doc = app.view_functions[rule.endpoint].__doc__ or ""
        assert "---" in [line.strip() for line in doc.splitlines()], rule.rule
        assert "responses:" in doc, rule.rule
