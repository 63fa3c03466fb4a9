"""Tests for the HTTP API."""

from fastapi.testclient import TestClient

from food_lookup.api.app import create_app
from tests.conftest import status


def test_health_endpoint(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_search_endpoint_returns_foods(container, off_client) -> None:
    client = TestClient(create_app(container))

    response = client.get("/foods/search", params={"q": "cola", "limit": 5})

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "cola"
    assert data["foods"] == [
        {
            "name": "Cherry Cola",
            "calories_per_serving": None,
            "calories_per_100g": 42.5,
            "default_unit": "g",
        },
        {
            "name": "Cola",
            "calories_per_serving": 140,
            "calories_per_100g": None,
            "default_unit": "serving",
        },
    ]
    assert off_client.calls[0][1] == 5


def test_search_endpoint_fails_soft(container, off_client) -> None:
    off_client.scripts["cola"] = [status(404)]
    client = TestClient(create_app(container))

    response = client.get("/foods/search", params={"q": "cola"})

    assert response.status_code == 200
    assert response.json()["foods"] == []


def test_search_endpoint_short_query(container, off_client) -> None:
    client = TestClient(create_app(container))

    response = client.get("/foods/search", params={"q": "a"})

    assert response.json()["foods"] == []
    assert off_client.calls == []
