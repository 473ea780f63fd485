"""Integration tests for terminal registry routes."""

import json
from typing import Any

import pytest
from flask.testing import FlaskClient

from resqwave.db.models import Database
from resqwave.weather.cache_manager import WeatherCacheManager


def valid_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": "T3",
        "name": "Barangay Gen. T. de Leon",
        "latitude": 14.6829,
        "longitude": 120.9998,
    }
    payload.update(overrides)
    return payload


class TestListTerminals:
    """Tests for GET /api/terminals."""

    def test_lists_registered_terminals(self, client: FlaskClient) -> None:
        response = client.get("/api/terminals")

        assert response.status_code == 200
        data = json.loads(response.data)
        assert [t["id"] for t in data["terminals"]] == ["T1", "T2"]
        assert set(data["terminals"][0]) == {"id", "name", "latitude", "longitude", "createdAt"}


class TestCreateTerminal:
    """Tests for POST /api/terminals."""

    def test_creates_terminal(self, client: FlaskClient, test_database: Database) -> None:
        response = client.post("/api/terminals", json=valid_payload())

        assert response.status_code == 201
        data = json.loads(response.data)
        assert data["id"] == "T3"
        assert data["latitude"] == 14.6829
        assert test_database.get_terminal("T3") is not None

    def test_strips_name(self, client: FlaskClient) -> None:
        response = client.post("/api/terminals", json=valid_payload(name="  Marulas  "))

        assert response.status_code == 201
        assert json.loads(response.data)["name"] == "Marulas"

    def test_duplicate_returns_409(self, client: FlaskClient) -> None:
        response = client.post("/api/terminals", json=valid_payload(id="T1"))

        assert response.status_code == 409
        data = json.loads(response.data)
        assert data["error"]["code"] == "CONFLICT"
        assert data["error"]["retryable"] is False

    def test_invalid_json(self, client: FlaskClient) -> None:
        response = client.post(
            "/api/terminals", data="not json", content_type="application/json"
        )

        assert response.status_code == 400
        assert json.loads(response.data)["error"]["code"] == "INVALID_FORMAT"

    @pytest.mark.parametrize(
        ("overrides", "field"),
        [
            ({"id": ""}, "id"),
            ({"id": " T3"}, "id"),
            ({"id": "a/b"}, "id"),
            ({"id": "x" * 256}, "id"),
            ({"name": "   "}, "name"),
            ({"latitude": 91}, "latitude"),
            ({"longitude": -181}, "longitude"),
        ],
    )
    def test_validation_errors(
        self, client: FlaskClient, overrides: dict[str, Any], field: str
    ) -> None:
        response = client.post("/api/terminals", json=valid_payload(**overrides))

        assert response.status_code == 400
        data = json.loads(response.data)
        assert data["error"]["code"] == "VALIDATION_ERROR"
        assert data["error"]["details"]["field"] == field

    def test_missing_field(self, client: FlaskClient) -> None:
        payload = valid_payload()
        del payload["latitude"]

        response = client.post("/api/terminals", json=payload)

        assert response.status_code == 400
        assert json.loads(response.data)["error"]["details"]["field"] == "latitude"


class TestGetTerminal:
    """Tests for GET /api/terminals/<id>."""

    def test_returns_terminal(self, client: FlaskClient) -> None:
        response = client.get("/api/terminals/T1")

        assert response.status_code == 200
        assert json.loads(response.data)["name"] == "Barangay Marulas"

    def test_missing_terminal(self, client: FlaskClient) -> None:
        response = client.get("/api/terminals/nope")

        assert response.status_code == 404
        data = json.loads(response.data)
        assert data["error"]["code"] == "NOT_FOUND"
        assert data["error"]["message"] == "Terminal not found"


class TestDeleteTerminal:
    """Tests for DELETE /api/terminals/<id>."""

    def test_deletes_terminal_and_cache(
        self,
        client: FlaskClient,
        manager: WeatherCacheManager,
        test_database: Database,
    ) -> None:
        manager.get_forecast("T1")

        response = client.delete("/api/terminals/T1")

        assert response.status_code == 200
        assert json.loads(response.data) == {"status": "deleted"}
        assert test_database.get_terminal("T1") is None
        assert test_database.get_weather_cache("T1") is None

    def test_missing_terminal(self, client: FlaskClient) -> None:
        response = client.delete("/api/terminals/nope")

        assert response.status_code == 404
