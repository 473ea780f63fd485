"""Unit tests for the validate_request decorator."""

import pytest
from apiflask import HTTPError
from flask import Flask

from resqwave.api.errors import ErrorCode
from resqwave.api.schemas import CreateTerminalRequest
from resqwave.api.validation import validate_request

VALID_BODY = {"id": "T1", "name": "Barangay Marulas", "latitude": 14.676, "longitude": 120.98}


@validate_request(CreateTerminalRequest)
def view(data: CreateTerminalRequest, suffix: str = "") -> str:
    return data.id + suffix


@pytest.fixture
def flask_app() -> Flask:
    return Flask(__name__)


class TestValidateRequest:
    def test_passes_validated_model(self, flask_app: Flask) -> None:
        with flask_app.test_request_context(json=VALID_BODY):
            assert view(suffix="!") == "T1!"

    def test_rejects_non_object_body(self, flask_app: Flask) -> None:
        with flask_app.test_request_context(json=["T1"]):
            with pytest.raises(HTTPError) as exc_info:
                view()

        assert exc_info.value.status_code == 400
        assert exc_info.value.extra_data["code"] == ErrorCode.INVALID_FORMAT

    def test_rejects_malformed_json(self, flask_app: Flask) -> None:
        with flask_app.test_request_context(
            data="not json", content_type="application/json"
        ):
            with pytest.raises(HTTPError) as exc_info:
                view()

        assert exc_info.value.extra_data["code"] == ErrorCode.INVALID_FORMAT

    def test_reports_field_and_strips_value_error_prefix(self, flask_app: Flask) -> None:
        with flask_app.test_request_context(json={**VALID_BODY, "id": "a/b"}):
            with pytest.raises(HTTPError) as exc_info:
                view()

        error = exc_info.value
        assert error.status_code == 400
        assert error.message == "Terminal ID must not contain '/' or control characters"
        assert error.extra_data["code"] == ErrorCode.VALIDATION_ERROR
        assert error.extra_data["details"] == {"field": "id"}

    def test_out_of_range_latitude(self, flask_app: Flask) -> None:
        with flask_app.test_request_context(json={**VALID_BODY, "latitude": 91}):
            with pytest.raises(HTTPError) as exc_info:
                view()

        assert exc_info.value.extra_data["details"] == {"field": "latitude"}
