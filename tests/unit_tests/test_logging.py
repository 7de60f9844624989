"""Test suite for logger configuration and the request context middleware."""

import json
import sys

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tms_api.monitoring import RequestContextMiddleware
from tms_api.monitoring import get_request_context
from tms_api.monitoring.logger import get_formatted_stacktrace
from tms_api.monitoring.logger import process_log_record
from tms_api.monitoring.logger import redact


class TestRedact:
    """Tests for password masking."""

    def test_nested_values_masked(self):
        value = {
            "username": "pd",
            "password": "pd",
            "change": {"old_password": "a", "New_Password": "b"},
            "items": [{"password": "x"}, "plain"],
        }

        assert redact(value) == {
            "username": "pd",
            "password": "***",
            "change": {"old_password": "***", "New_Password": "***"},
            "items": [{"password": "***"}, "plain"],
        }

    def test_scalars_unchanged(self):
        assert redact("password") == "password"
        assert redact(None) is None


class TestProcessLogRecord:
    """Tests for process_log_record."""

    def test_extra_serialized_and_redacted(self):
        record = {"extra": {"user_id": "u-pd", "request_body": {"password": "pd"}}, "exception": None}

        processed = process_log_record(record)

        assert json.loads(processed["extra"]) == {"user_id": "u-pd", "request_body": {"password": "***"}}
        assert processed["stacktrace"] == ""

    def test_empty_extra_left_alone(self):
        record = {"extra": {}, "exception": None}

        assert process_log_record(record)["extra"] == {}

    def test_stacktrace_on_single_line(self):
        try:
            raise ValueError("boom")
        except ValueError:
            exc_info = sys.exc_info()

        stacktrace = get_formatted_stacktrace(exc_info, replace_newline_character_with_carriage_return=True)

        assert "\n" not in stacktrace
        assert "ValueError: boom" in stacktrace


class TestRequestContextMiddleware:
    """Tests for RequestContextMiddleware."""

    @pytest.fixture
    def context_client(self):
        app = FastAPI()
        app.add_middleware(RequestContextMiddleware)

        @app.post("/echo")
        async def echo():
            return get_request_context()

        @app.get("/state")
        async def state():
            return get_request_context()

        with TestClient(app) as test_client:
            yield test_client

    def test_request_id_generated(self, context_client):
        response = context_client.get("/state")

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == response.json()["request_id"]

    def test_request_id_propagated(self, context_client):
        response = context_client.get("/state", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_user_and_client_ip_captured(self, context_client):
        response = context_client.post(
            "/echo",
            json={"password": "secret"},
            headers={"X-User-Id": "u-pd", "X-Forwarded-For": "10.0.0.5, 10.0.0.1"},
        )

        context = response.json()
        assert context["user_identity"] == "u-pd"
        assert context["client_ip"] == "10.0.0.5"
        assert context["request_path"] == "POST /echo"

    def test_anonymous_without_user_header(self, context_client):
        assert context_client.get("/state").json()["user_identity"] == "anonymous"
