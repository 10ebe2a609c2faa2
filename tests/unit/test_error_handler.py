"""Error types and their envelope rendering."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from reachability.middleware.error_handler import (
    AuthenticationError,
    DirectoryUnavailableError,
    JobCapacityError,
    JobNotFoundError,
    ReachabilityError,
    ValidationError,
    error_response,
    register_error_handlers,
)

_RAISERS = {
    "base": ReachabilityError,
    "auth": AuthenticationError,
    "missing-job": JobNotFoundError,
    "capacity": lambda: JobCapacityError(limit=4),
    "directory": DirectoryUnavailableError,
    "too-many": lambda: ValidationError("Too many targets", limit=1000),
    "crash": lambda: RuntimeError("something unexpected"),
}


class ProbeBody(BaseModel):
    target: str
    timeout_ms: int


@pytest.fixture()
def client() -> TestClient:
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/raise/{name}")
    async def raise_named(name: str):
        raise _RAISERS[name]()

    @app.post("/probe")
    async def probe(body: ProbeBody):
        return {"target": body.target}

    return TestClient(app, raise_server_exceptions=False)


class TestErrorTypes:
    @pytest.mark.parametrize(
        "cls",
        [ValidationError, AuthenticationError, JobNotFoundError, JobCapacityError, DirectoryUnavailableError],
    )
    def test_share_base(self, cls):
        assert issubclass(cls, ReachabilityError)

    def test_message_defaults_to_class_message(self):
        assert DirectoryUnavailableError().message == "Endpoint directory unavailable"

    def test_message_can_be_overridden(self):
        err = JobNotFoundError("Job 42 not found")
        assert err.message == str(err) == "Job 42 not found"

    def test_keyword_details_are_kept(self):
        assert JobCapacityError(limit=4).details == {"limit": 4}

    def test_error_response_omits_empty_meta(self):
        resp = error_response(502, "down", {})
        assert resp.status_code == 502
        assert b'"meta":null' in resp.body


class TestRendering:
    @pytest.mark.parametrize(
        ("name", "status", "message"),
        [
            ("base", 500, "Internal server error"),
            ("auth", 401, "Invalid or missing service key"),
            ("missing-job", 404, "Job not found"),
            ("capacity", 503, "Too many batch jobs running"),
            ("directory", 502, "Endpoint directory unavailable"),
        ],
    )
    def test_status_and_message(self, client, name, status, message):
        resp = client.get(f"/raise/{name}")

        assert resp.status_code == status
        assert resp.json() == {
            "success": False,
            "data": None,
            "error": message,
            "meta": {"limit": 4} if name == "capacity" else None,
        }

    def test_details_become_meta(self, client):
        body = client.get("/raise/too-many").json()
        assert body["error"] == "Too many targets"
        assert body["meta"] == {"limit": 1000}

    def test_request_validation_names_the_field(self, client):
        resp = client.post("/probe", json={"target": "a.test", "timeout_ms": "soon"})

        assert resp.status_code == 422
        assert resp.json()["error"] == "Validation error"
        assert [f["field"] for f in resp.json()["meta"]["fields"]] == ["timeout_ms"]

    def test_crash_is_hidden_behind_generic_500(self, client):
        resp = client.get("/raise/crash")

        assert resp.status_code == 500
        assert resp.json()["error"] == "Internal server error"
        assert "something unexpected" not in resp.text
