from fastapi.testclient import TestClient
from sqlalchemy import create_engine

from acct_api.db.session import build_session_factory
from acct_api.main import create_app
from acct_api.registry import ServiceRegistry
from acct_api.utils.response import SECURITY_HEADERS
from conftest import RecordingMailer, RecordingMetrics, RecordingNotifier


def _assert_security_headers(response) -> None:
    for name, value in SECURITY_HEADERS.items():
        assert response.headers.get(name) == value, f"{name} missing on {response.request.url}"


def test_healthz_ok(api_client):
    response = api_client.get("/healthz")
    assert response.status_code == 200
    assert response.content == b""
    _assert_security_headers(response)
    assert response.headers["X-Request-Id"]


def test_healthz_rejects_other_methods(api_client):
    for method in ("POST", "PUT", "PATCH", "DELETE"):
        response = api_client.request(method, "/healthz")
        assert response.status_code == 405, method
        assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"
        _assert_security_headers(response)


def test_healthz_rejects_query_and_body(api_client):
    assert api_client.get("/healthz?probe=1").status_code == 400
    assert api_client.request("GET", "/healthz", content=b"ping").status_code == 400


def test_healthz_database_unavailable_returns_503(settings, tmp_path, object_store):
    broken_engine = create_engine(f"sqlite+pysqlite:///{tmp_path}/missing/dir/app.db", future=True)
    registry = ServiceRegistry(
        settings=settings.model_copy(update={"db_auto_create": False}),
        session_factory=build_session_factory(broken_engine),
        object_store=object_store,
        metrics=RecordingMetrics(),
        notifier=RecordingNotifier(),
        mailer=RecordingMailer(),
    )
    with TestClient(create_app(registry=registry)) as client:
        response = client.get("/healthz")
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "UPSTREAM_FAILURE"
    _assert_security_headers(response)


def test_unknown_path_returns_404_envelope(api_client):
    response = api_client.get("/v1/unknown")
    assert response.status_code == 404
    body = response.json()
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["request_id"] == response.headers["X-Request-Id"]
    _assert_security_headers(response)


def test_malformed_json_returns_400(api_client, registry):
    response = api_client.post(
        "/v1/user",
        content=b'{"email": "a@b.com",',
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["details"]["reason"] == "malformed_json"
    _assert_security_headers(response)
    assert registry.notifier.messages == []


def test_validation_errors_use_standard_envelope(api_client):
    response = api_client.post("/v1/user", json={"email": "a@b.com"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "INVALID_INPUT"
    fields = {item["field"] for item in body["error"]["details"]["errors"]}
    assert {"password", "firstName", "lastName"} <= fields


def test_request_metrics_are_recorded_per_route(api_client, registry):
    api_client.get("/healthz")
    api_client.get("/nowhere")
    counted = [name for name, _ in registry.metrics.counts]
    assert "api.healthz.count" in counted
    assert "api.unmatched.count" in counted
    assert any(name == "api.healthz.latency" for name, _ in registry.metrics.timings)


def test_registry_closed_on_shutdown(registry):
    with TestClient(create_app(registry=registry)) as client:
        client.get("/healthz")
    assert registry.metrics.closed


def test_cors_headers_when_origins_configured(settings, registry):
    registry.settings = settings.model_copy(update={"cors_allow_origins": "https://app.example.com"})
    with TestClient(create_app(registry=registry)) as client:
        response = client.get("/healthz", headers={"Origin": "https://app.example.com"})
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "https://app.example.com"
