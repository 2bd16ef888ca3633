from tezeus.config import Settings, get_settings
from tezeus.shared.http.middleware import request_id_middleware

class _Recorder:
    def __init__(self):
        self.events = []

    def info(self, event, **fields):
        self.events.append((event, fields))

async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["service"] == get_settings().PROJECT_NAME
    assert body["version"] == get_settings().PROJECT_VERSION

async def test_health_reports_configured_identity(app, client):
    app.dependency_overrides[get_settings] = lambda: Settings(APP_NAME="tezeus-edge", PROJECT_VERSION="2.4.1", ENV="staging")
    r = await client.get("/health")
    assert r.json() == {"status": "ok", "service": "tezeus-edge", "version": "2.4.1", "environment": "staging"}

async def test_health_db(client):
    r = await client.get("/_health/db")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.json()["service"] == get_settings().PROJECT_NAME

async def test_request_log_line_carries_service_identity(client, monkeypatch):
    recorder = _Recorder()
    monkeypatch.setattr(request_id_middleware, "logger", recorder)

    await client.get("/health", headers={"X-Request-ID": "req-42"})

    [(event, fields)] = [e for e in recorder.events if e[0] == "Request completed"]
    assert fields["service"] == get_settings().PROJECT_NAME
    assert fields["version"] == get_settings().PROJECT_VERSION
    assert fields["request_id"] == "req-42"
    assert (fields["method"], fields["path"], fields["status_code"]) == ("GET", "/health", 200)

async def test_root(client):
    r = await client.get("/")
    assert r.json()["health"] == "/health"

async def test_request_id_is_generated_and_echoed(client):
    r = await client.get("/health")
    assert r.headers["X-Request-ID"]

    r = await client.get("/health", headers={"X-Request-ID": "abc"})
    assert r.headers["X-Request-ID"] == "abc"

async def test_cors_preflight_allows_context_headers(client):
    r = await client.options(
        "/api/v1/functions/accept-conversation",
        headers={
            "Origin": "http://app.tezeus.test",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type,x-system-user-id,x-system-user-email,x-workspace-id",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] in ("*", "http://app.tezeus.test")
    allowed = r.headers["access-control-allow-headers"].lower()
    for header in ("x-system-user-id", "x-system-user-email", "x-workspace-id"):
        assert header in allowed

async def test_openapi_documents_context_headers(client):
    schema = (await client.get("/openapi.json")).json()
    assert set(schema["components"]["securitySchemes"]) == {
        "x-system-user-id",
        "x-system-user-email",
        "x-workspace-id",
    }
