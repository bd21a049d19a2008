# tests/test_main_smoke.py
from fastapi.testclient import TestClient

from app.core.config import AppSettings
from app.main import app, create_app


def test_openapi_lists_core_routes():
    client = TestClient(app)
    r = client.get("/openapi.json")
    assert r.status_code == 200
    paths = r.json()["paths"]
    for p in ("/orders", "/orders/{order_id}/status", "/payment/status/{order_id}", "/returns", "/inventory/stats"):
        assert p in paths


def test_root_and_health():
    client = TestClient(app)
    assert client.get("/").json()["name"] == "backoffice-core"
    assert client.get("/healthz").json() == {"status": "ok"}


def test_lifespan_builds_and_closes_its_own_container(tmp_path):
    settings = AppSettings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'smoke.db'}",
        PAYMENT_RECONCILE_ENABLED=False,
    )
    smoke = create_app(settings=settings)
    with TestClient(smoke) as client:
        container = smoke.state.container
        assert container is not None
        assert container.settings is settings
        assert not container.scheduler.running
        assert client.get("/ping").status_code == 200
    assert smoke.state.container is None
