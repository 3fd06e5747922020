import pytest

from app.portal import create_app
from app.portal.db import session_scope
from app.portal.models import Base
from scripts.init_db import ensure_user, seed_access


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        roles = seed_access(s)
        ensure_user(s, "admin", "pw", roles["admin"])
        ensure_user(s, "ravi", "pw", roles["employee"])

    return app.test_client()


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True

    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_login_me_logout(client):
    r = client.get("/auth/me")
    assert r.status_code == 401

    r = client.post("/auth/login", json={"username": "admin", "password": "pw"})
    assert r.status_code == 200
    assert r.json["user"]["username"] == "admin"
    assert r.json["user"]["role"] == "admin"

    r = client.get("/auth/me")
    assert r.status_code == 200
    assert r.json["user"]["username"] == "admin"

    r = client.get("/auth/logout")
    assert r.status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_bad_password_rejected(client):
    r = client.post("/auth/login", json={"username": "admin", "password": "nope"})
    assert r.status_code == 401
    assert r.json == {"success": False, "message": "Invalid credentials"}


def test_login_attempts_are_throttled(client):
    for _ in range(5):
        assert client.post("/auth/login", json={"username": "admin", "password": "nope"}).status_code == 401
    r = client.post("/auth/login", json={"username": "admin", "password": "pw"})
    assert r.status_code == 429
    assert r.json["message"].startswith("Too many login attempts.")


def test_api_requires_login(client):
    r = client.get("/api/products")
    assert r.status_code == 401
    assert r.json["message"] == "Not authorized, please log in"


def test_employee_missing_permission(client):
    client.post("/auth/login", json={"username": "ravi", "password": "pw"})
    assert client.get("/auth/me").json["user"]["role"] == "employee"

    assert client.get("/api/products").status_code == 200
    r = client.post("/api/products", json={"name": "Road Stud", "subtypes": ["Solar"], "unit": "pcs"})
    assert r.status_code == 403
    assert r.json["missing_permission"] == "products.create"


def test_unknown_route_is_json(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json == {"success": False, "message": "Route not found"}
