import pytest

from app.portal import create_app
from app.portal.db import session_scope
from app.portal.errors import FieldInvalid
from app.portal.models import Base
from app.portal.modules.transport.service import estimate, haversine_km
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


def _login(client, username="ravi"):
    r = client.post("/auth/login", json={"username": username, "password": "pw"})
    assert r.status_code == 200


def test_haversine_one_degree_on_equator():
    assert haversine_km(0, 0, 0, 1) == 111
    assert haversine_km(18.5204, 73.8567, 18.5204, 73.8567) == 0


def test_estimate_road_distance():
    result = estimate({"distanceKm": "148", "ratePerKm": 12.5, "fromLocation": "Mumbai", "toLocation": "Pune"}, 10.0)
    assert result == {
        "fromLocation": "Mumbai",
        "toLocation": "Pune",
        "distanceKm": 148,
        "distanceType": "road",
        "ratePerKm": 12.5,
        "transportCost": 1850,
    }


def test_estimate_rejects_bad_input():
    with pytest.raises(FieldInvalid) as exc:
        estimate({}, 10.0)
    assert exc.value.message == "Please provide distanceKm or from/to coordinates"

    with pytest.raises(FieldInvalid) as exc:
        estimate({"distanceKm": 40, "fromLocation": "Pune", "toLocation": "pune"}, 10.0)
    assert exc.value.message == "From location and To location cannot be the same"

    with pytest.raises(FieldInvalid) as exc:
        estimate({"from": {"lat": 95, "lng": 10}, "to": {"lat": 0, "lng": 0}}, 10.0)
    assert exc.value.message == "From location coordinates are invalid"


def test_estimate_endpoint_uses_air_distance_and_default_rate(client):
    _login(client)
    r = client.post(
        "/api/transport/estimate",
        json={"from": {"lat": 19.0760, "lng": 72.8777}, "to": {"lat": 18.5204, "lng": 73.8567}},
    )
    assert r.status_code == 200
    assert r.json["data"]["distanceType"] == "air"
    assert r.json["data"]["distanceKm"] == 120
    assert r.json["data"]["ratePerKm"] == 10
    assert r.json["data"]["transportCost"] == 1200


def test_estimate_endpoint_requires_login(client):
    assert client.post("/api/transport/estimate", json={"distanceKm": 10}).status_code == 401
