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


def _login(client, username="admin"):
    r = client.post("/auth/login", json={"username": username, "password": "pw"})
    assert r.status_code == 200


def test_product_create_page_format(client):
    _login(client)
    r = client.post(
        "/api/products",
        json={"Product_Name": "Crash Barrier", "Sub_Type": "W-Beam", "Unit": "m", "Notes": "Galvanised"},
    )
    assert r.status_code == 201
    data = r.json["data"]
    assert data["Product_ID"] == "P001"
    assert data["Product_Name"] == "Crash Barrier"
    assert data["Sub_Type"] == "W-Beam"
    assert data["Unit"] == "m"
    assert data["Notes"] == "Galvanised"


def test_product_list_has_one_row_per_subtype(client):
    _login(client)
    client.post("/api/products", json={"name": "Crash Barrier", "subtypes": ["W-Beam", "Thrie-Beam"], "unit": "m"})
    rows = client.get("/api/products").json
    assert [(row["Product_ID"], row["Sub_Type"]) for row in rows] == [("P001", "W-Beam"), ("P001", "Thrie-Beam")]


def test_product_duplicate_rejected(client):
    _login(client)
    assert client.post("/api/products", json={"name": "Crash Barrier", "subtypes": ["W-Beam"], "unit": "m"}).status_code == 201

    r = client.post("/api/products", json={"name": "crash barrier ", "subtypes": ["W Beam"], "unit": "m"})
    assert r.status_code == 409
    assert r.json == {
        "success": False,
        "message": "Duplicate entry detected",
        "existing": {"name": "Crash Barrier", "subtype": "W-Beam", "unit": "m"},
    }
    assert len(client.get("/api/products").json) == 1


def test_product_validation_errors(client):
    _login(client)
    r = client.post("/api/products", json={"name": "Crash Barrier", "subtypes": ["W-Beam"]})
    assert r.status_code == 400
    assert r.json["message"] == "Please provide name/Product_Name and unit/Unit"

    r = client.post("/api/products", json={"name": "Crash Barrier", "subtypes": ["W-Beam"], "unit": "furlong"})
    assert r.status_code == 400
    assert r.json["message"].startswith("Invalid unit.")

    r = client.post("/api/products", json={"name": "Crash Barrier", "subtypes": [], "unit": "m"})
    assert r.status_code == 400
    assert r.json["message"] == "At least one product type (subtype) must be provided"


def test_product_update_and_delete(client):
    _login(client)
    product_id = client.post("/api/products", json={"name": "Road Stud", "subtypes": ["Solar"], "unit": "pcs"}).json["data"]["id"]

    r = client.put(f"/api/products/{product_id}", json={"Notes": "Reflective"})
    assert r.status_code == 200
    assert r.json["data"]["Notes"] == "Reflective"

    r = client.delete(f"/api/products/{product_id}")
    assert r.json == {"success": True, "message": "Product deleted successfully"}
    assert client.delete(f"/api/products/{product_id}").status_code == 404


def test_new_subtype_under_existing_name_is_accepted(client):
    _login(client)
    r = client.post("/api/products", json={"Product_Name": "Crash Barrier", "Sub_Type": "W-Beam", "Unit": "m"})
    assert r.status_code == 201

    r = client.post("/api/products", json={"Product_Name": "Crash Barrier", "Sub_Type": "Thrie-Beam", "Unit": "m"})
    assert r.status_code == 201
    assert r.json["data"]["Product_ID"] == "P002"

    rows = client.get("/api/products").json
    assert sorted(row["Sub_Type"] for row in rows) == ["Thrie-Beam", "W-Beam"]
