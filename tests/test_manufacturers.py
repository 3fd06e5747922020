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


def _seed_catalog(client):
    r = client.post("/api/products", json={"name": "Crash Barrier", "subtypes": ["W-Beam", "Thrie-Beam"], "unit": "m"})
    assert r.status_code == 201


def _manufacturer(name, *offered, location="Pune", contact="9876543210"):
    return {
        "name": name,
        "location": location,
        "contact": contact,
        "productsOffered": [{"productType": t, "price": p} for t, p in offered],
    }


def test_manufacturer_create_and_duplicate(client):
    _login(client)
    _seed_catalog(client)

    r = client.post("/api/manufacturers", json=_manufacturer("Highway Safety Systems Private Limited", ("W-Beam", 420)))
    assert r.status_code == 201
    assert r.json["data"]["Manufacturer_ID"] == "M001"
    assert r.json["data"]["Products_Offered"] == "W-Beam"

    r = client.post(
        "/api/manufacturers",
        json=_manufacturer("highway safety systems  private limited", ("w-beam", 500), location="Nagpur"),
    )
    assert r.status_code == 409
    assert r.json["existing"] == {
        "name": "Highway Safety Systems Private Limited",
        "location": "Pune",
        "productType": "W-Beam",
        "price": 420,
    }


def test_manufacturer_name_alone_is_a_duplicate_at_high_similarity(client):
    _login(client)
    _seed_catalog(client)
    client.post("/api/manufacturers", json=_manufacturer("Highway Safety Systems Private Limited", ("W-Beam", 420)))

    r = client.post(
        "/api/manufacturers",
        json=_manufacturer("Highway Safety Systems Private Limitad", ("Thrie-Beam", 460), location="Delhi"),
    )
    assert r.status_code == 409
    assert r.json["existing"] == {
        "name": "Highway Safety Systems Private Limited",
        "location": "Pune",
        "contact": "9876543210",
    }


def test_manufacturer_similar_name_with_different_products_is_allowed(client):
    _login(client)
    _seed_catalog(client)
    client.post("/api/manufacturers", json=_manufacturer("Delta Road Safety Corp", ("W-Beam", 420)))

    r = client.post("/api/manufacturers", json=_manufacturer("Delta Road Safety Cabs", ("Thrie-Beam", 460)))
    assert r.status_code == 201
    assert len(client.get("/api/manufacturers").json) == 2


def test_manufacturer_product_type_must_exist(client):
    _login(client)
    _seed_catalog(client)

    r = client.post("/api/manufacturers", json=_manufacturer("Signage India", ("Solar Blinker", 150)))
    assert r.status_code == 400
    assert r.json["message"] == (
        'Invalid product. Product type "Solar Blinker" does not exist in the Products database. '
        "Please add this product in the Products page first."
    )
    assert client.get("/api/manufacturers").json == []


def test_manufacturer_field_validation(client):
    _login(client)
    _seed_catalog(client)

    r = client.post("/api/manufacturers", json=_manufacturer("Signage India", ("W-Beam", 420), contact="12345"))
    assert r.status_code == 400
    assert r.json["message"] == "Phone number must be exactly 10 digits"

    r = client.post("/api/manufacturers", json=_manufacturer("Signage India", ("W-Beam", 0)))
    assert r.status_code == 400
    assert r.json["message"] == "Each product must have productType and price"

    body = _manufacturer("Signage India", ("W-Beam", 420))
    body["gstNumber"] = "NOT-A-GST"
    r = client.post("/api/manufacturers", json=body)
    assert r.status_code == 400
    assert r.json["message"].startswith("Invalid GST format")


def test_manufacturer_page_format_with_price_string(client):
    _login(client)
    _seed_catalog(client)

    r = client.post(
        "/api/manufacturers",
        json={
            "Manufacturer_Name": "Signage India",
            "Location": "Mumbai",
            "Contact_Number": "98765 43210",
            "Products_Offered": "W-Beam, Thrie-Beam",
            "Product_Prices (Rs.)": "W-Beam: 420, Thrie-Beam: 460",
        },
    )
    assert r.status_code == 201
    data = r.json["data"]
    assert data["productsOffered"] == [
        {"productType": "W-Beam", "price": 420},
        {"productType": "Thrie-Beam", "price": 460},
    ]
    assert data["Product_Prices (Rs.)"] == "W-Beam: 420, Thrie-Beam: 460"


def test_employee_can_view_but_not_create(client):
    _login(client)
    _seed_catalog(client)
    client.get("/auth/logout")

    _login(client, "ravi")
    assert client.get("/api/manufacturers").status_code == 200
    r = client.post("/api/manufacturers", json=_manufacturer("Signage India", ("W-Beam", 420)))
    assert r.status_code == 403


def test_catalog_then_near_identical_manufacturer_end_to_end(client):
    _login(client)
    r = client.post("/api/products", json={"name": "Crash Barrier", "subtypes": ["W-Beam"], "unit": "m"})
    assert r.status_code == 201
    assert client.post("/api/manufacturers", json=_manufacturer("Crash Barriers", ("W-Beam", 100))).status_code == 201

    r = client.post("/api/manufacturers", json=_manufacturer("Crash Barrier", ("W-Beam", 100), location="Delhi"))
    assert r.status_code == 409
    assert r.json["message"] == "Duplicate entry detected"
    assert r.json["existing"]["name"] == "Crash Barriers"
    assert r.json["existing"]["location"] == "Pune"
