"""
Manufacturer service.

A manufacturer may only offer product types that already exist as a subtype in
the product catalog; that referential check runs after field validation and
before the duplicate policy.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.portal.audit import record_event
from app.portal.duplicates import MANUFACTURER_POLICY
from app.portal.errors import FieldInvalid, ReferentialMissing
from app.portal.insert_gate import InsertGate
from app.portal.modules.products.models import Product
from app.portal.modules.products.service import find_product_for_type
from app.portal.utils import as_number
from app.portal.validators import (
    ensure,
    parse_number,
    validate_email,
    validate_gst,
    validate_location,
    validate_name,
    validate_numeric,
    validate_optional_phone,
    validate_phone,
    validate_website,
)

from .models import Manufacturer

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.portal.models import User


PRICES_KEY = "Product_Prices (Rs.)"
_PRICE_ITEM_RE = re.compile(r"(.+?):\s*(\d+)")

# (storage-format key, page-format key, column)
OPTIONAL_FIELDS = (
    ("email", "Email", "email"),
    ("gstNumber", "GST_Number", "gst_number"),
    ("website", "Website", "website"),
    ("contactPersonName", "Contact_Person_Name", "contact_person_name"),
    ("contactPersonPhone", "Contact_Person_Phone", "contact_person_phone"),
    ("contactPersonEmail", "Contact_Person_Email", "contact_person_email"),
    ("contactPersonDesignation", "Contact_Person_Designation", "contact_person_designation"),
)


def manufacturer_code(manufacturer_id: int) -> str:
    return f"M{manufacturer_id:03d}"


def parse_price_string(prices: str) -> dict[str, int]:
    """'W-Beam: 420, Thrie-Beam: 460' -> {'W-Beam': 420, 'Thrie-Beam': 460}"""
    price_map: dict[str, int] = {}
    for item in (prices or "").split(","):
        m = _PRICE_ITEM_RE.match(item.strip())
        if m:
            price_map[m.group(1).strip()] = int(m.group(2))
    return price_map


def parse_manufacturer_payload(body: dict) -> dict[str, Any]:
    if body.get("Manufacturer_Name"):
        product_types = [p.strip() for p in (body.get("Products_Offered") or "").split(",") if p.strip()]
        price_map = parse_price_string(body.get(PRICES_KEY) or "")
        data = {
            "name": body.get("Manufacturer_Name"),
            "location": body.get("Location"),
            "contact": body.get("Contact_Number"),
            "products_offered": [{"productType": t, "price": price_map.get(t, 0)} for t in product_types],
        }
        for _, page_key, column in OPTIONAL_FIELDS:
            data[column] = body.get(page_key) or ""
        return data

    data = {
        "name": body.get("name"),
        "location": body.get("location"),
        "contact": body.get("contact"),
        "products_offered": body.get("productsOffered") or body.get("products_offered") or [],
    }
    for body_key, _, column in OPTIONAL_FIELDS:
        data[column] = body.get(body_key) or ""
    return data


def _clean_offered(products_offered: Any) -> list[dict[str, Any]]:
    if not isinstance(products_offered, list) or not products_offered:
        raise FieldInvalid("At least one product must be provided")
    cleaned = []
    for item in products_offered:
        if not isinstance(item, dict):
            raise FieldInvalid("Each product must have productType and price")
        product_type = item.get("productType") or item.get("product_type")
        price = item.get("price")
        if not product_type or not price:
            raise FieldInvalid("Each product must have productType and price")
        ensure(validate_name(product_type, "Product type"))
        ensure(validate_numeric(price, "Product price", allow_zero=False, minimum=0.01))
        cleaned.append({"productType": product_type.strip(), "price": as_number(parse_number(price))})
    return cleaned


def _clean_optional(data: dict[str, Any]) -> None:
    ensure(validate_email(data["email"]))
    ensure(validate_gst(data["gst_number"]))
    ensure(validate_website(data["website"]))
    ensure(validate_optional_phone(data["contact_person_phone"], "Contact person phone"))
    ensure(validate_email(data["contact_person_email"]), "Contact person: ")


def clean_manufacturer(body: dict) -> dict[str, Any]:
    data = parse_manufacturer_payload(body)
    if not data["name"] or not data["location"] or not data["contact"]:
        raise FieldInvalid("Please provide name/Manufacturer_Name, location/Location, and contact/Contact_Number")

    ensure(validate_name(data["name"], "Manufacturer name"))
    ensure(validate_location(data["location"]))
    ensure(validate_phone(data["contact"]))
    offered = _clean_offered(data["products_offered"])
    _clean_optional(data)

    cleaned = {
        "name": data["name"].strip(),
        "location": data["location"].strip(),
        "contact": str(data["contact"]).strip(),
        "products_offered": offered,
    }
    for _, _, column in OPTIONAL_FIELDS:
        value = data[column]
        cleaned[column] = value.strip() if isinstance(value, str) else value
    if cleaned["gst_number"]:
        cleaned["gst_number"] = cleaned["gst_number"].upper()
    return cleaned


def check_offered_types(s: "Session", c: dict[str, Any]) -> None:
    products = s.query(Product).order_by(Product.id.asc()).all()
    for offered in c["products_offered"]:
        product_type = offered["productType"]
        if find_product_for_type(products, product_type) is None:
            raise ReferentialMissing(
                f'Invalid product. Product type "{product_type}" does not exist in the Products database. '
                "Please add this product in the Products page first.",
                value=product_type,
            )


def policy_record(m: Manufacturer) -> dict[str, Any]:
    return {
        "id": m.id,
        "name": m.name,
        "location": m.location,
        "contact": m.contact,
        "products_offered": list(m.products_offered or []),
    }


def load_manufacturer_peers(s: "Session") -> list[dict[str, Any]]:
    return [policy_record(m) for m in s.query(Manufacturer).order_by(Manufacturer.id.asc()).all()]


def persist_manufacturer(s: "Session", c: dict[str, Any], user: "User | None") -> Manufacturer:
    now = datetime.utcnow()
    manufacturer = Manufacturer(
        name=c["name"],
        location=c["location"],
        contact=c["contact"],
        products_offered=c["products_offered"],
        created_at=now,
        updated_at=now,
        created_by_user_id=user.id if user else None,
    )
    for _, _, column in OPTIONAL_FIELDS:
        setattr(manufacturer, column, c.get(column) or None)
    s.add(manufacturer)
    return manufacturer


def present_manufacturer(m: Manufacturer) -> dict[str, Any]:
    offered = m.products_offered or []
    types = [p.get("productType") or p.get("product_type") or "" for p in offered]
    out: dict[str, Any] = {
        "_id": m.id,
        "id": m.id,
        "Manufacturer_ID": manufacturer_code(m.id),
        "Manufacturer_Name": m.name,
        "Location": m.location,
        "Contact_Number": m.contact,
    }
    for _, page_key, column in OPTIONAL_FIELDS:
        out[page_key] = getattr(m, column) or ""
    out["Products_Offered"] = ", ".join(t for t in types if t)
    out[PRICES_KEY] = ", ".join(f"{t}: {as_number(p.get('price'))}" for t, p in zip(types, offered) if t)
    out["productsOffered"] = offered
    return out


MANUFACTURER_GATE = InsertGate(
    entity="Manufacturer",
    action="manufacturer.create",
    policy=MANUFACTURER_POLICY,
    clean=clean_manufacturer,
    check_references=check_offered_types,
    load_peers=load_manufacturer_peers,
    persist=persist_manufacturer,
    present=present_manufacturer,
)


def update_manufacturer(s: "Session", manufacturer: Manufacturer, body: dict, user: "User") -> Manufacturer:
    """Direct field replacement. The duplicate policy is not re-run on update."""
    changes: dict[str, Any] = {}

    def _set(column: str, value: Any) -> None:
        old = getattr(manufacturer, column)
        if value != old:
            changes[column] = {"old": old, "new": value}
            setattr(manufacturer, column, value)

    name = body.get("name", body.get("Manufacturer_Name"))
    if name is not None:
        ensure(validate_name(name, "Manufacturer name"))
        _set("name", name.strip())

    location = body.get("location", body.get("Location"))
    if location is not None:
        ensure(validate_location(location))
        _set("location", location.strip())

    contact = body.get("contact", body.get("Contact_Number"))
    if contact is not None:
        ensure(validate_phone(contact))
        _set("contact", str(contact).strip())

    offered = body.get("productsOffered", body.get("products_offered"))
    if offered is not None:
        _set("products_offered", _clean_offered(offered))

    for body_key, page_key, column in OPTIONAL_FIELDS:
        if body_key in body or page_key in body:
            value = body.get(body_key) if body_key in body else body.get(page_key)
            if isinstance(value, str):
                value = value.strip()
            _set(column, value or None)

    _clean_optional({column: getattr(manufacturer, column) or "" for _, _, column in OPTIONAL_FIELDS})

    manufacturer.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="manufacturer.edit",
        entity_type="Manufacturer",
        entity_id=str(manufacturer.id),
        metadata={"name": manufacturer.name, "changes": changes},
    )
    return manufacturer


def delete_manufacturer(s: "Session", manufacturer: Manufacturer, user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="manufacturer.delete",
        entity_type="Manufacturer",
        entity_id=str(manufacturer.id),
        metadata={"name": manufacturer.name},
    )
    s.delete(manufacturer)
