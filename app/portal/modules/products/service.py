"""
Product catalog service: payload parsing, validation, presentation and the
create gate.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.portal.audit import record_event
from app.portal.duplicates import PRODUCT_POLICY
from app.portal.errors import FieldInvalid
from app.portal.insert_gate import InsertGate
from app.portal.matching import contains_normalized
from app.portal.validators import ensure, validate_name, validate_notes, validate_unit

from .models import Product

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.portal.models import User


def product_code(product_id: int) -> str:
    return f"P{product_id:03d}"


def parse_product_payload(body: dict) -> dict[str, Any]:
    """Accept the page format (Product_Name/Sub_Type/Unit/Notes) or the storage format."""
    if body.get("Product_Name"):
        sub_type = body.get("Sub_Type")
        return {
            "name": body.get("Product_Name"),
            "subtypes": [sub_type] if sub_type else [],
            "unit": body.get("Unit"),
            "notes": body.get("Notes") or "",
        }
    return {
        "name": body.get("name"),
        "subtypes": body.get("subtypes") or [],
        "unit": body.get("unit"),
        "notes": body.get("notes") or "",
    }


def clean_product(body: dict) -> dict[str, Any]:
    data = parse_product_payload(body)
    if not data["name"] or not data["unit"]:
        raise FieldInvalid("Please provide name/Product_Name and unit/Unit")

    ensure(validate_name(data["name"], "Product name"))
    ensure(validate_unit(data["unit"]))

    subtypes = data["subtypes"]
    if isinstance(subtypes, str):
        subtypes = [subtypes]
    if not isinstance(subtypes, list) or not subtypes:
        raise FieldInvalid("At least one product type (subtype) must be provided")
    for subtype in subtypes:
        ensure(validate_name(subtype, "Product type"))

    ensure(validate_notes(data["notes"]))

    return {
        "name": data["name"].strip(),
        "subtypes": [st.strip() for st in subtypes],
        "unit": data["unit"].strip(),
        "notes": data["notes"].strip() if isinstance(data["notes"], str) else "",
    }


def policy_record(p: Product) -> dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "subtypes": list(p.subtypes or []),
        "unit": p.unit,
    }


def load_product_peers(s: "Session") -> list[dict[str, Any]]:
    return [policy_record(p) for p in s.query(Product).order_by(Product.id.asc()).all()]


def find_product_for_type(products: list[Product], product_type: str) -> Product | None:
    """First catalog product with a subtype containing ``product_type`` (normalized)."""
    for p in products:
        for subtype in p.subtypes or []:
            if contains_normalized(subtype, product_type):
                return p
    return None


def persist_product(s: "Session", c: dict[str, Any], user: "User | None") -> Product:
    now = datetime.utcnow()
    product = Product(
        name=c["name"],
        subtypes=c["subtypes"],
        unit=c["unit"],
        notes=c["notes"] or None,
        created_at=now,
        updated_at=now,
        created_by_user_id=user.id if user else None,
    )
    s.add(product)
    return product


def present_product(p: Product, sub_type: str | None = None) -> dict[str, Any]:
    subtypes = p.subtypes or []
    if sub_type is None:
        sub_type = subtypes[0] if subtypes else p.name
    return {
        "_id": p.id,
        "id": p.id,
        "Product_ID": product_code(p.id),
        "Product_Name": p.name,
        "Sub_Type": sub_type,
        "Unit": p.unit,
        "Notes": p.notes or "",
    }


def present_product_rows(p: Product) -> list[dict[str, Any]]:
    """One row per subtype, as the catalog table lists them."""
    subtypes = p.subtypes or []
    if not subtypes:
        return [present_product(p, p.name)]
    return [present_product(p, st) for st in subtypes]


PRODUCT_GATE = InsertGate(
    entity="Product",
    action="product.create",
    policy=PRODUCT_POLICY,
    clean=clean_product,
    load_peers=load_product_peers,
    persist=persist_product,
    present=present_product,
)


def update_product(s: "Session", product: Product, body: dict, user: "User") -> Product:
    """Direct field replacement; duplicate detection only runs on create."""
    changes: dict[str, Any] = {}
    sub_type = body.get("Sub_Type")
    data = {
        "name": body.get("name", body.get("Product_Name")),
        "subtypes": body["subtypes"] if "subtypes" in body else ([sub_type] if sub_type else []),
        "unit": body.get("unit", body.get("Unit")),
        "notes": body.get("notes", body.get("Notes")),
    }

    if "name" in body or "Product_Name" in body:
        ensure(validate_name(data["name"], "Product name"))
        new_name = data["name"].strip()
        if new_name != product.name:
            changes["name"] = {"old": product.name, "new": new_name}
            product.name = new_name

    if "subtypes" in body or "Sub_Type" in body:
        subtypes = data["subtypes"]
        if isinstance(subtypes, str):
            subtypes = [subtypes]
        if not isinstance(subtypes, list) or not subtypes:
            raise FieldInvalid("At least one product type (subtype) must be provided")
        for subtype in subtypes:
            ensure(validate_name(subtype, "Product type"))
        new_subtypes = [st.strip() for st in subtypes]
        if new_subtypes != list(product.subtypes or []):
            changes["subtypes"] = {"old": product.subtypes, "new": new_subtypes}
            product.subtypes = new_subtypes

    if "unit" in body or "Unit" in body:
        ensure(validate_unit(data["unit"]))
        new_unit = data["unit"].strip()
        if new_unit != product.unit:
            changes["unit"] = {"old": product.unit, "new": new_unit}
            product.unit = new_unit

    if "notes" in body or "Notes" in body:
        ensure(validate_notes(data["notes"]))
        new_notes = (data["notes"] or "").strip() or None
        if new_notes != product.notes:
            changes["notes"] = {"old": product.notes, "new": new_notes}
            product.notes = new_notes

    product.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="product.edit",
        entity_type="Product",
        entity_id=str(product.id),
        metadata={"name": product.name, "changes": changes},
    )
    return product


def delete_product(s: "Session", product: Product, user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="product.delete",
        entity_type="Product",
        entity_id=str(product.id),
        metadata={"name": product.name, "subtypes": product.subtypes},
    )
    s.delete(product)
