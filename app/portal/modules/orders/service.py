from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.portal.audit import record_event
from app.portal.duplicates import ORDER_POLICY
from app.portal.errors import FieldInvalid
from app.portal.insert_gate import InsertGate
from app.portal.validators import ensure, parse_number, validate_location, validate_name, validate_numeric

from .models import Order

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.portal.models import User


def clean_order(body: dict) -> dict[str, Any]:
    manufacturer = body.get("manufacturer")
    product = body.get("product")
    product_type = body.get("productType")
    quantity = body.get("quantity")
    from_location = body.get("fromLocation")
    to_location = body.get("toLocation")
    transport_cost = body.get("transportCost")
    product_cost = body.get("productCost")
    total_cost = body.get("totalCost")

    if (
        not manufacturer
        or not product
        or not product_type
        or not quantity
        or not from_location
        or not to_location
        or total_cost is None
    ):
        raise FieldInvalid("Please provide all required fields")

    ensure(validate_name(manufacturer, "Manufacturer"))
    ensure(validate_name(product, "Product"))
    ensure(validate_name(product_type, "Product type"))
    ensure(validate_numeric(quantity, "Quantity", allow_zero=False, minimum=0.01))
    ensure(validate_location(from_location), "From location: ")
    ensure(validate_location(to_location), "To location: ")

    if from_location.strip().lower() == to_location.strip().lower():
        raise FieldInvalid("From location and To location cannot be the same")

    if transport_cost is not None:
        ensure(validate_numeric(transport_cost, "Transport cost", allow_zero=True, minimum=0))
    if product_cost is not None:
        ensure(validate_numeric(product_cost, "Product cost", allow_zero=True, minimum=0))
    ensure(validate_numeric(total_cost, "Total cost", allow_zero=True, minimum=0))

    return {
        "manufacturer": manufacturer.strip(),
        "product": product.strip(),
        "product_type": product_type.strip(),
        "quantity": parse_number(quantity),
        "from_location": from_location.strip(),
        "to_location": to_location.strip(),
        "transport_cost": parse_number(transport_cost) or 0.0,
        "product_cost": parse_number(product_cost) or 0.0,
        "total_cost": parse_number(total_cost),
    }


def policy_record(o: Order) -> dict[str, Any]:
    return {
        "id": o.id,
        "manufacturer": o.manufacturer,
        "product": o.product,
        "product_type": o.product_type,
        "quantity": o.quantity,
        "from_location": o.from_location,
        "to_location": o.to_location,
        "total_cost": o.total_cost,
        "created_at": o.created_at,
    }


def load_order_peers(s: "Session") -> list[dict[str, Any]]:
    return [policy_record(o) for o in s.query(Order).order_by(Order.id.asc()).all()]


def persist_order(s: "Session", c: dict[str, Any], user: "User | None") -> Order:
    order = Order(
        manufacturer=c["manufacturer"],
        product=c["product"],
        product_type=c["product_type"],
        quantity=c["quantity"],
        from_location=c["from_location"],
        to_location=c["to_location"],
        transport_cost=c["transport_cost"],
        product_cost=c["product_cost"],
        total_cost=c["total_cost"],
        created_at=datetime.utcnow(),
        created_by_user_id=user.id if user else None,
    )
    s.add(order)
    return order


def present_order(o: Order) -> dict[str, Any]:
    created = o.created_at.isoformat() if o.created_at else None
    return {
        "_id": o.id,
        "id": o.id,
        "manufacturer": o.manufacturer,
        "product": o.product,
        "product_type": o.product_type,
        "productType": o.product_type,
        "quantity": o.quantity,
        "from_location": o.from_location,
        "fromLocation": o.from_location,
        "to_location": o.to_location,
        "toLocation": o.to_location,
        "transport_cost": o.transport_cost,
        "transportCost": o.transport_cost,
        "product_cost": o.product_cost,
        "productCost": o.product_cost,
        "total_cost": o.total_cost,
        "totalCost": o.total_cost,
        "created_at": created,
        "createdAt": created,
    }


ORDER_GATE = InsertGate(
    entity="Order",
    action="order.create",
    policy=ORDER_POLICY,
    clean=clean_order,
    load_peers=load_order_peers,
    persist=persist_order,
    present=present_order,
)


def delete_order(s: "Session", order: Order, user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="order.delete",
        entity_type="Order",
        entity_id=str(order.id),
        metadata={"manufacturer": order.manufacturer, "product": order.product, "quantity": order.quantity},
    )
    s.delete(order)
