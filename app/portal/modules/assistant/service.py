"""
Portal assistant: question filter and the data summary handed to the responder.

The language-model call itself lives outside the portal. ``create_app()`` (or a
deployment hook) places a ``responder(question, context) -> str`` callable on
``app.extensions["chat_responder"]``.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from app.portal.modules.manufacturers.models import Manufacturer
from app.portal.modules.orders.models import Order
from app.portal.modules.products.models import Product
from app.portal.modules.tasks.models import Task

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.portal.throttle import TTLCache

logger = logging.getLogger(__name__)

Responder = Callable[[str, str], str]

ALLOWED_KEYWORDS = (
    "product", "products", "manufacturer", "manufacturers", "company", "companies",
    "order", "orders", "purchase", "purchases", "task", "tasks", "assignment",
    "transport", "route", "routes", "location", "locations", "city", "cities",
    "price", "pricing", "cost", "costs", "ynm", "safety", "portal", "barrier",
    "crash", "paint", "thermoplastic", "signage", "signages", "employee", "admin",
    "quantity", "delivery", "shipment", "supplier", "suppliers",
)

CONTEXT_CACHE_KEY = "portal"
MAX_CONTEXT_CHARS = 4000
RECENT_LIMIT = 20


def is_question_relevant(question: Any) -> bool:
    if not isinstance(question, str):
        return False
    lowered = question.lower()
    return any(k in lowered for k in ALLOWED_KEYWORDS)


def _iso(value: Any) -> Any:
    return value.isoformat() if value is not None else None


def build_context(s: "Session") -> dict[str, Any]:
    products = s.query(Product).order_by(Product.id.asc()).all()
    manufacturers = s.query(Manufacturer).order_by(Manufacturer.id.asc()).all()
    orders = s.query(Order).order_by(Order.created_at.desc()).limit(RECENT_LIMIT).all()
    tasks = s.query(Task).order_by(Task.created_at.desc()).limit(RECENT_LIMIT).all()
    return {
        "products": [{"name": p.name, "subtypes": p.subtypes, "unit": p.unit, "notes": p.notes} for p in products],
        "manufacturers": [
            {"name": m.name, "location": m.location, "contact": m.contact, "productsOffered": m.products_offered or []}
            for m in manufacturers
        ],
        "orders": [
            {
                "manufacturer": o.manufacturer,
                "product": o.product,
                "productType": o.product_type,
                "quantity": o.quantity,
                "fromLocation": o.from_location,
                "toLocation": o.to_location,
                "transportCost": o.transport_cost,
                "productCost": o.product_cost,
                "totalCost": o.total_cost,
                "createdAt": _iso(o.created_at),
            }
            for o in orders
        ],
        "tasks": [
            {
                "taskText": t.task_text,
                "assignedTo": t.assigned_to,
                "date": _iso(t.date),
                "status": t.status,
                "statusUpdate": t.status_update or "",
                "createdAt": _iso(t.created_at),
            }
            for t in tasks
        ],
    }


def cached_context(s: "Session", cache: "TTLCache") -> dict[str, Any]:
    def _load() -> dict[str, Any]:
        logger.info("Building fresh assistant context")
        return build_context(s)

    return cache.get_or_load(CONTEXT_CACHE_KEY, _load)


def render_context(context: dict[str, Any], max_chars: int = MAX_CONTEXT_CHARS) -> str:
    text = json.dumps(context, indent=2, default=str)
    if len(text) > max_chars:
        logger.info("Assistant context truncated from %d to %d characters", len(text), max_chars)
        text = text[:max_chars] + "... (truncated)"
    return text
