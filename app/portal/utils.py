from __future__ import annotations

from typing import Any, TypeVar

from flask import g, request
from sqlalchemy.orm import Session

from app.portal.errors import NotFound
from app.portal.models import User

T = TypeVar("T")


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def request_payload() -> dict[str, Any]:
    """JSON body, falling back to form fields for plain HTML form posts."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def get_or_404(s: Session, model: type[T], entity_id: int, label: str) -> T:
    obj = s.get(model, entity_id)
    if obj is None:
        raise NotFound(f"{label} not found")
    return obj


def as_number(value: Any) -> Any:
    """Render whole floats as ints (100.0 -> 100) for presentation strings."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
