from __future__ import annotations

import math
from typing import Any

from app.portal.errors import FieldInvalid
from app.portal.utils import as_number
from app.portal.validators import ensure, parse_number, validate_numeric

EARTH_RADIUS_KM = 6371


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> int:
    """Great-circle ("air") distance, rounded to whole kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = math.sin(d_lat / 2) ** 2 + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c)


def _coordinate(point: Any, label: str) -> tuple[float, float]:
    if not isinstance(point, dict):
        raise FieldInvalid(f"{label} coordinates are required")
    lat = parse_number(point.get("lat"))
    lng = parse_number(point.get("lng", point.get("lon")))
    if lat is None or lng is None or not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
        raise FieldInvalid(f"{label} coordinates are invalid")
    return lat, lng


def estimate(body: dict, default_rate_per_km: float) -> dict[str, Any]:
    """
    Transport cost for a route. A caller-supplied ``distanceKm`` is treated as road
    distance; otherwise the great-circle distance between ``from`` and ``to`` is used.
    """
    rate = body.get("ratePerKm")
    if rate in (None, ""):
        rate = default_rate_per_km
    ensure(validate_numeric(rate, "Rate per km", allow_zero=False, minimum=0.01))
    rate = parse_number(rate)

    distance = body.get("distanceKm")
    if distance not in (None, ""):
        ensure(validate_numeric(distance, "Distance", allow_zero=False, minimum=0.01))
        distance_km = parse_number(distance)
        distance_type = "road"
    elif body.get("from") is not None or body.get("to") is not None:
        lat1, lon1 = _coordinate(body.get("from"), "From location")
        lat2, lon2 = _coordinate(body.get("to"), "To location")
        distance_km = haversine_km(lat1, lon1, lat2, lon2)
        distance_type = "air"
    else:
        raise FieldInvalid("Please provide distanceKm or from/to coordinates")

    from_location = (body.get("fromLocation") or "").strip()
    to_location = (body.get("toLocation") or "").strip()
    if from_location and to_location and from_location.lower() == to_location.lower():
        raise FieldInvalid("From location and To location cannot be the same")

    return {
        "fromLocation": from_location or None,
        "toLocation": to_location or None,
        "distanceKm": as_number(distance_km),
        "distanceType": distance_type,
        "ratePerKm": as_number(rate),
        "transportCost": as_number(round(distance_km * rate, 2)),
    }
