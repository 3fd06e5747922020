from __future__ import annotations

from flask import Blueprint, jsonify

from app.portal.db import commit_or_fail, db_session
from app.portal.rbac import require_permission
from app.portal.utils import current_user, get_or_404, request_payload

from .models import Manufacturer
from .service import MANUFACTURER_GATE, delete_manufacturer, present_manufacturer, update_manufacturer

bp = Blueprint("manufacturers", __name__)


@bp.get("/manufacturers")
@require_permission("manufacturers.view")
def manufacturers_list():
    s = db_session()
    manufacturers = s.query(Manufacturer).order_by(Manufacturer.name.asc()).all()
    return jsonify([present_manufacturer(m) for m in manufacturers])


@bp.post("/manufacturers")
@require_permission("manufacturers.create")
def manufacturers_create():
    s = db_session()
    data = MANUFACTURER_GATE.run(s, request_payload(), current_user())
    return jsonify({"success": True, "data": data}), 201


@bp.put("/manufacturers/<int:manufacturer_id>")
@require_permission("manufacturers.edit")
def manufacturer_update(manufacturer_id: int):
    s = db_session()
    manufacturer = get_or_404(s, Manufacturer, manufacturer_id, "Manufacturer")
    update_manufacturer(s, manufacturer, request_payload(), current_user())
    commit_or_fail(s)
    return jsonify({"success": True, "data": present_manufacturer(manufacturer)})


@bp.delete("/manufacturers/<int:manufacturer_id>")
@require_permission("manufacturers.delete")
def manufacturer_delete(manufacturer_id: int):
    s = db_session()
    manufacturer = get_or_404(s, Manufacturer, manufacturer_id, "Manufacturer")
    delete_manufacturer(s, manufacturer, current_user())
    commit_or_fail(s)
    return jsonify({"success": True, "message": "Manufacturer deleted successfully"})
