from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.portal.db import commit_or_fail, db_session
from app.portal.rbac import require_permission
from app.portal.utils import current_user, get_or_404, request_payload

from .models import Order
from .pdf_client import PdfExtractionError
from .service import ORDER_GATE, delete_order, present_order

bp = Blueprint("orders", __name__)


@bp.get("/orders")
@require_permission("orders.view")
def orders_list():
    s = db_session()
    orders = s.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return jsonify([present_order(o) for o in orders])


@bp.post("/orders")
@require_permission("orders.create")
def orders_create():
    s = db_session()
    data = ORDER_GATE.run(s, request_payload(), current_user())
    return jsonify({"success": True, "data": data}), 201


@bp.delete("/orders/<int:order_id>")
@require_permission("orders.delete")
def order_delete(order_id: int):
    s = db_session()
    order = get_or_404(s, Order, order_id, "Order")
    delete_order(s, order, current_user())
    commit_or_fail(s)
    return jsonify({"success": True, "message": "Order deleted successfully"})


@bp.post("/orders/extract-pdf")
@require_permission("orders.create")
def orders_extract_pdf():
    f = request.files.get("file")
    if not f or not f.filename:
        return jsonify({"success": False, "message": "No PDF file provided"}), 400

    client = current_app.extensions["pdf_client"]
    try:
        data = client.extract(f.filename, f.read(), manufacturer_list=request.form.get("manufacturer_list"))
    except PdfExtractionError as e:
        current_app.logger.warning("PDF extraction failed for %s: %s", f.filename, e)
        return jsonify({"success": False, "message": str(e)}), 500
    return jsonify(data)
