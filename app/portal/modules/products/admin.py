from __future__ import annotations

from flask import Blueprint, jsonify

from app.portal.db import commit_or_fail, db_session
from app.portal.rbac import require_permission
from app.portal.utils import current_user, get_or_404, request_payload

from .models import Product
from .service import PRODUCT_GATE, delete_product, present_product, present_product_rows, update_product

bp = Blueprint("products", __name__)


@bp.get("/products")
@require_permission("products.view")
def products_list():
    s = db_session()
    rows = []
    for product in s.query(Product).order_by(Product.name.asc()).all():
        rows.extend(present_product_rows(product))
    return jsonify(rows)


@bp.post("/products")
@require_permission("products.create")
def products_create():
    s = db_session()
    data = PRODUCT_GATE.run(s, request_payload(), current_user())
    return jsonify({"success": True, "data": data}), 201


@bp.put("/products/<int:product_id>")
@require_permission("products.edit")
def product_update(product_id: int):
    s = db_session()
    product = get_or_404(s, Product, product_id, "Product")
    update_product(s, product, request_payload(), current_user())
    commit_or_fail(s)
    return jsonify({"success": True, "data": present_product(product)})


@bp.delete("/products/<int:product_id>")
@require_permission("products.delete")
def product_delete(product_id: int):
    s = db_session()
    product = get_or_404(s, Product, product_id, "Product")
    delete_product(s, product, current_user())
    commit_or_fail(s)
    return jsonify({"success": True, "message": "Product deleted successfully"})
