from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from app.portal.rbac import require_permission
from app.portal.utils import request_payload

from .service import estimate

bp = Blueprint("transport", __name__)


@bp.post("/transport/estimate")
@require_permission("transport.estimate")
def transport_estimate():
    data = estimate(request_payload(), current_app.config["DEFAULT_RATE_PER_KM"])
    return jsonify({"success": True, "data": data})
