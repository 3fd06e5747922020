from __future__ import annotations

from flask import Blueprint, jsonify

from app.portal.db import commit_or_fail, db_session
from app.portal.rbac import require_permission
from app.portal.utils import current_user, get_or_404, request_payload

from .service import DIRECTORIES, Directory, create_partner, delete_partner, list_partners, present_partner, update_partner

bp = Blueprint("partners", __name__)


def _register(name: str, directory: Directory) -> None:
    label = directory.entity

    @require_permission(f"{name}.view")
    def list_view():
        s = db_session()
        return jsonify([present_partner(directory, o) for o in list_partners(s, directory)])

    @require_permission(f"{name}.create")
    def create_view():
        s = db_session()
        obj = create_partner(s, directory, request_payload(), current_user())
        commit_or_fail(s)
        return jsonify({"success": True, "data": present_partner(directory, obj)}), 201

    @require_permission(f"{name}.view")
    def detail_view(entity_id: int):
        s = db_session()
        obj = get_or_404(s, directory.model, entity_id, label)
        return jsonify(present_partner(directory, obj))

    @require_permission(f"{name}.edit")
    def update_view(entity_id: int):
        s = db_session()
        obj = get_or_404(s, directory.model, entity_id, label)
        update_partner(s, directory, obj, request_payload(), current_user())
        commit_or_fail(s)
        return jsonify({"success": True, "data": present_partner(directory, obj)})

    @require_permission(f"{name}.delete")
    def delete_view(entity_id: int):
        s = db_session()
        obj = get_or_404(s, directory.model, entity_id, label)
        delete_partner(s, directory, obj, current_user())
        commit_or_fail(s)
        return jsonify({"success": True, "message": f"{label} deleted successfully"})

    bp.add_url_rule(f"/{name}", f"{name}_list", list_view, methods=["GET"])
    bp.add_url_rule(f"/{name}", f"{name}_create", create_view, methods=["POST"])
    bp.add_url_rule(f"/{name}/<int:entity_id>", f"{name}_detail", detail_view, methods=["GET"])
    bp.add_url_rule(f"/{name}/<int:entity_id>", f"{name}_update", update_view, methods=["PUT"])
    bp.add_url_rule(f"/{name}/<int:entity_id>", f"{name}_delete", delete_view, methods=["DELETE"])


for _name, _directory in DIRECTORIES.items():
    _register(_name, _directory)
