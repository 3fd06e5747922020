from __future__ import annotations

import uuid

from flask import Blueprint, current_app, g, jsonify, request, session

from werkzeug.security import check_password_hash

from app.portal.audit import record_event
from app.portal.db import db_session
from app.portal.models import User

bp = Blueprint("auth", __name__)


def _request_data() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
        if not user or not user.is_active:
            session.pop("user_id", None)
            g.current_user = None
            return
        g.current_user = user
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        g.current_user = None


def _user_payload(user: User) -> dict:
    return {"id": user.id, "username": user.username, "role": user.primary_role}


@bp.post("/login")
def login_post():
    data = _request_data()
    username = (data.get("username") or "").strip()
    password = data.get("password") or ""
    ip = request.remote_addr or "unknown"

    limiter = current_app.extensions["rate_limiters"]["login"]
    decision = limiter.check(ip)
    if not decision.allowed:
        return jsonify({"success": False, "message": "Too many login attempts. " + decision.message}), 429

    try:
        s = db_session()
        user = s.query(User).filter(User.username == username).one_or_none()
        if not user or not user.is_active or not check_password_hash(user.password_hash, password):
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="User",
                entity_id=username,
                reason="Invalid credentials",
                metadata={"username": username},
            )
            s.commit()
            return jsonify({"success": False, "message": "Invalid credentials"}), 401

        session["user_id"] = user.id
        limiter.reset(ip)
        limiter.evict_idle()
        record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
        s.commit()
        return jsonify({"success": True, "user": _user_payload(user)})
    except Exception:
        current_app.logger.exception("Login POST crashed (username=%s request_id=%s)", username, getattr(g, "request_id", None))
        raise


@bp.get("/logout")
def logout():
    s = db_session()
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.pop("user_id", None)
    return jsonify({"success": True})


@bp.get("/me")
def me():
    user = getattr(g, "current_user", None)
    if not user:
        return jsonify({"success": False, "message": "Not authorized, please log in"}), 401
    return jsonify({"success": True, "user": _user_payload(user)})
