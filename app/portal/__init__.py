import logging
import os
from datetime import timedelta

from flask import Flask, g, jsonify, request, session
from dotenv import load_dotenv

from app.portal.auth import bp as auth_bp, load_current_user
from app.portal.config import load_config
from app.portal.db import init_db, teardown_db_session
from app.portal.errors import PortalError
from app.portal.modules.assistant.admin import bp as assistant_bp
from app.portal.modules.manufacturers.admin import bp as manufacturers_bp
from app.portal.modules.orders.admin import bp as orders_bp
from app.portal.modules.orders.pdf_client import PdfExtractionClient
from app.portal.modules.partners.admin import bp as partners_bp
from app.portal.modules.products.admin import bp as products_bp
from app.portal.modules.tasks.admin import bp as tasks_bp
from app.portal.modules.transport.admin import bp as transport_bp
from app.portal.routes import bp as routes_bp
from app.portal.throttle import RateLimiter, TTLCache


def _init_services(app: Flask) -> None:
    """Process-lifetime collaborators; handlers read them from app.extensions."""
    app.extensions["rate_limiters"] = {
        "login": RateLimiter(app.config["LOGIN_RATE_LIMIT"], app.config["LOGIN_RATE_WINDOW"]),
        "chat": RateLimiter(
            app.config["CHAT_RATE_LIMIT"],
            app.config["CHAT_RATE_WINDOW"],
            cooldown_seconds=app.config["CHAT_RATE_COOLDOWN"],
        ),
    }
    app.extensions["chat_context_cache"] = TTLCache(app.config["CHAT_CONTEXT_TTL"])
    app.extensions["pdf_client"] = PdfExtractionClient(
        base_url=app.config["PDF_SERVICE_URL"],
        timeout_seconds=app.config["PDF_SERVICE_TIMEOUT"],
    )
    app.extensions.setdefault("chat_responder", None)


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()
    _init_services(app)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    for bp in (products_bp, manufacturers_bp, orders_bp, tasks_bp, partners_bp, transport_bp, assistant_bp):
        app.register_blueprint(bp, url_prefix="/api")

    @app.before_request
    def _load_user_wrapper():
        if request.path.startswith(("/health", "/healthz")):
            g.current_user = None
            return None
        session.permanent = True
        return load_current_user()

    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(PortalError)
    def _portal_error(e: PortalError):
        if e.status_code >= 500:
            app.logger.error("%s (request_id=%s): %s", type(e).__name__, getattr(g, "request_id", None), e.message)
        else:
            app.logger.info("%s on %s %s: %s", type(e).__name__, request.method, request.path, e.message)
        return jsonify(e.payload()), e.status_code

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        return jsonify({"success": False, "message": "Forbidden", "missing_permission": missing}), 403

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return jsonify({"success": False, "message": "Route not found"}), 404

    @app.errorhandler(405)
    def _err_405(e):  # type: ignore[no-redef]
        return jsonify({"success": False, "message": "Method not allowed"}), 405

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        return jsonify({"success": False, "message": "File too large. Maximum size is 10MB."}), 413

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"success": False, "message": "Internal server error"}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
