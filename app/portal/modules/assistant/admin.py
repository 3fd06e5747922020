from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from app.portal.db import db_session
from app.portal.rbac import require_permission
from app.portal.utils import current_user, request_payload

from .service import Responder, cached_context, is_question_relevant, render_context

bp = Blueprint("assistant", __name__)

OFF_TOPIC_ANSWER = (
    "I can only answer questions related to YNM Safety Portal data such as products, manufacturers, "
    "orders, tasks, and transport."
)


@bp.post("/chatbot")
@require_permission("chat.ask")
def chatbot_ask():
    question = request_payload().get("question")
    if not isinstance(question, str) or not question.strip():
        return jsonify({"success": False, "answer": "Please provide a valid question."}), 400
    question = question.strip()

    user = current_user()
    decision = current_app.extensions["rate_limiters"]["chat"].check(user.id)
    if not decision.allowed:
        current_app.logger.info("Chat rate limit exceeded for user %s", user.username)
        return jsonify({"success": False, "answer": decision.message}), 429

    if not is_question_relevant(question):
        return jsonify({"success": False, "answer": OFF_TOPIC_ANSWER}), 400

    responder: Responder | None = current_app.extensions.get("chat_responder")
    if responder is None:
        return jsonify({"success": False, "answer": "The assistant is not configured."}), 503

    context = render_context(cached_context(db_session(), current_app.extensions["chat_context_cache"]))
    try:
        answer = responder(question, context)
    except Exception as e:
        current_app.logger.exception("Chat responder failed")
        return jsonify({"success": False, "answer": f"Sorry, I encountered an error: {e}"}), 500
    return jsonify({"success": True, "answer": answer})
