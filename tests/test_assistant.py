import pytest

from app.portal import create_app
from app.portal.db import session_scope
from app.portal.models import Base
from app.portal.modules.assistant.service import is_question_relevant, render_context
from app.portal.throttle import RateLimiter
from scripts.init_db import ensure_user, seed_access


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")

    app = create_app()

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        roles = seed_access(s)
        ensure_user(s, "admin", "pw", roles["admin"])
        ensure_user(s, "ravi", "pw", roles["employee"])

    return app.test_client()


def _login(client, username="ravi"):
    client.get("/auth/logout")
    r = client.post("/auth/login", json={"username": username, "password": "pw"})
    assert r.status_code == 200


def test_question_filter():
    assert is_question_relevant("Which manufacturer has the lowest W-Beam price?")
    assert is_question_relevant("How many ORDERS went to Nagpur?")
    assert not is_question_relevant("What is the weather tomorrow?")
    assert not is_question_relevant(None)


def test_render_context_truncates():
    text = render_context({"products": [{"name": "x" * 50}]}, max_chars=20)
    assert len(text) == 20 + len("... (truncated)")
    assert text.endswith("... (truncated)")


def test_chatbot_requires_question_and_responder(client):
    _login(client)
    r = client.post("/api/chatbot", json={"question": "   "})
    assert r.status_code == 400
    assert r.json["answer"] == "Please provide a valid question."

    r = client.post("/api/chatbot", json={"question": "Tell me a joke"})
    assert r.status_code == 400
    assert r.json["answer"].startswith("I can only answer questions related to YNM Safety Portal data")

    r = client.post("/api/chatbot", json={"question": "List all products"})
    assert r.status_code == 503
    assert r.json == {"success": False, "answer": "The assistant is not configured."}


def test_chatbot_answers_from_cached_context(client):
    _login(client, "admin")
    client.post("/api/products", json={"name": "Crash Barrier", "subtypes": ["W-Beam"], "unit": "m"})

    seen = []

    def responder(question, context):
        seen.append(context)
        return f"Answering: {question}"

    client.application.extensions["chat_responder"] = responder

    r = client.post("/api/chatbot", json={"question": "Which products do we stock?"})
    assert r.status_code == 200
    assert r.json == {"success": True, "answer": "Answering: Which products do we stock?"}
    assert "Crash Barrier" in seen[0]

    client.post("/api/products", json={"name": "Road Stud", "subtypes": ["Solar"], "unit": "pcs"})
    client.post("/api/chatbot", json={"question": "Any new products?"})
    assert "Road Stud" not in seen[1]


def test_chatbot_responder_failure(client):
    _login(client)

    def responder(question, context):
        raise RuntimeError("upstream timeout")

    client.application.extensions["chat_responder"] = responder
    r = client.post("/api/chatbot", json={"question": "Summarise pending tasks"})
    assert r.status_code == 500
    assert r.json["answer"] == "Sorry, I encountered an error: upstream timeout"


def test_chatbot_rate_limit(client):
    _login(client)
    client.application.extensions["chat_responder"] = lambda question, context: "ok"
    client.application.extensions["rate_limiters"]["chat"] = RateLimiter(2, 60, cooldown_seconds=300)

    assert client.post("/api/chatbot", json={"question": "order count?"}).status_code == 200
    assert client.post("/api/chatbot", json={"question": "order count?"}).status_code == 200
    r = client.post("/api/chatbot", json={"question": "order count?"})
    assert r.status_code == 429
    assert "Maximum 2 requests per 60 seconds" in r.json["answer"]

    # limits are per user
    _login(client, "admin")
    assert client.post("/api/chatbot", json={"question": "order count?"}).status_code == 200
