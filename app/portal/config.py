import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    pdf_service_url: str
    pdf_service_timeout: int

    chat_rate_limit: int
    chat_rate_window: int
    chat_rate_cooldown: int
    chat_context_ttl: int

    login_rate_limit: int
    login_rate_window: int

    default_rate_per_km: float


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _getfloat(name: str, default: float) -> float:
    raw = _getenv(name, str(default))
    try:
        return float(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///portal.db"),
        pdf_service_url=_getenv("PDF_SERVICE_URL", "http://localhost:5001"),
        pdf_service_timeout=_getint("PDF_SERVICE_TIMEOUT", 60),
        chat_rate_limit=_getint("CHAT_RATE_LIMIT", 10),
        chat_rate_window=_getint("CHAT_RATE_WINDOW", 60),
        chat_rate_cooldown=_getint("CHAT_RATE_COOLDOWN", 300),
        chat_context_ttl=_getint("CHAT_CONTEXT_TTL", 300),
        login_rate_limit=_getint("LOGIN_RATE_LIMIT", 5),
        login_rate_window=_getint("LOGIN_RATE_WINDOW", 300),
        default_rate_per_km=_getfloat("DEFAULT_RATE_PER_KM", 10.0),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "PDF_SERVICE_URL": s.pdf_service_url,
        "PDF_SERVICE_TIMEOUT": s.pdf_service_timeout,
        "CHAT_RATE_LIMIT": s.chat_rate_limit,
        "CHAT_RATE_WINDOW": s.chat_rate_window,
        "CHAT_RATE_COOLDOWN": s.chat_rate_cooldown,
        "CHAT_CONTEXT_TTL": s.chat_context_ttl,
        "LOGIN_RATE_LIMIT": s.login_rate_limit,
        "LOGIN_RATE_WINDOW": s.login_rate_window,
        "DEFAULT_RATE_PER_KM": s.default_rate_per_km,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # PDF uploads for order extraction (10MB)
        "MAX_CONTENT_LENGTH": 10 * 1024 * 1024,
    }
