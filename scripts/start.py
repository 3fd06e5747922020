#!/usr/bin/env python3
"""
Container entrypoint: run the portal release, then hand the process to gunicorn.

Environment:
  PORT              listen port (default 8080)
  WEB_CONCURRENCY   gunicorn workers (default 2)
  GUNICORN_TIMEOUT  worker timeout in seconds (default 60; the order PDF
                    delegate call needs headroom)

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _bounded_int(environ, name: str, default: int, low: int, high: int) -> int:
    raw = (environ.get(name) or "").strip() or str(default)
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")
    return value


def gunicorn_argv(environ=None) -> list[str]:
    environ = os.environ if environ is None else environ
    port = _bounded_int(environ, "PORT", 8080, 1, 65535)
    workers = _bounded_int(environ, "WEB_CONCURRENCY", 2, 1, 32)
    timeout = _bounded_int(environ, "GUNICORN_TIMEOUT", 60, 10, 600)
    return [
        "gunicorn",
        "app.wsgi:app",
        "--bind", f"0.0.0.0:{port}",
        "--workers", str(workers),
        "--timeout", str(timeout),
        # one engine per worker; create_app() disposes the pool after fork
        "--preload",
        "--access-logfile", "-",
        "--error-logfile", "-",
    ]


def main() -> None:
    try:
        argv = gunicorn_argv()
    except ValueError as e:
        print(f"ERROR: {e}", flush=True)
        sys.exit(1)

    from scripts.release import run_release

    try:
        run_release()
    except Exception as e:
        print(f"Release failed: {e}", flush=True)
        sys.exit(1)

    print(f"=== portal serving on {argv[3]} ({argv[5]} workers) ===", flush=True)
    # exec so gunicorn becomes PID 1 and receives signals directly
    os.execvp("gunicorn", argv)


if __name__ == "__main__":
    main()
