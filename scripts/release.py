"""
Release phase for the portal: migrate, seed access, verify readiness.

Steps:
- Refuse a missing DATABASE_URL, and SQLite when ENV is production.
- ``alembic upgrade head``.
- Seed the permission catalog, the admin/employee roles and the admin account
  (existing passwords are left alone).
- Compare the live schema with the mapped tables and check that both roles
  carry permissions; any gap fails the release before gunicorn starts.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy import inspect
from sqlalchemy.orm import Session

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.portal.models import Base, Permission, Role, User
from scripts import init_db


@dataclass
class Readiness:
    missing_tables: list[str] = field(default_factory=list)
    role_permissions: dict[str, int] = field(default_factory=dict)
    permission_count: int = 0
    admin_present: bool = False

    @property
    def problems(self) -> list[str]:
        out = []
        if self.missing_tables:
            out.append("missing tables: " + ", ".join(self.missing_tables))
        for key in ("admin", "employee"):
            if not self.role_permissions.get(key):
                out.append(f"role '{key}' has no permissions")
        if not self.admin_present:
            out.append("admin account missing")
        return out


def release_database_url(environ=None) -> str:
    environ = os.environ if environ is None else environ
    db_url = (environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("Missing required environment variable DATABASE_URL.")
    env = (environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to release the portal on a sqlite DATABASE_URL in production.")
    return db_url


def migrate(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


def seed_portal_access(s: Session, admin_username: str, admin_password: str) -> dict[str, Role]:
    roles = init_db.seed_access(s)
    init_db.ensure_user(s, admin_username, admin_password, roles["admin"])
    s.flush()
    return roles


def check_readiness(s: Session, admin_username: str) -> Readiness:
    live = set(inspect(s.get_bind()).get_table_names())
    report = Readiness(missing_tables=sorted(set(Base.metadata.tables) - live))
    if report.missing_tables:
        return report

    report.permission_count = s.query(Permission).count()
    for role in s.query(Role).filter(Role.key.in_(("admin", "employee"))).all():
        report.role_permissions[role.key] = len(role.permissions)
    report.admin_present = (
        s.query(User).filter(User.username == admin_username, User.is_active.is_(True)).one_or_none() is not None
    )
    return report


def run_release(environ=None) -> Readiness:
    environ = os.environ if environ is None else environ
    db_url = release_database_url(environ)
    admin_username = (environ.get("ADMIN_USERNAME") or "admin").strip()
    admin_password = environ.get("ADMIN_PASSWORD") or "change-me"

    print("=== portal release ===", flush=True)
    migrate(db_url)
    print("Schema at head.", flush=True)

    with init_db._session_scope(db_url) as s:
        seed_portal_access(s, admin_username, admin_password)
        report = check_readiness(s, admin_username)

    if report.problems:
        raise RuntimeError("Portal not ready: " + "; ".join(report.problems))

    print(
        f"Ready: {len(Base.metadata.tables)} tables, {report.permission_count} permissions, "
        f"admin={report.role_permissions['admin']} employee={report.role_permissions['employee']} grants, "
        f"admin user '{admin_username}'.",
        flush=True,
    )
    return report


def main() -> None:
    run_release()


if __name__ == "__main__":
    main()
