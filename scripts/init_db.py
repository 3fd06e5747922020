import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from contextlib import contextmanager

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.portal.models import Permission, Role, User

# (key, name)
PERMISSIONS = [
    *[
        (f"{entity}.{verb}", f"{entity.capitalize()}: {verb}")
        for entity in ("products", "manufacturers", "orders", "tasks", "dealers", "importers", "customers")
        for verb in ("view", "create", "edit", "delete")
    ],
    ("tasks.update_status", "Tasks: post status update"),
    ("transport.estimate", "Transport: estimate cost"),
    ("chat.ask", "Assistant: ask"),
]

EMPLOYEE_PERMISSIONS = (
    "products.view",
    "manufacturers.view",
    "orders.view",
    "orders.create",
    "tasks.view",
    "tasks.update_status",
    "transport.estimate",
    "chat.ask",
)


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


def seed_access(s: Session) -> dict[str, Role]:
    """
    Idempotently create every permission plus the ``admin`` (all permissions)
    and ``employee`` roles. Returns the roles by key.
    """
    perms: dict[str, Permission] = {}
    for key, name in PERMISSIONS:
        p = s.query(Permission).filter(Permission.key == key).one_or_none()
        if not p:
            p = Permission(key=key, name=name)
            s.add(p)
        perms[key] = p

    def ensure_role(key: str, name: str, grants) -> Role:
        role = s.query(Role).filter(Role.key == key).one_or_none()
        if not role:
            role = Role(key=key, name=name)
            s.add(role)
        for perm_key in grants:
            if perms[perm_key] not in role.permissions:
                role.permissions.append(perms[perm_key])
        return role

    return {
        "admin": ensure_role("admin", "Administrator", perms.keys()),
        "employee": ensure_role("employee", "Employee", EMPLOYEE_PERMISSIONS),
    }


def ensure_user(s: Session, username: str, password: str, role: Role) -> User:
    """Create the user if missing. Does NOT overwrite an existing password."""
    user = s.query(User).filter(User.username == username).one_or_none()
    if not user:
        user = User(username=username, password_hash=generate_password_hash(password), is_active=True)
        s.add(user)
    if role not in user.roles:
        user.roles.append(role)
    return user


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_username = (os.environ.get("ADMIN_USERNAME") or "admin").strip()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///portal.db").strip()

    # Use direct engine/session so this can run in release without importing app.wsgi.
    with _session_scope(db_url) as s:
        roles = seed_access(s)
        ensure_user(s, admin_username, admin_password, roles["admin"])

    print("Initialized database (seed_only).")
    print(f"Admin username: {admin_username}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
