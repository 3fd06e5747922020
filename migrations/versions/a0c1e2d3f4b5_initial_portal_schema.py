"""initial portal schema

Revision ID: a0c1e2d3f4b5
Revises:
Create Date: 2026-10-19 09:12:41.207133

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a0c1e2d3f4b5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    ]


def _partner_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_name", sa.String(160), nullable=False),
        sa.Column("business_type", sa.String(64), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="active"),
        sa.Column("country", sa.String(64), nullable=True),
        sa.Column("state", sa.String(64), nullable=True),
        sa.Column("city", sa.String(64), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("payment_terms", sa.String(128), nullable=True),
    ]


def _contact_person_columns() -> list[sa.Column]:
    return [
        sa.Column("contact_person_name", sa.String(160), nullable=True),
        sa.Column("contact_person_designation", sa.String(128), nullable=True),
        sa.Column("contact_person_phone", sa.String(32), nullable=True),
        sa.Column("contact_person_email", sa.String(255), nullable=True),
    ]


def _bank_columns() -> list[sa.Column]:
    return [
        sa.Column("bank_name", sa.String(128), nullable=True),
        sa.Column("bank_account_number", sa.String(64), nullable=True),
        sa.Column("bank_ifsc", sa.String(11), nullable=True),
    ]


def upgrade() -> None:
    """Create auth, audit, catalog, order, task and partner directory tables."""
    # Check if tables already exist (idempotent)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("username", sa.String(128), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "roles" not in existing_tables:
        op.create_table(
            "roles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("key", sa.String(64), nullable=False, unique=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "permissions" not in existing_tables:
        op.create_table(
            "permissions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("key", sa.String(128), nullable=False, unique=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        )

    if "role_permissions" not in existing_tables:
        op.create_table(
            "role_permissions",
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("permission_id", sa.Integer(), sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
        )

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_username", sa.String(128), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
        )

    if "products" not in existing_tables:
        op.create_table(
            "products",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(160), nullable=False),
            sa.Column("subtypes", JSONType, nullable=False),
            sa.Column("unit", sa.String(32), nullable=False),
            sa.Column("notes", sa.String(200), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_products_name", "products", ["name"])

    if "manufacturers" not in existing_tables:
        op.create_table(
            "manufacturers",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(160), nullable=False),
            sa.Column("location", sa.String(255), nullable=False),
            sa.Column("contact", sa.String(32), nullable=False),
            sa.Column("products_offered", JSONType, nullable=False),
            sa.Column("email", sa.String(255), nullable=True),
            sa.Column("gst_number", sa.String(15), nullable=True),
            sa.Column("website", sa.String(255), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            *_contact_person_columns(),
            *_timestamps(),
        )
        op.create_index("idx_manufacturers_name", "manufacturers", ["name"])

    if "orders" not in existing_tables:
        op.create_table(
            "orders",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("manufacturer", sa.String(160), nullable=False),
            sa.Column("product", sa.String(160), nullable=False),
            sa.Column("product_type", sa.String(160), nullable=False),
            sa.Column("quantity", sa.Float(), nullable=False),
            sa.Column("from_location", sa.String(255), nullable=False),
            sa.Column("to_location", sa.String(255), nullable=False),
            sa.Column("transport_cost", sa.Float(), nullable=False, server_default="0"),
            sa.Column("product_cost", sa.Float(), nullable=False, server_default="0"),
            sa.Column("total_cost", sa.Float(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        )
        op.create_index("idx_orders_created_at", "orders", ["created_at"])

    if "tasks" not in existing_tables:
        op.create_table(
            "tasks",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("assigned_to", sa.String(128), nullable=False),
            sa.Column("assigned_by", sa.String(128), nullable=True),
            sa.Column("date", sa.DateTime(), nullable=False),
            sa.Column("task_text", sa.Text(), nullable=False),
            sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
            sa.Column("status_update", sa.Text(), nullable=True),
            sa.Column("status_updated_at", sa.DateTime(), nullable=True),
            sa.Column("employee_status", sa.Text(), nullable=True),
            sa.Column("last_updated_on", sa.DateTime(), nullable=True),
            sa.Column("status_history", JSONType, nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_tasks_assigned_to", "tasks", ["assigned_to"])
        op.create_index("idx_tasks_date", "tasks", ["date"])

    if "dealers" not in existing_tables:
        op.create_table(
            "dealers",
            *_partner_columns(),
            sa.Column("gst_number", sa.String(15), nullable=True),
            sa.Column("pan_number", sa.String(10), nullable=True),
            sa.Column("establishment_year", sa.String(4), nullable=True),
            sa.Column("pin_code", sa.String(6), nullable=True),
            sa.Column("territory_covered", sa.String(255), nullable=True),
            sa.Column("mobile", sa.String(32), nullable=True),
            *_contact_person_columns(),
            sa.Column("products_offered", JSONType, nullable=False),
            sa.Column("brands_handled", sa.String(255), nullable=True),
            sa.Column("credit_limit", sa.Float(), nullable=True),
            *_bank_columns(),
            sa.Column("rating", sa.Float(), nullable=True),
            sa.Column("agreement_start_date", sa.Date(), nullable=True),
            sa.Column("agreement_end_date", sa.Date(), nullable=True),
            *_timestamps(),
        )

    if "importers" not in existing_tables:
        op.create_table(
            "importers",
            *_partner_columns(),
            sa.Column("iec_code", sa.String(10), nullable=True),
            sa.Column("products_offered", JSONType, nullable=False),
            sa.Column("countries_importing_from", sa.String(255), nullable=True),
            *_contact_person_columns(),
            *_bank_columns(),
            sa.Column("rating", sa.Float(), nullable=True),
            *_timestamps(),
        )

    if "customers" not in existing_tables:
        op.create_table(
            "customers",
            *_partner_columns(),
            sa.Column("contact_person", sa.String(160), nullable=True),
            sa.Column("designation", sa.String(128), nullable=True),
            sa.Column("mobile", sa.String(32), nullable=True),
            sa.Column("pin_code", sa.String(6), nullable=True),
            sa.Column("gst_number", sa.String(15), nullable=True),
            sa.Column("pan_number", sa.String(10), nullable=True),
            sa.Column("credit_limit", sa.Float(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
        )


def downgrade() -> None:
    """Drop tables in reverse order."""
    for table in (
        "customers",
        "importers",
        "dealers",
        "tasks",
        "orders",
        "manufacturers",
        "products",
        "audit_events",
        "role_permissions",
        "user_roles",
        "permissions",
        "roles",
        "users",
    ):
        op.drop_table(table)
