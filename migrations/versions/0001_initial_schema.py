"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


_ENUMS = {
    "cs_classification_enum": ("normal", "alerta", "critico", "encerrado"),
    "client_status_enum": ("active", "onboarding", "paused", "churned"),
    "week_day_enum": ("segunda", "terca", "quarta", "quinta", "sexta"),
    "task_kind_enum": ("ads", "comercial", "department", "onboarding"),
    "task_status_enum": ("todo", "doing", "done"),
    "task_priority_enum": ("low", "medium", "high"),
    "okr_type_enum": ("annual", "weekly"),
    "okr_status_enum": ("active", "completed", "archived"),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*_ENUMS[name], name=name, create_type=False)


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # --- ENUM types ---
    for name, values in _ENUMS.items():
        sa.Enum(*values, name=name).create(op.get_bind(), checkfirst=True)

    # --- organization_groups ---
    op.create_table(
        "organization_groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_organization_groups_id", "organization_groups", ["id"])

    # --- profiles ---
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("email", sa.String(256), nullable=False),
        sa.Column("role", sa.String(64), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("password_hash", sa.String(256), nullable=True),
        sa.Column("api_token", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["organization_groups.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_profiles_id", "profiles", ["id"])
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)
    op.create_index("ix_profiles_role", "profiles", ["role"])
    op.create_index("ix_profiles_group_id", "profiles", ["group_id"])
    op.create_index("ix_profiles_api_token", "profiles", ["api_token"], unique=True)

    # --- clients ---
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("client_label", sa.String(32), nullable=True),
        sa.Column("cs_classification", _enum("cs_classification_enum"), nullable=False),
        sa.Column("cs_classification_reason", sa.Text(), nullable=True),
        sa.Column("last_cs_contact_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", _enum("client_status_enum"), nullable=False),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_ads_manager", sa.Integer(), nullable=True),
        sa.Column("assigned_comercial", sa.Integer(), nullable=True),
        sa.Column("monthly_value", sa.Numeric(14, 2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clients_id", "clients", ["id"])
    op.create_index("ix_clients_archived", "clients", ["archived"])
    op.create_index("ix_clients_assigned_ads_manager", "clients", ["assigned_ads_manager"])
    op.create_index("ix_clients_assigned_comercial", "clients", ["assigned_comercial"])

    # --- client_daily_tracking ---
    op.create_table(
        "client_daily_tracking",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("manager_id", sa.Integer(), nullable=False),
        sa.Column("current_day", _enum("week_day_enum"), nullable=False),
        sa.Column("last_moved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_delayed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("justification", sa.Text(), nullable=True),
        sa.Column("justification_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("client_id", "manager_id", name="uq_tracking_client_manager"),
    )
    op.create_index("ix_client_daily_tracking_id", "client_daily_tracking", ["id"])
    op.create_index("ix_client_daily_tracking_client_id", "client_daily_tracking", ["client_id"])
    op.create_index("ix_client_daily_tracking_manager_id", "client_daily_tracking", ["manager_id"])

    # --- tasks ---
    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("kind", _enum("task_kind_enum"), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("assignee_id", sa.Integer(), nullable=True),
        sa.Column("related_client_id", sa.Integer(), nullable=True),
        sa.Column("status", _enum("task_status_enum"), nullable=False),
        sa.Column("priority", _enum("task_priority_enum"), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("justification", sa.Text(), nullable=True),
        sa.Column("justification_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("milestone", sa.Integer(), nullable=True),
        sa.Column("task_type", sa.String(64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_id", "tasks", ["id"])
    op.create_index("ix_tasks_kind", "tasks", ["kind"])
    op.create_index("ix_tasks_assignee_id", "tasks", ["assignee_id"])
    op.create_index("ix_tasks_related_client_id", "tasks", ["related_client_id"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])

    # --- okrs ---
    op.create_table(
        "okrs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", _enum("okr_type_enum"), nullable=False),
        sa.Column("target_value", sa.Numeric(14, 2), nullable=True),
        sa.Column("current_value", sa.Numeric(14, 2), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("status", _enum("okr_status_enum"), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_okrs_id", "okrs", ["id"])
    op.create_index("ix_okrs_type", "okrs", ["type"])
    op.create_index("ix_okrs_status", "okrs", ["status"])

    # --- client_contracts ---
    op.create_table(
        "client_contracts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("signed_at", sa.Date(), nullable=True),
        sa.Column("expires_at", sa.Date(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_client_contracts_id", "client_contracts", ["id"])
    op.create_index("ix_client_contracts_client_id", "client_contracts", ["client_id"], unique=True)

    # --- client_product_values ---
    op.create_table(
        "client_product_values",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("product_slug", sa.String(64), nullable=False),
        sa.Column("monthly_value", sa.Numeric(14, 2), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("client_id", "product_slug", name="uq_client_product_slug"),
    )
    op.create_index("ix_client_product_values_id", "client_product_values", ["id"])
    op.create_index("ix_client_product_values_client_id", "client_product_values", ["client_id"])


def downgrade() -> None:
    op.drop_table("client_product_values")
    op.drop_table("client_contracts")
    op.drop_table("okrs")
    op.drop_table("tasks")
    op.drop_table("client_daily_tracking")
    op.drop_table("clients")
    op.drop_table("profiles")
    op.drop_table("organization_groups")
    for name in reversed(list(_ENUMS)):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
