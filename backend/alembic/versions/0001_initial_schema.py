"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for the LifeSafe scheduler:
companies, profiles, sites, educators, pending_class, trainingLog,
lifecycle_events.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PROFILE_ROLES = ("admin", "LifeSafe", "educator", "client_admin", "client_site", "user")
REQUEST_STATUSES = (
    "pending", "Pending Review", "Confirm Educator Dates", "Awaiting Date", "accepted", "Final Confirmation",
)


def upgrade() -> None:
    # --- companies ---
    op.create_table(
        "companies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("zip", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- profiles ---
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", sa.Enum(*PROFILE_ROLES, name="profile_role"), nullable=False, server_default="user"),
        sa.Column("company_id", sa.String(36), sa.ForeignKey("companies.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- sites ---
    op.create_table(
        "sites",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("company_id", sa.String(36), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("zip", sa.String(20), nullable=True),
        sa.Column("site_email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- educators ---
    op.create_table(
        "educators",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("first", sa.String(100), nullable=False),
        sa.Column("last", sa.String(100), nullable=False),
        sa.Column("email1", sa.String(255), nullable=True),
        sa.Column("email2", sa.String(255), nullable=True),
        sa.Column("cell", sa.String(30), nullable=True),
        sa.Column("teach_state", sa.String(50), nullable=True),
        sa.Column("rate1", sa.Numeric(10, 2), nullable=True),
        sa.Column("rate2", sa.Numeric(10, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_educators_email1", "educators", ["email1"])

    # --- pending_class (class requests) ---
    op.create_table(
        "pending_class",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("class_type", sa.String(500), nullable=False),
        sa.Column("company_id", sa.String(36), sa.ForeignKey("companies.id"), nullable=True),
        sa.Column("site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=True),
        sa.Column("educator_id", sa.String(36), sa.ForeignKey("educators.id"), nullable=True),
        sa.Column("coordinator_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("queue_user_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("preferred_date_start", sa.Date, nullable=False),
        sa.Column("preferred_date_end", sa.Date, nullable=False),
        sa.Column("class_date", sa.Date, nullable=True),
        sa.Column(
            "status", sa.Enum(*REQUEST_STATUSES, name="class_request_status"),
            nullable=False, server_default="pending",
        ),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("offer_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("educator_response_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("locked_by_user_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- trainingLog (confirmed classes) ---
    op.create_table(
        "trainingLog",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("subjects", sa.String(500), nullable=False),
        sa.Column("dateofclass", sa.Date, nullable=False),
        sa.Column("site_id", sa.String(36), sa.ForeignKey("sites.id"), nullable=False),
        sa.Column("educator_id", sa.String(36), sa.ForeignKey("educators.id"), nullable=True),
        sa.Column("coordinator_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("source_request_id", sa.String(36), nullable=True, unique=True),
        sa.Column("billable", sa.Numeric(10, 2), nullable=True),
        sa.Column("hours", sa.Numeric(6, 2), nullable=True),
        sa.Column("expenses", sa.Numeric(10, 2), nullable=True),
        sa.Column("student_count", sa.Integer, nullable=True),
        sa.Column("billdate", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review", sa.Text, nullable=True),
        sa.Column("locked_by_user_id", sa.String(36), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- lifecycle_events (append-only ledger) ---
    op.create_table(
        "lifecycle_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("request_id", sa.String(36), nullable=True),
        sa.Column("confirmed_class_id", sa.String(36), nullable=True),
        sa.Column("actor_id", sa.String(36), nullable=False),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("from_status", sa.String(40), nullable=True),
        sa.Column("to_status", sa.String(40), nullable=True),
        sa.Column("before_snapshot", sa.JSON, nullable=True),
        sa.Column("after_snapshot", sa.JSON, nullable=True),
        sa.Column("notice_sent", sa.Boolean, nullable=True),
        sa.Column("notice_error", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_lifecycle_events_request_id", "lifecycle_events", ["request_id"])
    op.create_index("ix_lifecycle_events_confirmed_class_id", "lifecycle_events", ["confirmed_class_id"])


def downgrade() -> None:
    op.drop_table("lifecycle_events")
    op.drop_table("trainingLog")
    op.drop_table("pending_class")
    op.drop_table("educators")
    op.drop_table("sites")
    op.drop_table("profiles")
    op.drop_table("companies")
    sa.Enum(name="class_request_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="profile_role").drop(op.get_bind(), checkfirst=True)
