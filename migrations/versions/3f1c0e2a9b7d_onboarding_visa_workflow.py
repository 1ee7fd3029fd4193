"""create users, invitations, onboarding applications, visa steps, notifications

Revision ID: 3f1c0e2a9b7d
Revises: 
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f1c0e2a9b7d"
down_revision = None
branch_labels = None
depends_on = None

DOCUMENT_TYPES = ("OPT Receipt", "OPT EAD", "I-983", "I-20")
STEP_STATUSES = ("pending", "approved", "rejected")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("username", sa.String(length=80), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("employee", "hr", name="user_role"),
            nullable=False,
            server_default="employee",
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "register_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("token", sa.String(length=64), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
    )
    op.create_index("ix_register_tokens_email", "register_tokens", ["email"])
    op.create_table(
        "onboarding_applications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True
        ),
        sa.Column("first_name", sa.String(length=120), nullable=True),
        sa.Column("last_name", sa.String(length=120), nullable=True),
        sa.Column("middle_name", sa.String(length=120), nullable=True),
        sa.Column("preferred_name", sa.String(length=120), nullable=True),
        sa.Column("personal_info", sa.JSON(), nullable=False),
        sa.Column("documents", sa.JSON(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*STEP_STATUSES, name="onboarding_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("reviewer_id", sa.Integer(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "visa_steps",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "document_type",
            sa.Enum(*DOCUMENT_TYPES, name="visa_document_type"),
            nullable=False,
        ),
        sa.Column("file_ref", sa.String(length=512), nullable=True),
        sa.Column("filename", sa.String(length=255), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*STEP_STATUSES, name="visa_step_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("reviewer_id", sa.Integer(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.UniqueConstraint("user_id", "document_type", name="uq_visa_steps_user_type"),
    )
    op.create_index("ix_visa_steps_user_id", "visa_steps", ["user_id"])
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("recipient", sa.String(length=255), nullable=False),
        sa.Column(
            "kind",
            sa.Enum(
                "registration-invite",
                "document-rejected",
                "next-step-available",
                "visa-workflow-complete",
                "onboarding-approved",
                "onboarding-rejected",
                "next-step-reminder",
                "general",
                name="notification_kind",
            ),
            nullable=False,
        ),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_visa_steps_user_id", table_name="visa_steps")
    op.drop_table("visa_steps")
    op.drop_table("onboarding_applications")
    op.drop_index("ix_register_tokens_email", table_name="register_tokens")
    op.drop_table("register_tokens")
    op.drop_table("users")
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS notification_kind")
        op.execute("DROP TYPE IF EXISTS visa_step_status")
        op.execute("DROP TYPE IF EXISTS visa_document_type")
        op.execute("DROP TYPE IF EXISTS onboarding_status")
        op.execute("DROP TYPE IF EXISTS user_role")
