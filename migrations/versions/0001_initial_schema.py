"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("username", sa.String(150), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "user_sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("session_token", sa.String(128), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("risk_level", sa.String(16), nullable=True),
        sa.Column("restrictions", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("invalidated_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_user_sessions_user_id", "user_sessions", ["user_id"])
    op.create_index("ix_user_sessions_session_token", "user_sessions", ["session_token"], unique=True)
    op.create_index("ix_user_sessions_expires_at", "user_sessions", ["expires_at"])
    op.create_index("ix_user_sessions_is_active", "user_sessions", ["is_active"])
    op.create_index("ix_user_sessions_created_at", "user_sessions", ["created_at"])

    op.create_table(
        "device_fingerprints",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("fingerprint", sa.String(255), nullable=False),
        sa.Column("device_name", sa.String(255), nullable=True),
        sa.Column("device_type", sa.String(50), nullable=True),
        sa.Column("browser", sa.String(100), nullable=True),
        sa.Column("os", sa.String(100), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("is_trusted", sa.Boolean(), nullable=False),
        sa.Column("first_seen", sa.DateTime(), nullable=False),
        sa.Column("last_seen", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "fingerprint", name="uq_device_user_fingerprint"),
    )
    op.create_index("ix_device_fingerprints_user_id", "device_fingerprints", ["user_id"])
    op.create_index("ix_device_fingerprints_created_at", "device_fingerprints", ["created_at"])

    op.create_table(
        "security_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(16), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("country", sa.String(64), nullable=True),
        sa.Column("risk_score", sa.Float(), nullable=False),
        sa.Column("connection_id", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_security_events_user_id", "security_events", ["user_id"])
    op.create_index("ix_security_events_event_type", "security_events", ["event_type"])
    op.create_index("ix_security_events_connection_id", "security_events", ["connection_id"])
    op.create_index("ix_security_events_created_at", "security_events", ["created_at"])

    op.create_table(
        "risk_assessments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("session_id", sa.String(128), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("country", sa.String(64), nullable=True),
        sa.Column("city", sa.String(128), nullable=True),
        sa.Column("is_vpn", sa.Boolean(), nullable=False),
        sa.Column("is_tor", sa.Boolean(), nullable=False),
        sa.Column("device_fingerprint", sa.String(255), nullable=True),
        sa.Column("behavior_signals", sa.JSON(), nullable=True),
        sa.Column("risk_score", sa.Float(), nullable=False),
        sa.Column("risk_level", sa.String(16), nullable=False),
        sa.Column("risk_factors", sa.JSON(), nullable=False),
        sa.Column("recommendations", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_risk_assessments_user_id", "risk_assessments", ["user_id"])
    op.create_index("ix_risk_assessments_created_at", "risk_assessments", ["created_at"])

    op.create_table(
        "risk_thresholds",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("scope", sa.String(64), nullable=False, unique=True),
        sa.Column("vpn_risk", sa.Float(), nullable=False),
        sa.Column("tor_risk", sa.Float(), nullable=False),
        sa.Column("new_device_risk", sa.Float(), nullable=False),
        sa.Column("off_hours_risk", sa.Float(), nullable=False),
        sa.Column("behavior_risk", sa.Float(), nullable=False),
        sa.Column("location_risk", sa.Float(), nullable=False),
        sa.Column("behavior_tolerance", sa.Float(), nullable=False),
        sa.Column("low_threshold", sa.Float(), nullable=False),
        sa.Column("medium_threshold", sa.Float(), nullable=False),
        sa.Column("high_threshold", sa.Float(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "mfa_setups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("secret", sa.String(64), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("setup_at", sa.DateTime(), nullable=False),
        sa.Column("enabled_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_mfa_setups_user_id", "mfa_setups", ["user_id"], unique=True)

    op.create_table(
        "mfa_backup_codes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("mfa_setup_id", sa.Integer(), sa.ForeignKey("mfa_setups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code_hash", sa.String(64), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_mfa_backup_codes_mfa_setup_id", "mfa_backup_codes", ["mfa_setup_id"])


def downgrade():
    op.drop_table("mfa_backup_codes")
    op.drop_table("mfa_setups")
    op.drop_table("risk_thresholds")
    op.drop_table("risk_assessments")
    op.drop_table("security_events")
    op.drop_table("device_fingerprints")
    op.drop_table("user_sessions")
    op.drop_table("users")
