"""suspicious user agent weight

Revision ID: 0002_suspicious_agent_risk
Revises: 0001_initial_schema
Create Date: 2026-10-18 15:30:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_suspicious_agent_risk"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade():
    op.add_column(
        "risk_thresholds",
        sa.Column("suspicious_agent_risk", sa.Float(), nullable=False, server_default="0.3"),
    )


def downgrade():
    op.drop_column("risk_thresholds", "suspicious_agent_risk")
