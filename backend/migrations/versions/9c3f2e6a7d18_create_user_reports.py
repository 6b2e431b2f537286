from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "9c3f2e6a7d18"
down_revision = "5b1e7d0c2a41"
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "user_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("queue_id", sa.String(length=255), nullable=False),
        sa.Column("reported_wait_minutes", sa.Float(), nullable=True),
        sa.Column("reported_crowd_level", sa.String(length=16), nullable=True),
        sa.Column("validated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_user_reports_queue_submitted", "user_reports", ["queue_id", "submitted_at"]
    )

def downgrade():
    op.drop_index("ix_user_reports_queue_submitted", table_name="user_reports")
    op.drop_table("user_reports")
