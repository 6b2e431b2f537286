"""Create prediction_forecasts

Revision ID: 5b1e7d0c2a41
Revises:
Create Date: 2026-10-12 09:41:18.204311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1e7d0c2a41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "prediction_forecasts",
        sa.Column("queue_id", sa.String(length=255), primary_key=True),
        sa.Column("model_id", sa.String(length=128), nullable=False),
        sa.Column("model_type", sa.String(length=32), nullable=False),
        sa.Column("accuracy_threshold", sa.Float(), nullable=False),
        sa.Column("est_wait_time", sa.Float(), nullable=False),
        sa.Column("entry_probability", sa.Float(), nullable=False),
        sa.Column("ci_lower", sa.Float(), nullable=False),
        sa.Column("ci_upper", sa.Float(), nullable=False),
        sa.Column("last_run", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_prediction_forecasts_last_run",
        "prediction_forecasts",
        ["last_run"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_prediction_forecasts_last_run", table_name="prediction_forecasts")
    op.drop_table("prediction_forecasts")
