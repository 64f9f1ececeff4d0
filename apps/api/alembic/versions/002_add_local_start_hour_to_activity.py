"""add local start hour to activity

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('activity', sa.Column('local_start_hour', sa.Integer(), nullable=True))

    # Existing rows: best effort from the stored UTC timestamp
    op.execute("UPDATE activity SET local_start_hour = EXTRACT(HOUR FROM start_time AT TIME ZONE 'UTC')")


def downgrade() -> None:
    op.drop_column('activity', 'local_start_hour')
