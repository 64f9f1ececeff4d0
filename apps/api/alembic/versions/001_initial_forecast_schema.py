"""initial forecast schema

Revision ID: 001
Revises:
Create Date: 2026-01-05 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        'athlete',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('display_name', sa.Text(), nullable=True),
    )
    op.create_index('ix_athlete_email', 'athlete', ['email'], unique=True)

    op.create_table(
        'activity',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', sa.Uuid(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sport', sa.Text(), server_default='run', nullable=False),
        sa.Column('duration_s', sa.Integer(), nullable=True),
        sa.Column('distance_m', sa.Integer(), nullable=True),
        sa.Column('avg_hr', sa.Integer(), nullable=True),
        sa.Column('total_elevation_gain', sa.Numeric(), nullable=True),
        sa.Column('is_race', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('temperature_c', sa.Float(), nullable=True),
        sa.Column('humidity_pct', sa.Float(), nullable=True),
        sa.Column('altitude_m', sa.Float(), nullable=True),
        sa.Column('completion_rate', sa.Float(), nullable=True),
    )
    op.create_index('ix_activity_athlete_id', 'activity', ['athlete_id'])
    op.create_index('ix_activity_athlete_start_time', 'activity', ['athlete_id', 'start_time'])

    op.create_table(
        'weekly_load_metric',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', sa.Uuid(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=False),
        sa.Column('week_start_date', sa.Date(), nullable=False),
        sa.Column('total_distance_km', sa.Float(), nullable=False, server_default='0'),
        sa.Column('acute_load', sa.Float(), nullable=False, server_default='0'),
        sa.Column('chronic_load', sa.Float(), nullable=True),
        sa.Column('acwr', sa.Float(), nullable=True),
        sa.Column('run_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('elevation_gain_m', sa.Float(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('athlete_id', 'week_start_date', name='uq_weekly_load_athlete_week'),
    )
    op.create_index('ix_weekly_load_metric_athlete_id', 'weekly_load_metric', ['athlete_id'])

    op.create_table(
        'athlete_learning_state',
        sa.Column('athlete_id', sa.Uuid(as_uuid=True), sa.ForeignKey('athlete.id'), primary_key=True),
        sa.Column('acwr_mean', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('acwr_std_dev', sa.Float(), nullable=False, server_default='0.2'),
        sa.Column('data_quality_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('baseline_pace', sa.Float(), nullable=True),
        sa.Column('baseline_hr', sa.Float(), nullable=True),
        sa.Column('computation_metadata', JSONType, nullable=True),
        sa.Column('last_computed_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            'data_quality_score >= 0 AND data_quality_score <= 1',
            name='ck_learning_state_quality_range',
        ),
    )

    op.create_table(
        'environmental_adaptation',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', sa.Uuid(as_uuid=True), sa.ForeignKey('athlete.id'), nullable=False),
        sa.Column('adaptation_type', sa.Text(), nullable=False),
        sa.Column('learned_coefficients', JSONType, nullable=False),
        sa.Column('confidence_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('data_points_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('athlete_id', 'adaptation_type', name='uq_env_adaptation_athlete_type'),
        sa.CheckConstraint(
            'confidence_score >= 0 AND confidence_score <= 100',
            name='ck_env_adaptation_confidence_range',
        ),
    )
    op.create_index('ix_environmental_adaptation_athlete_id', 'environmental_adaptation', ['athlete_id'])


def downgrade() -> None:
    op.drop_index('ix_environmental_adaptation_athlete_id', table_name='environmental_adaptation')
    op.drop_table('environmental_adaptation')
    op.drop_table('athlete_learning_state')
    op.drop_index('ix_weekly_load_metric_athlete_id', table_name='weekly_load_metric')
    op.drop_table('weekly_load_metric')
    op.drop_index('ix_activity_athlete_start_time', table_name='activity')
    op.drop_index('ix_activity_athlete_id', table_name='activity')
    op.drop_table('activity')
    op.drop_index('ix_athlete_email', table_name='athlete')
    op.drop_table('athlete')
