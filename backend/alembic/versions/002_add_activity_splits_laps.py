"""Add strava_activity_splits and strava_activity_laps tables

Revision ID: 002_add_activity_splits_laps
Revises: 001_initial
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '002_add_activity_splits_laps'
down_revision: Union[str, None] = '001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Per-kilometer splits
    op.create_table(
        'strava_activity_splits',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('strava_activity_id', sa.BigInteger(), nullable=False),

        # Split info
        sa.Column('split_number', sa.Integer(), nullable=False),
        sa.Column('distance_m', sa.Float(), nullable=False),

        # Time
        sa.Column('moving_time_s', sa.Integer(), nullable=True),
        sa.Column('elapsed_time_s', sa.Integer(), nullable=False),

        sa.Column('elevation_diff_m', sa.Float(), nullable=True),

        # Performance
        sa.Column('average_speed_mps', sa.Float(), nullable=True),
        sa.Column('average_grade_adjusted_speed_mps', sa.Float(), nullable=True),
        sa.Column('average_heartrate', sa.Float(), nullable=True),
        sa.Column('pace_zone', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint(
            'user_id', 'strava_activity_id', 'split_number',
            name='uq_strava_activity_splits_user_activity_split'
        ),
    )
    op.create_index('ix_strava_activity_splits_user_id', 'strava_activity_splits', ['user_id'])
    op.create_index(
        'ix_strava_activity_splits_strava_activity_id',
        'strava_activity_splits',
        ['strava_activity_id']
    )

    # Laps
    op.create_table(
        'strava_activity_laps',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('strava_activity_id', sa.BigInteger(), nullable=False),
        sa.Column('lap_number', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(100), nullable=True),
        sa.Column('distance_m', sa.Float(), nullable=False),
        sa.Column('moving_time_s', sa.Integer(), nullable=True),
        sa.Column('elapsed_time_s', sa.Integer(), nullable=False),
        sa.Column('average_speed_mps', sa.Float(), nullable=True),
        sa.Column('max_speed_mps', sa.Float(), nullable=True),
        sa.Column('average_heartrate', sa.Float(), nullable=True),
        sa.Column('max_heartrate', sa.Float(), nullable=True),
        sa.Column('average_cadence', sa.Float(), nullable=True),
        sa.Column('average_watts', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint(
            'user_id', 'strava_activity_id', 'lap_number',
            name='uq_strava_activity_laps_user_activity_lap'
        ),
    )
    op.create_index('ix_strava_activity_laps_user_id', 'strava_activity_laps', ['user_id'])
    op.create_index(
        'ix_strava_activity_laps_strava_activity_id',
        'strava_activity_laps',
        ['strava_activity_id']
    )


def downgrade() -> None:
    op.drop_index('ix_strava_activity_laps_strava_activity_id', 'strava_activity_laps')
    op.drop_index('ix_strava_activity_laps_user_id', 'strava_activity_laps')
    op.drop_table('strava_activity_laps')

    op.drop_index('ix_strava_activity_splits_strava_activity_id', 'strava_activity_splits')
    op.drop_index('ix_strava_activity_splits_user_id', 'strava_activity_splits')
    op.drop_table('strava_activity_splits')
