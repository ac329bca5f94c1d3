"""Initial migration - create all tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Profiles (connection flags live here)
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('goal', sa.Text(), nullable=True),
        sa.Column('race_date', sa.Date(), nullable=True),
        sa.Column('race_distance_km', sa.Float(), nullable=True),
        sa.Column('days_per_week', sa.Integer(), nullable=True),
        sa.Column('strava_connected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('strava_athlete_id', sa.String(20), nullable=True),
        sa.Column('strava_connected_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_profiles_user_id', 'profiles', ['user_id'], unique=True)

    # Security audit log
    op.create_table(
        'security_audit_log',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(36), nullable=True),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('event_details', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_security_audit_log_user_id', 'security_audit_log', ['user_id'])
    op.create_index('ix_security_audit_log_created_at', 'security_audit_log', ['created_at'])

    # OAuth state tokens
    op.create_table(
        'oauth_state_tokens',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('token', sa.String(128), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('redirect_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_oauth_state_tokens_token', 'oauth_state_tokens', ['token'], unique=True)
    op.create_index('ix_oauth_state_tokens_user_id', 'oauth_state_tokens', ['user_id'])
    op.create_index('ix_oauth_state_tokens_expires_at', 'oauth_state_tokens', ['expires_at'])

    # Strava tokens (encrypted)
    op.create_table(
        'strava_tokens',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('strava_athlete_id', sa.String(20), nullable=True),
        sa.Column('access_token_encoded', sa.Text(), nullable=False),
        sa.Column('refresh_token_encoded', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('scope', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_strava_tokens_user_id', 'strava_tokens', ['user_id'], unique=True)

    # Imported activities
    op.create_table(
        'strava_activities',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('strava_activity_id', sa.BigInteger(), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('activity_type', sa.String(50), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('distance', sa.Float(), nullable=True),
        sa.Column('moving_time', sa.Integer(), nullable=True),
        sa.Column('elapsed_time', sa.Integer(), nullable=True),
        sa.Column('total_elevation_gain', sa.Float(), nullable=True),
        sa.Column('average_speed', sa.Float(), nullable=True),
        sa.Column('max_speed', sa.Float(), nullable=True),
        sa.Column('average_heartrate', sa.Float(), nullable=True),
        sa.Column('max_heartrate', sa.Float(), nullable=True),
        sa.Column('average_cadence', sa.Float(), nullable=True),
        sa.Column('average_watts', sa.Float(), nullable=True),
        sa.Column('weighted_average_watts', sa.Float(), nullable=True),
        sa.Column('kilojoules', sa.Float(), nullable=True),
        sa.Column('suffer_score', sa.Integer(), nullable=True),
        sa.Column('kudos_count', sa.Integer(), nullable=True),
        sa.Column('achievement_count', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('user_id', 'strava_activity_id', name='uq_strava_activities_user_activity'),
    )
    op.create_index('ix_strava_activities_user_id', 'strava_activities', ['user_id'])
    op.create_index('ix_strava_activities_user_date', 'strava_activities', ['user_id', 'start_date'])

    # Best efforts
    op.create_table(
        'strava_best_efforts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('effort_key', sa.String(64), nullable=False),
        sa.Column('source', sa.String(20), nullable=False),
        sa.Column('strava_activity_id', sa.BigInteger(), nullable=True),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('distance', sa.Float(), nullable=False),
        sa.Column('elapsed_time', sa.Integer(), nullable=False),
        sa.Column('moving_time', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('achievement_rank', sa.Integer(), nullable=True),
        sa.Column('pr_rank', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('user_id', 'effort_key', name='uq_strava_best_efforts_user_key'),
    )
    op.create_index('ix_strava_best_efforts_user_id', 'strava_best_efforts', ['user_id'])
    op.create_index('ix_strava_best_efforts_user_distance', 'strava_best_efforts', ['user_id', 'distance'])

    # Aggregate stats
    op.create_table(
        'strava_stats',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('period_type', sa.String(10), nullable=False),
        sa.Column('count', sa.Integer(), nullable=True),
        sa.Column('distance', sa.Float(), nullable=True),
        sa.Column('moving_time', sa.Integer(), nullable=True),
        sa.Column('elevation_gain', sa.Float(), nullable=True),
        sa.Column('achievement_count', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('user_id', 'period_type', name='uq_strava_stats_user_period'),
    )
    op.create_index('ix_strava_stats_user_id', 'strava_stats', ['user_id'])

    # Training plans
    op.create_table(
        'training_plans',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(200), nullable=True),
        sa.Column('plan_text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_training_plans_user_id', 'training_plans', ['user_id'])

    # Training days
    op.create_table(
        'training_days',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'training_plan_id', sa.String(36),
            sa.ForeignKey('training_plans.id', ondelete='CASCADE'),
            nullable=False
        ),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('training_session', sa.Text(), nullable=False),
        sa.Column('mileage_breakdown', sa.Text(), nullable=True),
        sa.Column('pace_targets', sa.Text(), nullable=True),
        sa.Column('estimated_distance_km', sa.Float(), nullable=True),
        sa.Column('estimated_avg_pace_min_per_km', sa.String(20), nullable=True),
        sa.Column('estimated_moving_time', sa.String(20), nullable=True),
        sa.Column('heart_rate_zones', sa.Text(), nullable=True),
        sa.Column('purpose', sa.Text(), nullable=True),
        sa.Column('session_load', sa.String(20), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('what_to_eat_drink', sa.Text(), nullable=True),
        sa.Column('additional_training', sa.Text(), nullable=True),
        sa.Column('recovery_training', sa.Text(), nullable=True),
        sa.Column('estimated_elevation_gain_m', sa.Integer(), nullable=True),
        sa.Column('estimated_avg_power_w', sa.Integer(), nullable=True),
        sa.Column('estimated_cadence_spm', sa.Integer(), nullable=True),
        sa.Column('estimated_calories', sa.Integer(), nullable=True),
        sa.Column('daily_nutrition_advice', sa.Text(), nullable=True),
        sa.Column('detailed_fields_generated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('training_plan_id', 'date', name='uq_training_days_plan_date'),
    )
    op.create_index('ix_training_days_training_plan_id', 'training_days', ['training_plan_id'])
    op.create_index('ix_training_days_user_date', 'training_days', ['user_id', 'date'])


def downgrade() -> None:
    op.drop_table('training_days')
    op.drop_table('training_plans')
    op.drop_table('strava_stats')
    op.drop_table('strava_best_efforts')
    op.drop_table('strava_activities')
    op.drop_table('strava_tokens')
    op.drop_table('oauth_state_tokens')
    op.drop_table('security_audit_log')
    op.drop_table('profiles')
