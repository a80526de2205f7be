"""baseline - personalization engine schema

Revision ID: 3f6c2a9e41b7
Revises: 
Create Date: 2026-10-19 10:12:44.318206

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f6c2a9e41b7'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)

    op.create_table(
        'user_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('fitness_goal', sa.String(length=50), nullable=True),
        sa.Column('experience_level', sa.String(length=50), nullable=True),
        sa.Column('dietary_preference', sa.String(length=50), nullable=True),
        sa.Column('daily_calorie_target', sa.Float(), nullable=True),
        sa.Column('allergies', JSONType, nullable=True),
        sa.Column('disliked_foods', JSONType, nullable=True),
        sa.Column('subscription_tier', sa.String(length=20), nullable=True),
        sa.Column('timezone', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index(op.f('ix_user_profiles_id'), 'user_profiles', ['id'], unique=False)

    op.create_table(
        'templates',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('goal_type', sa.String(length=50), nullable=True),
        sa.Column('meal_type', sa.String(length=50), nullable=True),
        sa.Column('difficulty', sa.String(length=50), nullable=True),
        sa.Column('data', JSONType, nullable=False),
        sa.Column('tags', JSONType, nullable=True),
        sa.Column('servings', sa.Integer(), nullable=True),
        sa.Column('per_serving_calories', sa.Float(), nullable=True),
        sa.Column('per_serving_protein', sa.Float(), nullable=True),
        sa.Column('per_serving_carbs', sa.Float(), nullable=True),
        sa.Column('per_serving_fats', sa.Float(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('is_active_recovery', sa.Boolean(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_templates_kind'), 'templates', ['kind'], unique=False)
    op.create_index(op.f('ix_templates_goal_type'), 'templates', ['goal_type'], unique=False)

    op.create_table(
        'personalized_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('base_template_id', sa.String(length=64), nullable=True),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('slot_label', sa.String(length=50), nullable=False),
        sa.Column('date_assigned', sa.Date(), nullable=False),
        sa.Column('personalized_data', JSONType, nullable=False),
        sa.Column('total_calories', sa.Float(), nullable=True),
        sa.Column('total_protein', sa.Float(), nullable=True),
        sa.Column('total_carbs', sa.Float(), nullable=True),
        sa.Column('total_fats', sa.Float(), nullable=True),
        sa.Column('total_servings', sa.Integer(), nullable=True),
        sa.Column('remaining_servings', sa.Integer(), nullable=True),
        sa.Column('is_fallback', sa.Boolean(), nullable=True),
        sa.Column('is_completed', sa.Boolean(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['base_template_id'], ['templates.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_personalized_items_id'), 'personalized_items', ['id'], unique=False)
    op.create_index(op.f('ix_personalized_items_user_id'), 'personalized_items', ['user_id'], unique=False)
    op.create_index(op.f('ix_personalized_items_date_assigned'), 'personalized_items', ['date_assigned'], unique=False)

    op.create_table(
        'schedule_slots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('slot_label', sa.String(length=50), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('servings_used', sa.Integer(), nullable=True),
        sa.Column('is_completed', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['item_id'], ['personalized_items.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'date', 'slot_label', name='uq_schedule_slot_user_date_label'),
    )
    op.create_index(op.f('ix_schedule_slots_id'), 'schedule_slots', ['id'], unique=False)
    op.create_index(op.f('ix_schedule_slots_user_id'), 'schedule_slots', ['user_id'], unique=False)
    op.create_index(op.f('ix_schedule_slots_date'), 'schedule_slots', ['date'], unique=False)

    op.create_table(
        'user_insights',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('avoided_foods', JSONType, nullable=True),
        sa.Column('favorite_cuisines', JSONType, nullable=True),
        sa.Column('template_affinity', JSONType, nullable=True),
        sa.Column('most_skipped_slot', sa.String(length=50), nullable=True),
        sa.Column('consistency_score', sa.Float(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index(op.f('ix_user_insights_id'), 'user_insights', ['id'], unique=False)

    op.create_table(
        'user_constraints',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('workouts_per_week', sa.Integer(), nullable=True),
        sa.Column('workout_duration_minutes', sa.Integer(), nullable=True),
        sa.Column('budget_tier', sa.String(length=20), nullable=True),
        sa.Column('prefer_cheap_proteins', sa.Boolean(), nullable=True),
        sa.Column('max_cooking_time_minutes', sa.Integer(), nullable=True),
        sa.Column('prefer_simple_meals', sa.Boolean(), nullable=True),
        sa.Column('simplify_after_deviations', sa.Integer(), nullable=True),
        sa.Column('calorie_deficit_today', sa.Integer(), nullable=True),
        sa.Column('calorie_deficit_date', sa.Date(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index(op.f('ix_user_constraints_id'), 'user_constraints', ['id'], unique=False)

    op.create_table(
        'deviation_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('deviation_type', sa.String(length=50), nullable=False),
        sa.Column('reason', sa.String(length=50), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('related_item_id', sa.Integer(), nullable=True),
        sa.Column('impact_calories', sa.Float(), nullable=True),
        sa.Column('impact_protein', sa.Float(), nullable=True),
        sa.Column('impact_budget', sa.Float(), nullable=True),
        sa.Column('auto_adjusted', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['related_item_id'], ['personalized_items.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_deviation_events_id'), 'deviation_events', ['id'], unique=False)
    op.create_index(op.f('ix_deviation_events_user_id'), 'deviation_events', ['user_id'], unique=False)
    op.create_index(op.f('ix_deviation_events_created_at'), 'deviation_events', ['created_at'], unique=False)

    op.create_table(
        'adjustment_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('rule_applied', sa.String(length=100), nullable=False),
        sa.Column('adjustment_type', sa.String(length=100), nullable=False),
        sa.Column('reason', sa.String(length=300), nullable=True),
        sa.Column('before_state', JSONType, nullable=False),
        sa.Column('after_state', JSONType, nullable=False),
        sa.Column('triggered_by', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_adjustment_history_id'), 'adjustment_history', ['id'], unique=False)
    op.create_index(op.f('ix_adjustment_history_user_id'), 'adjustment_history', ['user_id'], unique=False)

    op.create_table(
        'weekly_checkins',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('week_start', sa.Date(), nullable=False),
        sa.Column('workout_adherence', sa.String(length=20), nullable=True),
        sa.Column('meal_adherence', sa.String(length=20), nullable=True),
        sa.Column('budget_adherence', sa.String(length=20), nullable=True),
        sa.Column('primary_reason', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('adjustment_applied', sa.Boolean(), nullable=True),
        sa.Column('adjustment_details', JSONType, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'week_start', name='uq_weekly_checkin_user_week'),
    )
    op.create_index(op.f('ix_weekly_checkins_id'), 'weekly_checkins', ['id'], unique=False)
    op.create_index(op.f('ix_weekly_checkins_user_id'), 'weekly_checkins', ['user_id'], unique=False)


def downgrade() -> None:
    for table in (
        'weekly_checkins', 'adjustment_history', 'deviation_events', 'user_constraints',
        'user_insights', 'schedule_slots', 'personalized_items', 'templates',
        'user_profiles', 'users',
    ):
        op.drop_table(table)
