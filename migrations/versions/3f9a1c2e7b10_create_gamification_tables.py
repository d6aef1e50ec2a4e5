"""Create store missions tables (catalog, completion ledger, points, event log).

Revision ID: 3f9a1c2e7b10
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f9a1c2e7b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create catalog, ledger, points and event log tables."""
    # Tasks
    op.create_table(
        'gamification_tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(50), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('event_name', sa.String(100), nullable=False),
        sa.Column('event_payload_conditions', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )
    op.create_index('ix_gamification_tasks_event_name', 'gamification_tasks', ['event_name'])

    # Missions
    op.create_table(
        'gamification_missions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image', sa.String(255), nullable=True),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )

    # Mission <-> task association
    op.create_table(
        'gamification_mission_tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mission_id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['mission_id'], ['gamification_missions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['task_id'], ['gamification_tasks.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('mission_id', 'task_id', name='unique_mission_task'),
    )

    # Lockers, rules, rewards
    op.create_table(
        'gamification_lockers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mission_id', sa.Integer(), nullable=False),
        sa.Column('condition_type', sa.String(50), nullable=False),
        sa.Column('condition_payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['mission_id'], ['gamification_missions.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_gamification_lockers_mission_id', 'gamification_lockers', ['mission_id'])

    op.create_table(
        'gamification_rules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mission_id', sa.Integer(), nullable=False),
        sa.Column('rule_type', sa.String(20), nullable=False),
        sa.Column('condition_type', sa.String(50), nullable=False),
        sa.Column('condition_payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['mission_id'], ['gamification_missions.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_gamification_rules_mission_id', 'gamification_rules', ['mission_id'])

    op.create_table(
        'gamification_rewards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('mission_id', sa.Integer(), nullable=False),
        sa.Column('reward_type', sa.String(50), nullable=False),
        sa.Column('reward_value', sa.String(255), nullable=False),
        sa.Column('reward_meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['mission_id'], ['gamification_missions.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_gamification_rewards_mission_id', 'gamification_rewards', ['mission_id'])

    # Badges
    op.create_table(
        'gamification_badges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )

    op.create_table(
        'gamification_store_badges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('badge_id', sa.Integer(), nullable=False),
        sa.Column('earned_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['badge_id'], ['gamification_badges.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('store_id', 'badge_id', name='unique_store_badge'),
    )
    op.create_index('ix_gamification_store_badges_store_id', 'gamification_store_badges', ['store_id'])

    # Completion ledger
    op.create_table(
        'gamification_task_completion',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.Integer(), nullable=False),
        sa.Column('mission_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='not_started'),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['task_id'], ['gamification_tasks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['mission_id'], ['gamification_missions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('store_id', 'task_id', 'mission_id', name='unique_store_task_mission'),
    )
    op.create_index('ix_gamification_task_completion_store_id', 'gamification_task_completion', ['store_id'])
    op.create_index('ix_task_completion_store_status', 'gamification_task_completion', ['store_id', 'status'])

    op.create_table(
        'gamification_store_progress',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('mission_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='not_started'),
        sa.Column('progress_percentage', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('rewards_granted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['mission_id'], ['gamification_missions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('store_id', 'mission_id', name='unique_store_mission'),
    )
    op.create_index('ix_gamification_store_progress_store_id', 'gamification_store_progress', ['store_id'])
    op.create_index('ix_store_progress_store_status', 'gamification_store_progress', ['store_id', 'status'])

    # Points ledger
    op.create_table(
        'gamification_store_points',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('balance', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lifetime_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id'),
    )

    op.create_table(
        'gamification_points_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('requested_points', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(500), nullable=True),
        sa.Column('mission_id', sa.Integer(), nullable=True),
        sa.Column('reward_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['mission_id'], ['gamification_missions.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reward_id'], ['gamification_rewards.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_gamification_points_transactions_store_id', 'gamification_points_transactions', ['store_id'])

    # Event log
    op.create_table(
        'gamification_events_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('event_name', sa.String(100), nullable=False),
        sa.Column('event_payload', sa.JSON(), nullable=True),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('result', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_events_log_store_event_processed',
        'gamification_events_log',
        ['store_id', 'event_name', 'processed'],
    )


def downgrade():
    """Drop all store missions tables."""
    op.drop_index('ix_events_log_store_event_processed', table_name='gamification_events_log')
    op.drop_table('gamification_events_log')
    op.drop_index('ix_gamification_points_transactions_store_id', table_name='gamification_points_transactions')
    op.drop_table('gamification_points_transactions')
    op.drop_table('gamification_store_points')
    op.drop_index('ix_store_progress_store_status', table_name='gamification_store_progress')
    op.drop_index('ix_gamification_store_progress_store_id', table_name='gamification_store_progress')
    op.drop_table('gamification_store_progress')
    op.drop_index('ix_task_completion_store_status', table_name='gamification_task_completion')
    op.drop_index('ix_gamification_task_completion_store_id', table_name='gamification_task_completion')
    op.drop_table('gamification_task_completion')
    op.drop_index('ix_gamification_store_badges_store_id', table_name='gamification_store_badges')
    op.drop_table('gamification_store_badges')
    op.drop_table('gamification_badges')
    op.drop_index('ix_gamification_rewards_mission_id', table_name='gamification_rewards')
    op.drop_table('gamification_rewards')
    op.drop_index('ix_gamification_rules_mission_id', table_name='gamification_rules')
    op.drop_table('gamification_rules')
    op.drop_index('ix_gamification_lockers_mission_id', table_name='gamification_lockers')
    op.drop_table('gamification_lockers')
    op.drop_table('gamification_mission_tasks')
    op.drop_table('gamification_missions')
    op.drop_index('ix_gamification_tasks_event_name', table_name='gamification_tasks')
    op.drop_table('gamification_tasks')
