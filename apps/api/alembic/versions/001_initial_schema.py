"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-01-05 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('external_id', sa.String(64), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('email', sa.String(320), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='agent'),
        sa.Column('department', sa.String(100), nullable=True),
        sa.Column('supervisor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('level', sa.String(20), nullable=False, server_default='junior'),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('badges', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_signed_in', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('external_id', name='uq_users_external_id'),
    )

    op.create_table(
        'team_assignments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('team_name', sa.String(100), nullable=False),
        sa.Column('department', sa.String(100), nullable=False),
        sa.Column('area', sa.String(100), nullable=True),
        sa.Column('manager_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('supervisor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', name='uq_team_assignments_user_id'),
    )

    op.create_table(
        'scenarios',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(40), nullable=False),
        sa.Column('complexity', sa.Integer(), nullable=False),
        sa.Column('estimated_duration', sa.Integer(), nullable=False),
        sa.Column('system_prompt', sa.Text(), nullable=False),
        sa.Column('client_profile', sa.JSON(), nullable=False),
        sa.Column('evaluation_criteria', sa.JSON(), nullable=False),
        sa.Column('ideal_response', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_scenarios_category', 'scenarios', ['category'])

    op.create_table(
        'simulations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('scenario_id', sa.Integer(), sa.ForeignKey('scenarios.id'), nullable=False),
        sa.Column('is_practice_mode', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(20), nullable=False, server_default='in_progress'),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('overall_score', sa.Integer(), nullable=True),
        sa.Column('category_scores', sa.JSON(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('strengths', sa.JSON(), nullable=True),
        sa.Column('weaknesses', sa.JSON(), nullable=True),
        sa.Column('recommendations', sa.JSON(), nullable=True),
        sa.Column('points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('badges_earned', sa.JSON(), nullable=True),
        sa.Column('transcript_keywords', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index(
        'ix_simulations_user_status_completed',
        'simulations',
        ['user_id', 'status', 'completed_at'],
    )

    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('simulation_id', sa.Integer(), sa.ForeignKey('simulations.id'), nullable=False),
        sa.Column('role', sa.String(10), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('evaluation_note', sa.Text(), nullable=True),
    )
    op.create_index('ix_messages_simulation_id', 'messages', ['simulation_id'])

    op.create_table(
        'coaching_plans',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('generated_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('weakness_analysis', sa.JSON(), nullable=False),
        sa.Column('strengths_analysis', sa.JSON(), nullable=False),
        sa.Column('priority_areas', sa.JSON(), nullable=False),
        sa.Column('recommended_scenarios', sa.JSON(), nullable=False),
        sa.Column('completed_scenarios', sa.JSON(), nullable=False),
        sa.Column('weekly_goal', sa.Text(), nullable=True),
        sa.Column('estimated_weeks', sa.Integer(), nullable=True),
        sa.Column('improvement_strategy', sa.Text(), nullable=True),
        sa.Column('key_focus_points', sa.JSON(), nullable=True),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_coaching_plans_user_id', 'coaching_plans', ['user_id'])

    op.create_table(
        'coaching_alerts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('supervisor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('severity', sa.String(10), nullable=False, server_default='medium'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_coaching_alerts_user_id', 'coaching_alerts', ['user_id'])
    op.create_index('ix_coaching_alerts_supervisor_id', 'coaching_alerts', ['supervisor_id'])

    op.create_table(
        'buddy_pairs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('agent_id_1', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('agent_id_2', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='suggested'),
        sa.Column('match_score', sa.Integer(), nullable=True),
        sa.Column('match_reason', sa.Text(), nullable=True),
        sa.Column('shared_goal', sa.Text(), nullable=True),
        sa.Column('target_weeks', sa.Integer(), nullable=False, server_default='4'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_buddy_pairs_agent_id_1', 'buddy_pairs', ['agent_id_1'])
    op.create_index('ix_buddy_pairs_agent_id_2', 'buddy_pairs', ['agent_id_2'])

    op.create_table(
        'admin_feedback',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('from_admin_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('to_agent_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('feedback_type', sa.String(20), nullable=False, server_default='note'),
        sa.Column('priority', sa.String(10), nullable=False, server_default='medium'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_admin_feedback_from_admin_id', 'admin_feedback', ['from_admin_id'])
    op.create_index('ix_admin_feedback_to_agent_id', 'admin_feedback', ['to_agent_id'])

    op.create_table(
        'feedback_replies',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('feedback_id', sa.Integer(), sa.ForeignKey('admin_feedback.id'), nullable=False),
        sa.Column('from_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_feedback_replies_feedback_id', 'feedback_replies', ['feedback_id'])

    op.create_table(
        'response_templates',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('category', sa.String(40), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('context', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('complexity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_response_templates_category', 'response_templates', ['category'])


def downgrade() -> None:
    op.drop_table('response_templates')
    op.drop_table('feedback_replies')
    op.drop_table('admin_feedback')
    op.drop_table('buddy_pairs')
    op.drop_table('coaching_alerts')
    op.drop_table('coaching_plans')
    op.drop_table('messages')
    op.drop_table('simulations')
    op.drop_table('scenarios')
    op.drop_table('team_assignments')
    op.drop_table('users')
