"""Baseline migration - users, incidents, cases and rehab tracking tables

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates every table of the rehab case API. Ids are generated by the
application, so no database extension is required.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Users & auth
    # ==========================================================================
    op.create_table('users',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('password_hash', sa.String(length=255), nullable=False),
    sa.Column('first_name', sa.String(length=100), nullable=False),
    sa.Column('last_name', sa.String(length=100), nullable=False),
    sa.Column('role', sa.String(length=30), nullable=False),
    sa.Column('phone', sa.String(length=30), nullable=True),
    sa.Column('address', sa.JSON(), nullable=True),
    sa.Column('emergency_contact', sa.JSON(), nullable=True),
    sa.Column('medical_info', sa.JSON(), nullable=True),
    sa.Column('employer_id', sa.Uuid(), nullable=True),
    sa.Column('team', sa.String(length=100), nullable=True),
    sa.Column('team_leader_id', sa.Uuid(), nullable=True),
    sa.Column('default_team', sa.String(length=100), nullable=True),
    sa.Column('managed_teams', sa.JSON(), nullable=False),
    sa.Column('package', sa.String(length=30), server_default='package1', nullable=False),
    sa.Column('specialty', sa.String(length=100), nullable=True),
    sa.Column('license_number', sa.String(length=100), nullable=True),
    sa.Column('is_available', sa.Boolean(), server_default=sa.true(), nullable=False),
    sa.Column('availability_reason', sa.String(length=255), nullable=True),
    sa.Column('last_availability_update', sa.DateTime(timezone=True), nullable=True),
    sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
    sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('login_attempts', sa.Integer(), server_default='0', nullable=False),
    sa.Column('token_version', sa.Integer(), server_default='1', nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['employer_id'], ['users.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['team_leader_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('email')
    )
    op.create_index('idx_users_role_active', 'users', ['role', 'is_active'])
    op.create_index('idx_users_employer', 'users', ['employer_id'])
    op.create_index('idx_users_team_leader', 'users', ['team_leader_id'])

    op.create_table('auth_logs',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.Uuid(), nullable=True),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('action', sa.String(length=30), nullable=False),
    sa.Column('success', sa.Boolean(), nullable=False),
    sa.Column('ip_address', sa.String(length=64), nullable=True),
    sa.Column('user_agent', sa.String(length=500), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_auth_logs_user_created', 'auth_logs', ['user_id', 'created_at'])

    # ==========================================================================
    # Incidents & cases
    # ==========================================================================
    op.create_table('incidents',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('incident_number', sa.String(length=50), nullable=False),
    sa.Column('reported_by_id', sa.Uuid(), nullable=False),
    sa.Column('worker_id', sa.Uuid(), nullable=False),
    sa.Column('employer_id', sa.Uuid(), nullable=True),
    sa.Column('incident_date', sa.DateTime(timezone=True), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('incident_type', sa.String(length=30), nullable=False),
    sa.Column('severity', sa.String(length=20), nullable=False),
    sa.Column('location', sa.String(length=255), nullable=True),
    sa.Column('status', sa.String(length=20), server_default='reported', nullable=False),
    *_timestamps(),
    sa.ForeignKeyConstraint(['reported_by_id'], ['users.id']),
    sa.ForeignKeyConstraint(['worker_id'], ['users.id']),
    sa.ForeignKeyConstraint(['employer_id'], ['users.id']),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('incident_number')
    )
    op.create_index('idx_incidents_worker', 'incidents', ['worker_id'])
    op.create_index('idx_incidents_employer', 'incidents', ['employer_id'])

    op.create_table('cases',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('case_number', sa.String(length=50), nullable=False),
    sa.Column('worker_id', sa.Uuid(), nullable=False),
    sa.Column('employer_id', sa.Uuid(), nullable=False),
    sa.Column('case_manager_id', sa.Uuid(), nullable=False),
    sa.Column('clinician_id', sa.Uuid(), nullable=True),
    sa.Column('incident_id', sa.Uuid(), nullable=False),
    sa.Column('status', sa.String(length=20), server_default='new', nullable=False),
    sa.Column('priority', sa.String(length=20), server_default='medium', nullable=False),
    sa.Column('injury_details', sa.JSON(), nullable=False),
    sa.Column('work_restrictions', sa.JSON(), nullable=True),
    sa.Column('expected_return_date', sa.Date(), nullable=True),
    sa.Column('actual_return_date', sa.Date(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['worker_id'], ['users.id']),
    sa.ForeignKeyConstraint(['employer_id'], ['users.id']),
    sa.ForeignKeyConstraint(['case_manager_id'], ['users.id']),
    sa.ForeignKeyConstraint(['clinician_id'], ['users.id']),
    sa.ForeignKeyConstraint(['incident_id'], ['incidents.id']),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('case_number'),
    sa.UniqueConstraint('incident_id', name='uq_case_incident')
    )
    op.create_index('idx_cases_worker', 'cases', ['worker_id'])
    op.create_index('idx_cases_employer', 'cases', ['employer_id'])
    op.create_index('idx_cases_case_manager', 'cases', ['case_manager_id'])
    op.create_index('idx_cases_clinician_status', 'cases', ['clinician_id', 'status'])
    op.create_index('idx_cases_created', 'cases', ['created_at'])

    op.create_table('case_notes',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('case_id', sa.Uuid(), nullable=False),
    sa.Column('author_id', sa.Uuid(), nullable=True),
    sa.Column('content', sa.Text(), nullable=False),
    sa.Column('note_type', sa.String(length=30), server_default='general', nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_case_notes_case', 'case_notes', ['case_id', 'created_at'])

    # ==========================================================================
    # Appointments
    # ==========================================================================
    op.create_table('appointments',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('case_id', sa.Uuid(), nullable=False),
    sa.Column('worker_id', sa.Uuid(), nullable=False),
    sa.Column('clinician_id', sa.Uuid(), nullable=False),
    sa.Column('appointment_type', sa.String(length=30), nullable=False),
    sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('duration_minutes', sa.Integer(), server_default='60', nullable=False),
    sa.Column('location', sa.String(length=20), server_default='clinic', nullable=False),
    sa.Column('status', sa.String(length=20), server_default='scheduled', nullable=False),
    sa.Column('purpose', sa.Text(), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('cancelled_by_id', sa.Uuid(), nullable=True),
    sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('cancellation_reason', sa.Text(), nullable=True),
    sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['worker_id'], ['users.id']),
    sa.ForeignKeyConstraint(['clinician_id'], ['users.id']),
    sa.ForeignKeyConstraint(['cancelled_by_id'], ['users.id']),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_appointments_clinician_time', 'appointments', ['clinician_id', 'scheduled_at'])
    op.create_index('idx_appointments_worker_time', 'appointments', ['worker_id', 'scheduled_at'])
    op.create_index('idx_appointments_case', 'appointments', ['case_id'])

    # ==========================================================================
    # Check-ins & rehab
    # ==========================================================================
    op.create_table('check_ins',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('case_id', sa.Uuid(), nullable=False),
    sa.Column('worker_id', sa.Uuid(), nullable=False),
    sa.Column('check_in_date', sa.Date(), nullable=False),
    sa.Column('pain_current', sa.Integer(), nullable=False),
    sa.Column('pain_worst', sa.Integer(), nullable=True),
    sa.Column('pain_average', sa.Integer(), nullable=True),
    sa.Column('functional_status', sa.JSON(), nullable=True),
    sa.Column('medication_compliance', sa.JSON(), nullable=True),
    sa.Column('exercise_compliance', sa.JSON(), nullable=True),
    sa.Column('work_status', sa.JSON(), nullable=True),
    sa.Column('symptoms', sa.JSON(), nullable=True),
    sa.Column('concerns', sa.Text(), nullable=True),
    sa.Column('questions', sa.Text(), nullable=True),
    sa.Column('goals', sa.Text(), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('review_notes', sa.Text(), nullable=True),
    sa.Column('reviewed_by_id', sa.Uuid(), nullable=True),
    sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['worker_id'], ['users.id']),
    sa.ForeignKeyConstraint(['reviewed_by_id'], ['users.id']),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('case_id', 'worker_id', 'check_in_date', name='uq_check_in_daily')
    )
    op.create_index('idx_check_ins_worker_date', 'check_ins', ['worker_id', 'check_in_date'])

    op.create_table('rehab_plans',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('case_id', sa.Uuid(), nullable=False),
    sa.Column('clinician_id', sa.Uuid(), nullable=False),
    sa.Column('plan_name', sa.String(length=255), nullable=False),
    sa.Column('start_date', sa.Date(), nullable=False),
    sa.Column('end_date', sa.Date(), nullable=True),
    sa.Column('status', sa.String(length=20), server_default='active', nullable=False),
    sa.Column('goals', sa.JSON(), nullable=False),
    sa.Column('exercises', sa.JSON(), nullable=False),
    sa.Column('activities', sa.JSON(), nullable=False),
    sa.Column('progress_tracking', sa.JSON(), nullable=False),
    sa.Column('modifications', sa.JSON(), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    *_timestamps(),
    sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['clinician_id'], ['users.id']),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_rehab_plans_case_status', 'rehab_plans', ['case_id', 'status'])
    op.create_index('idx_rehab_plans_clinician', 'rehab_plans', ['clinician_id'])

    op.create_table('activity_logs',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('worker_id', sa.Uuid(), nullable=False),
    sa.Column('case_id', sa.Uuid(), nullable=True),
    sa.Column('clinician_id', sa.Uuid(), nullable=True),
    sa.Column('rehab_plan_id', sa.Uuid(), nullable=True),
    sa.Column('activity_type', sa.String(length=50), nullable=False),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('priority', sa.String(length=20), server_default='low', nullable=False),
    sa.Column('details', sa.JSON(), nullable=True),
    sa.Column('is_reviewed', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('review_notes', sa.Text(), nullable=True),
    sa.Column('reviewed_by_id', sa.Uuid(), nullable=True),
    sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.ForeignKeyConstraint(['worker_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['case_id'], ['cases.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['clinician_id'], ['users.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['rehab_plan_id'], ['rehab_plans.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['reviewed_by_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_activity_logs_case', 'activity_logs', ['case_id', 'created_at'])
    op.create_index('idx_activity_logs_clinician', 'activity_logs', ['clinician_id', 'created_at'])
    op.create_index('idx_activity_logs_worker', 'activity_logs', ['worker_id', 'created_at'])

    # ==========================================================================
    # Work Readiness
    # ==========================================================================
    op.create_table('work_readiness',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('worker_id', sa.Uuid(), nullable=False),
    sa.Column('team_leader_id', sa.Uuid(), nullable=True),
    sa.Column('team', sa.String(length=100), nullable=True),
    sa.Column('fatigue_level', sa.Integer(), nullable=False),
    sa.Column('pain_discomfort', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('pain_areas', sa.JSON(), nullable=False),
    sa.Column('readiness_level', sa.String(length=20), nullable=False),
    sa.Column('mood', sa.String(length=20), nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('status', sa.String(length=20), server_default='submitted', nullable=False),
    sa.Column('reviewed_by_id', sa.Uuid(), nullable=True),
    sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('follow_up_reason', sa.String(length=255), nullable=True),
    sa.Column('follow_up_notes', sa.Text(), nullable=True),
    sa.Column('cycle_start', sa.Date(), nullable=False),
    sa.Column('cycle_day', sa.Integer(), server_default='1', nullable=False),
    sa.Column('streak_days', sa.Integer(), server_default='1', nullable=False),
    sa.Column('cycle_completed', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('submitted_date', sa.Date(), nullable=False),
    sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.ForeignKeyConstraint(['worker_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['team_leader_id'], ['users.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['reviewed_by_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('worker_id', 'submitted_date', name='uq_work_readiness_worker_day')
    )
    op.create_index('idx_work_readiness_leader', 'work_readiness', ['team_leader_id', 'submitted_date'])

    op.create_table('work_readiness_assignments',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('team_leader_id', sa.Uuid(), nullable=False),
    sa.Column('worker_id', sa.Uuid(), nullable=False),
    sa.Column('team', sa.String(length=100), nullable=True),
    sa.Column('assigned_date', sa.Date(), nullable=False),
    sa.Column('due_time', sa.DateTime(timezone=True), nullable=False),
    sa.Column('status', sa.String(length=20), server_default='pending', nullable=False),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('work_readiness_id', sa.Uuid(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.ForeignKeyConstraint(['team_leader_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['worker_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['work_readiness_id'], ['work_readiness.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_wr_assignments_worker', 'work_readiness_assignments', ['worker_id', 'assigned_date'])
    op.create_index('idx_wr_assignments_leader', 'work_readiness_assignments', ['team_leader_id', 'assigned_date'])

    # ==========================================================================
    # Notifications
    # ==========================================================================
    op.create_table('notifications',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('recipient_id', sa.Uuid(), nullable=False),
    sa.Column('sender_id', sa.Uuid(), nullable=True),
    sa.Column('type', sa.String(length=50), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('message', sa.String(length=1000), nullable=False),
    sa.Column('priority', sa.String(length=20), server_default='medium', nullable=False),
    sa.Column('action_url', sa.String(length=500), nullable=True),
    sa.Column('metadata', sa.JSON(), nullable=True),
    sa.Column('dedupe_key', sa.String(length=255), nullable=True),
    sa.Column('is_read', sa.Boolean(), server_default=sa.false(), nullable=False),
    sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    sa.ForeignKeyConstraint(['recipient_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_notif_recipient_unread', 'notifications', ['recipient_id', 'is_read', 'created_at'])
    op.create_index('idx_notif_dedupe', 'notifications', ['dedupe_key', 'created_at'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('notifications')
    op.drop_table('work_readiness_assignments')
    op.drop_table('work_readiness')
    op.drop_table('activity_logs')
    op.drop_table('rehab_plans')
    op.drop_table('check_ins')
    op.drop_table('appointments')
    op.drop_table('case_notes')
    op.drop_table('cases')
    op.drop_table('incidents')
    op.drop_table('auth_logs')
    op.drop_table('users')
