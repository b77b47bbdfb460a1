"""training calendar schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Athletes, intake history, programs, the template library, schedule
overrides, workout sessions and the program modification audit log.
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


def upgrade() -> None:
    op.create_table(
        'athlete',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('role', sa.Text(), server_default='athlete', nullable=False),
        sa.Column('is_blocked', sa.Boolean(), server_default=sa.false(), nullable=False),
    )
    op.create_index('ix_athlete_email', 'athlete', ['email'], unique=True)

    op.create_table(
        'intake_response',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('years_of_experience', sa.Integer(), server_default='0', nullable=False),
        sa.Column('preferred_training_days_per_week', sa.Integer(), nullable=False),
        sa.Column('selected_training_days', postgresql.JSONB(), nullable=True),
        sa.Column('weeks_until_season', sa.Integer(), nullable=True),
        sa.Column('age_group', sa.Text(), nullable=True),
        sa.Column('assigned_skill_level', sa.Text(), nullable=False),
        sa.Column('intake_type', sa.Text(), server_default='initial', nullable=False),
        sa.Column('self_assessment', postgresql.JSONB(), nullable=True),
        sa.Column('previous_skill_level', sa.Text(), nullable=True),
        sa.Column('skill_level_changed', sa.Boolean(), nullable=True),
        sa.Column('completed_phase', sa.Text(), nullable=True),
        sa.Column('maxes_updated', sa.Boolean(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['athlete_id'], ['athlete.id'], ),
    )
    op.create_index('ix_intake_response_athlete_id', 'intake_response', ['athlete_id'])
    op.create_index('ix_intake_response_athlete_type', 'intake_response', ['athlete_id', 'intake_type'])

    op.create_table(
        'training_program',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('intake_response_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('skill_level', sa.Text(), nullable=False),
        sa.Column('age_group', sa.Text(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('total_program_weeks', sa.Integer(), nullable=True),
        sa.Column('weeks_per_phase', sa.Integer(), server_default='4', nullable=False),
        sa.Column('training_days', postgresql.JSONB(), nullable=False),
        sa.Column('current_phase', sa.Text(), server_default='GPP', nullable=False),
        sa.Column('current_week', sa.Integer(), server_default='1', nullable=False),
        sa.Column('current_day', sa.Integer(), server_default='1', nullable=False),
        sa.Column('phase_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cycle_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_workout_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('spp_unlocked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ssp_unlocked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reassessment_pending_phase', sa.Text(), nullable=True),
        sa.Column('gpp_reassessment_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('spp_reassessment_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ssp_reassessment_completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paused_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('pause_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['athlete_id'], ['athlete.id'], ),
        sa.ForeignKeyConstraint(['intake_response_id'], ['intake_response.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('athlete_id', name='uq_training_program_athlete'),
        sa.CheckConstraint('weeks_per_phase BETWEEN 2 AND 8', name='ck_training_program_weeks_per_phase'),
        sa.CheckConstraint('current_week >= 1', name='ck_training_program_current_week'),
        sa.CheckConstraint('current_day >= 1', name='ck_training_program_current_day'),
    )

    op.create_table(
        'program_template',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('phase', sa.Text(), nullable=False),
        sa.Column('skill_level', sa.Text(), nullable=False),
        sa.Column('week', sa.Integer(), nullable=False),
        sa.Column('day', sa.Integer(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('estimated_duration_minutes', sa.Integer(), server_default='45', nullable=False),
        sa.Column('exercises', postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.UniqueConstraint('category_id', 'phase', 'skill_level', 'week', 'day', name='uq_program_template_assignment'),
    )
    op.create_index('ix_program_template_category_skill', 'program_template', ['category_id', 'skill_level'])

    op.create_table(
        'schedule_override',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('program_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('athlete_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('slot_overrides', postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('date_overrides', postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('today_focus_template_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('today_focus_set_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['program_id'], ['training_program.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['athlete_id'], ['athlete.id'], ),
        sa.UniqueConstraint('program_id', name='uq_schedule_override_program'),
    )

    op.create_table(
        'workout_session',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('program_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('template_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('status', sa.Text(), server_default='in_progress', nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('phase', sa.Text(), nullable=True),
        sa.Column('week', sa.Integer(), nullable=True),
        sa.Column('day', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['athlete_id'], ['athlete.id'], ),
        sa.ForeignKeyConstraint(['program_id'], ['training_program.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['template_id'], ['program_template.id'], ),
    )
    op.create_index('ix_workout_session_program_status', 'workout_session', ['program_id', 'status'])

    op.create_table(
        'program_modification_log',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('athlete_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('program_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('before_state', postgresql.JSONB(), nullable=True),
        sa.Column('after_state', postgresql.JSONB(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('source', sa.Text(), server_default='api', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['athlete_id'], ['athlete.id'], ),
        sa.ForeignKeyConstraint(['program_id'], ['training_program.id'], ondelete='SET NULL'),
    )
    op.create_index(
        'ix_program_modification_log_athlete_created',
        'program_modification_log',
        ['athlete_id', 'created_at'],
    )


def downgrade() -> None:
    op.drop_index('ix_program_modification_log_athlete_created', table_name='program_modification_log')
    op.drop_table('program_modification_log')
    op.drop_index('ix_workout_session_program_status', table_name='workout_session')
    op.drop_table('workout_session')
    op.drop_table('schedule_override')
    op.drop_index('ix_program_template_category_skill', table_name='program_template')
    op.drop_table('program_template')
    op.drop_table('training_program')
    op.drop_index('ix_intake_response_athlete_type', table_name='intake_response')
    op.drop_index('ix_intake_response_athlete_id', table_name='intake_response')
    op.drop_table('intake_response')
    op.drop_index('ix_athlete_email', table_name='athlete')
    op.drop_table('athlete')
