from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base
import uuid

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Athlete(Base):
    __tablename__ = "athlete"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    email = Column(Text, unique=True, nullable=True)
    display_name = Column(Text, nullable=True)
    role = Column(Text, default="athlete", nullable=False)  # 'athlete', 'coach', 'admin'
    is_blocked = Column(Boolean, default=False, nullable=False)

    program = relationship("TrainingProgram", back_populates="athlete", uselist=False)


class IntakeResponse(Base):
    """
    One intake questionnaire submission.

    Kept separately from the program so intake history survives a program
    being deleted or reset. Initial intakes create the program; reassessment
    intakes are appended each time a phase reassessment completes.
    """
    __tablename__ = "intake_response"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid, ForeignKey("athlete.id"), nullable=False, index=True)

    category_id = Column(Integer, nullable=False)
    years_of_experience = Column(Integer, nullable=False, default=0)
    preferred_training_days_per_week = Column(Integer, nullable=False)
    selected_training_days = Column(JSONType, nullable=True)  # [1, 3, 5] (0=Sunday)
    weeks_until_season = Column(Integer, nullable=True)
    age_group = Column(Text, nullable=True)  # '14-17', '18-35', '36+'

    assigned_skill_level = Column(Text, nullable=False)
    intake_type = Column(Text, nullable=False, default="initial")  # 'initial' | 'reassessment'

    # Reassessment-only fields
    self_assessment = Column(JSONType, nullable=True)  # difficulty, energy, completion_rate, notes
    previous_skill_level = Column(Text, nullable=True)
    skill_level_changed = Column(Boolean, nullable=True)
    completed_phase = Column(Text, nullable=True)
    maxes_updated = Column(Boolean, nullable=True)

    completed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_intake_response_athlete_type", "athlete_id", "intake_type"),
    )


class TrainingProgram(Base):
    """
    An athlete's active periodized program (one per athlete).

    Position is the "scheduled workout" pointer: (current_phase,
    current_week, current_day). SPP and SSP open only once their unlock
    timestamp is set by a completed reassessment.
    """
    __tablename__ = "training_program"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid, ForeignKey("athlete.id"), nullable=False)
    intake_response_id = Column(Uuid, ForeignKey("intake_response.id", ondelete="SET NULL"), nullable=True)

    # Assignment
    category_id = Column(Integer, nullable=False)
    skill_level = Column(Text, nullable=False)  # 'Novice', 'Moderate', 'Advanced'
    age_group = Column(Text, nullable=True)

    # Layout
    start_date = Column(Date, nullable=False)
    total_program_weeks = Column(Integer, nullable=True)
    weeks_per_phase = Column(Integer, nullable=False, default=4)
    training_days = Column(JSONType, nullable=False)  # Sorted weekday indices, 0=Sunday

    # Position
    current_phase = Column(Text, nullable=False, default="GPP")
    current_week = Column(Integer, nullable=False, default=1)
    current_day = Column(Integer, nullable=False, default=1)
    phase_started_at = Column(DateTime(timezone=True), nullable=True)
    cycle_started_at = Column(DateTime(timezone=True), nullable=True)
    last_workout_at = Column(DateTime(timezone=True), nullable=True)

    # Phase gating
    spp_unlocked_at = Column(DateTime(timezone=True), nullable=True)
    ssp_unlocked_at = Column(DateTime(timezone=True), nullable=True)
    reassessment_pending_phase = Column(Text, nullable=True)
    gpp_reassessment_completed_at = Column(DateTime(timezone=True), nullable=True)
    spp_reassessment_completed_at = Column(DateTime(timezone=True), nullable=True)
    ssp_reassessment_completed_at = Column(DateTime(timezone=True), nullable=True)

    # Pause
    paused_at = Column(DateTime(timezone=True), nullable=True)
    pause_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    athlete = relationship("Athlete", back_populates="program")

    __table_args__ = (
        UniqueConstraint("athlete_id", name="uq_training_program_athlete"),
        CheckConstraint("weeks_per_phase BETWEEN 2 AND 8", name="ck_training_program_weeks_per_phase"),
        CheckConstraint("current_week >= 1", name="ck_training_program_current_week"),
        CheckConstraint("current_day >= 1", name="ck_training_program_current_day"),
    )


class ProgramTemplate(Base):
    """
    Static workout prescription library.

    Addressed by (category, phase, skill level, template week 1-4, day).
    Read-only to the scheduling engine.
    """
    __tablename__ = "program_template"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id = Column(Integer, nullable=False)
    phase = Column(Text, nullable=False)
    skill_level = Column(Text, nullable=False)
    week = Column(Integer, nullable=False)  # Template week 1-4
    day = Column(Integer, nullable=False)   # Training day within the week

    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    estimated_duration_minutes = Column(Integer, nullable=False, default=45)
    exercises = Column(JSONType, nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("category_id", "phase", "skill_level", "week", "day", name="uq_program_template_assignment"),
        Index("ix_program_template_category_skill", "category_id", "skill_level"),
    )


class ScheduleOverride(Base):
    """
    Per-program schedule customizations, created on first use.

    slot_overrides: [{"phase", "week", "day", "template_id"}]
    date_overrides: [{"phase", "week", "day", "date"}]
    today_focus_*:  ephemeral pick for today; lapses the next calendar day
    """
    __tablename__ = "schedule_override"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    program_id = Column(Uuid, ForeignKey("training_program.id", ondelete="CASCADE"), nullable=False)
    athlete_id = Column(Uuid, ForeignKey("athlete.id"), nullable=False)

    slot_overrides = Column(JSONType, nullable=False, default=list)
    date_overrides = Column(JSONType, nullable=False, default=list)
    today_focus_template_id = Column(Uuid, nullable=True)
    today_focus_set_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("program_id", name="uq_schedule_override_program"),
    )


class WorkoutSession(Base):
    """
    Recorded execution of a template. Written by the session recorder;
    the scheduling engine only reads status and timestamps.
    """
    __tablename__ = "workout_session"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid, ForeignKey("athlete.id"), nullable=False)
    program_id = Column(Uuid, ForeignKey("training_program.id", ondelete="SET NULL"), nullable=True)
    template_id = Column(Uuid, ForeignKey("program_template.id"), nullable=False)

    status = Column(Text, nullable=False, default="in_progress")  # in_progress | completed | abandoned
    started_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Snapshot of where the workout sat when it was done
    phase = Column(Text, nullable=True)
    week = Column(Integer, nullable=True)
    day = Column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_workout_session_program_status", "program_id", "status"),
    )


class ProgramModificationLog(Base):
    """
    Audit log for schedule and program changes.

    Actions:
    - 'cascade_to_today', 'swap_workouts', 'move_workout'
    - 'set_today_focus', 'clear_today_focus', 'reset_phase'
    - 'advance', 'pause', 'resume', 'reset'
    - 'complete_reassessment', 'trigger_reassessment', 'update_skill_level'
    - 'create_program', 'delete_program'
    """
    __tablename__ = "program_modification_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid, ForeignKey("athlete.id"), nullable=False)
    program_id = Column(Uuid, ForeignKey("training_program.id", ondelete="SET NULL"), nullable=True)

    action = Column(Text, nullable=False)
    before_state = Column(JSONType, nullable=True)
    after_state = Column(JSONType, nullable=True)
    reason = Column(Text, nullable=True)
    source = Column(Text, default="api", nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_program_modification_log_athlete_created", "athlete_id", "created_at"),
    )
