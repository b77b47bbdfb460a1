"""
Intake Service

Turns an intake questionnaire into a program, records reassessment
snapshots, and handles intake redo.

Intake responses are never deleted: they are the athlete's assessment
history even when the program itself is thrown away.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.config import settings
from models import IntakeResponse, ProgramModificationLog, ScheduleOverride, TrainingProgram, WorkoutSession
from services.program_audit import log_modification, serialize_program
from services.schedule_engine import Phase, ScheduleConflictError, ScheduleValidationError, SkillLevel, TrainingDays
from services.schedule_engine.constants import IntakeType
from services.schedule_engine.periodization import calculate_weeks_per_phase
from services.schedule_engine.progression import ReassessmentOutcome

logger = logging.getLogger(__name__)


def skill_level_for_experience(years_of_experience: float) -> SkillLevel:
    """Initial placement: under a year Novice, under three Moderate, else Advanced."""
    if years_of_experience < 1:
        return SkillLevel.NOVICE
    if years_of_experience < 3:
        return SkillLevel.MODERATE
    return SkillLevel.ADVANCED


def resolve_training_days(selected: Optional[List[int]], days_per_week: int) -> TrainingDays:
    days = TrainingDays.from_config(selected, days_per_week)
    if selected and days.per_week != days_per_week:
        raise ScheduleValidationError(
            f"Selected {days.per_week} training days but asked for {days_per_week} per week",
            field="selected_training_days",
        )
    return days


def latest_intake(db: Session, athlete_id: UUID) -> Optional[IntakeResponse]:
    return (
        db.query(IntakeResponse)
        .filter(IntakeResponse.athlete_id == athlete_id)
        .order_by(IntakeResponse.completed_at.desc())
        .first()
    )


def intake_history(db: Session, athlete_id: UUID) -> List[IntakeResponse]:
    """Every intake and reassessment snapshot, newest first. Survives program deletion."""
    return (
        db.query(IntakeResponse)
        .filter(IntakeResponse.athlete_id == athlete_id)
        .order_by(IntakeResponse.completed_at.desc())
        .all()
    )


def complete_intake(
    db: Session,
    athlete_id: UUID,
    category_id: int,
    years_of_experience: int,
    preferred_training_days_per_week: int,
    now: datetime,
    selected_training_days: Optional[List[int]] = None,
    weeks_until_season: Optional[int] = None,
    age_group: Optional[str] = None,
) -> TrainingProgram:
    """
    Store an initial intake and create the athlete's program at GPP week 1 day 1.

    Raises ScheduleConflictError if the athlete already has a program;
    intake redo goes through delete_program first.
    """
    existing = db.query(TrainingProgram).filter(TrainingProgram.athlete_id == athlete_id).first()
    if existing:
        raise ScheduleConflictError("A program already exists for this athlete", reason="program_exists")

    training_days = resolve_training_days(selected_training_days, preferred_training_days_per_week)
    total_weeks = weeks_until_season or settings.DEFAULT_TOTAL_PROGRAM_WEEKS
    weeks_per_phase = calculate_weeks_per_phase(total_weeks)
    skill_level = skill_level_for_experience(years_of_experience)

    intake = IntakeResponse(
        athlete_id=athlete_id,
        category_id=category_id,
        years_of_experience=years_of_experience,
        preferred_training_days_per_week=preferred_training_days_per_week,
        selected_training_days=training_days.as_list(),
        weeks_until_season=weeks_until_season,
        age_group=age_group,
        assigned_skill_level=skill_level.value,
        intake_type=IntakeType.INITIAL.value,
        completed_at=now,
    )
    db.add(intake)
    db.flush()

    program = TrainingProgram(
        athlete_id=athlete_id,
        intake_response_id=intake.id,
        category_id=category_id,
        skill_level=skill_level.value,
        age_group=age_group,
        start_date=now.date(),
        total_program_weeks=total_weeks,
        weeks_per_phase=weeks_per_phase,
        training_days=training_days.as_list(),
        current_phase=Phase.GPP.value,
        current_week=1,
        current_day=1,
        phase_started_at=now,
        cycle_started_at=now,
    )
    db.add(program)
    db.flush()

    log_modification(
        db=db,
        athlete_id=athlete_id,
        program_id=program.id,
        action="create_program",
        after_state=serialize_program(program),
    )
    logger.info(
        "Program created from intake",
        extra={
            "extra_fields": {
                "athlete_id": str(athlete_id),
                "program_id": str(program.id),
                "skill_level": skill_level.value,
                "weeks_per_phase": weeks_per_phase,
                "training_days": training_days.as_list(),
            }
        },
    )
    return program


def record_reassessment_intake(
    db: Session,
    program: TrainingProgram,
    outcome: ReassessmentOutcome,
    now: datetime,
) -> IntakeResponse:
    """Append a reassessment snapshot and point the program at it."""
    previous = latest_intake(db, program.athlete_id)
    training_days = list(program.training_days or [])

    snapshot = IntakeResponse(
        athlete_id=program.athlete_id,
        category_id=program.category_id,
        years_of_experience=previous.years_of_experience if previous else 0,
        preferred_training_days_per_week=len(training_days),
        selected_training_days=training_days,
        weeks_until_season=previous.weeks_until_season if previous else None,
        age_group=program.age_group,
        assigned_skill_level=outcome.new_skill_level.value,
        intake_type=IntakeType.REASSESSMENT.value,
        self_assessment={
            "phase_difficulty": outcome.difficulty.value,
            "energy_level": outcome.energy_level.value if outcome.energy_level else None,
            "completion_rate": outcome.completion_rate,
            "notes": outcome.notes,
        },
        previous_skill_level=outcome.previous_skill_level.value,
        skill_level_changed=outcome.skill_level_changed,
        completed_phase=outcome.completed_phase.value,
        maxes_updated=outcome.maxes_updated,
        completed_at=now,
    )
    db.add(snapshot)
    db.flush()
    program.intake_response_id = snapshot.id
    return snapshot


def delete_program(db: Session, program: TrainingProgram) -> None:
    """
    Remove a program so the athlete can redo intake.

    Intake responses, session history and the audit trail are kept; they
    are detached from the deleted program.
    """
    athlete_id = program.athlete_id
    program_id = program.id
    before = serialize_program(program)

    db.query(ScheduleOverride).filter(ScheduleOverride.program_id == program_id).delete(synchronize_session=False)
    db.query(WorkoutSession).filter(WorkoutSession.program_id == program_id).update(
        {"program_id": None}, synchronize_session=False
    )
    db.query(ProgramModificationLog).filter(ProgramModificationLog.program_id == program_id).update(
        {"program_id": None}, synchronize_session=False
    )
    db.delete(program)
    db.flush()

    log_modification(
        db=db,
        athlete_id=athlete_id,
        program_id=None,
        action="delete_program",
        before_state=before,
    )
    logger.info(
        "Program deleted for intake redo",
        extra={"extra_fields": {"athlete_id": str(athlete_id), "program_id": str(program_id)}},
    )
