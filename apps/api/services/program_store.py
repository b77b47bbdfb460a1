"""
Program Store

Loads the scheduling aggregate for one athlete in a fixed number of
queries and writes new engine values back onto the ORM rows.

Mutating requests load the program row FOR UPDATE, so on PostgreSQL two
writers against the same program are serialized by the request
transaction (see core.database.get_db).
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from models import ProgramTemplate, ScheduleOverride, TrainingProgram, WorkoutSession
from services.schedule_engine import (
    OverrideState,
    Phase,
    ProgramState,
    ScheduleContext,
    SessionFact,
    SessionStatus,
    SkillLevel,
    Slot,
    TemplateInfo,
    TemplateLibrary,
    TrainingDays,
)

logger = logging.getLogger(__name__)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; treat naive timestamps as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class LoadedProgram:
    program: TrainingProgram
    override_row: Optional[ScheduleOverride]
    context: ScheduleContext

    @property
    def state(self) -> ProgramState:
        return self.context.program

    @property
    def overrides(self) -> OverrideState:
        return self.context.overrides


# ============ Program rows ============

def get_program(db: Session, athlete_id: UUID, for_update: bool = False) -> Optional[TrainingProgram]:
    query = db.query(TrainingProgram).filter(TrainingProgram.athlete_id == athlete_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


def program_state_from_row(row: TrainingProgram) -> ProgramState:
    reassessments = {}
    for phase, value in (
        (Phase.GPP, row.gpp_reassessment_completed_at),
        (Phase.SPP, row.spp_reassessment_completed_at),
        (Phase.SSP, row.ssp_reassessment_completed_at),
    ):
        if value is not None:
            reassessments[phase] = as_utc(value)

    return ProgramState(
        category_id=row.category_id,
        skill_level=SkillLevel(row.skill_level),
        start_date=row.start_date,
        weeks_per_phase=row.weeks_per_phase,
        training_days=TrainingDays(row.training_days),
        current_phase=Phase(row.current_phase),
        current_week=row.current_week,
        current_day=row.current_day,
        age_group=row.age_group,
        total_program_weeks=row.total_program_weeks,
        phase_started_at=as_utc(row.phase_started_at),
        cycle_started_at=as_utc(row.cycle_started_at),
        spp_unlocked_at=as_utc(row.spp_unlocked_at),
        ssp_unlocked_at=as_utc(row.ssp_unlocked_at),
        paused_at=as_utc(row.paused_at),
        pause_reason=row.pause_reason,
        reassessment_pending_phase=Phase(row.reassessment_pending_phase) if row.reassessment_pending_phase else None,
        last_workout_at=as_utc(row.last_workout_at),
        reassessments_completed_at=reassessments,
    )


def apply_program_state(row: TrainingProgram, state: ProgramState) -> None:
    """Copy a new ProgramState onto its row. Does not flush."""
    row.skill_level = state.skill_level.value
    row.weeks_per_phase = state.weeks_per_phase
    row.training_days = state.training_days.as_list()
    row.current_phase = state.current_phase.value
    row.current_week = state.current_week
    row.current_day = state.current_day
    row.phase_started_at = state.phase_started_at
    row.cycle_started_at = state.cycle_started_at
    row.last_workout_at = state.last_workout_at
    row.spp_unlocked_at = state.spp_unlocked_at
    row.ssp_unlocked_at = state.ssp_unlocked_at
    row.paused_at = state.paused_at
    row.pause_reason = state.pause_reason
    row.reassessment_pending_phase = (
        state.reassessment_pending_phase.value if state.reassessment_pending_phase else None
    )
    row.gpp_reassessment_completed_at = state.reassessments_completed_at.get(Phase.GPP)
    row.spp_reassessment_completed_at = state.reassessments_completed_at.get(Phase.SPP)
    row.ssp_reassessment_completed_at = state.reassessments_completed_at.get(Phase.SSP)


# ============ Overrides ============

def _parse_uuid(value) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def overrides_from_row(row: Optional[ScheduleOverride]) -> OverrideState:
    if row is None:
        return OverrideState()

    slot_overrides = {}
    for item in row.slot_overrides or []:
        slot = Slot(Phase(item["phase"]), int(item["week"]), int(item["day"]))
        slot_overrides[slot] = _parse_uuid(item["template_id"])

    date_overrides = {}
    for item in row.date_overrides or []:
        slot = Slot(Phase(item["phase"]), int(item["week"]), int(item["day"]))
        date_overrides[slot] = date.fromisoformat(item["date"])

    return OverrideState(
        slot_overrides=slot_overrides,
        date_overrides=date_overrides,
        today_focus_template_id=row.today_focus_template_id,
        today_focus_set_at=as_utc(row.today_focus_set_at),
    )


def save_overrides(
    db: Session,
    program: TrainingProgram,
    row: Optional[ScheduleOverride],
    state: OverrideState,
) -> Optional[ScheduleOverride]:
    """
    Write an OverrideState back.

    The row is created lazily: an empty state with no existing row writes
    nothing.
    """
    if row is None:
        if state.is_empty:
            return None
        row = ScheduleOverride(program_id=program.id, athlete_id=program.athlete_id)
        db.add(row)

    storage = state.to_storage()
    row.slot_overrides = storage["slot_overrides"]
    row.date_overrides = storage["date_overrides"]
    row.today_focus_template_id = state.today_focus_template_id
    row.today_focus_set_at = state.today_focus_set_at
    return row


# ============ Templates and sessions ============

def template_info(row: ProgramTemplate) -> TemplateInfo:
    return TemplateInfo(
        id=row.id,
        category_id=row.category_id,
        phase=Phase(row.phase),
        skill_level=SkillLevel(row.skill_level),
        week=row.week,
        day=row.day,
        name=row.name,
        description=row.description,
        exercise_count=len(row.exercises or []),
        estimated_duration_minutes=row.estimated_duration_minutes,
    )


def load_template_library(db: Session, category_id: int) -> TemplateLibrary:
    rows = db.query(ProgramTemplate).filter(ProgramTemplate.category_id == category_id).all()
    return TemplateLibrary(template_info(row) for row in rows)


def load_session_facts(db: Session, program: TrainingProgram) -> Tuple[SessionFact, ...]:
    """Completed and in-progress sessions of the current cycle."""
    rows = (
        db.query(WorkoutSession)
        .filter(
            WorkoutSession.program_id == program.id,
            WorkoutSession.status.in_([SessionStatus.COMPLETED.value, SessionStatus.IN_PROGRESS.value]),
        )
        .order_by(WorkoutSession.started_at)
        .all()
    )

    cycle_start = as_utc(program.cycle_started_at)
    facts = []
    for row in rows:
        started_at = as_utc(row.started_at)
        completed_at = as_utc(row.completed_at)
        anchor = completed_at or started_at
        if cycle_start is not None and anchor is not None and anchor < cycle_start:
            continue
        facts.append(SessionFact(
            template_id=row.template_id,
            status=SessionStatus(row.status),
            started_at=started_at,
            completed_at=completed_at,
            phase=Phase(row.phase) if row.phase else None,
        ))
    return tuple(facts)


def load_program(db: Session, athlete_id: UUID, for_update: bool = False) -> Optional[LoadedProgram]:
    """Program, override record, template library and session facts for one athlete."""
    program = get_program(db, athlete_id, for_update=for_update)
    if program is None:
        return None

    override_row = (
        db.query(ScheduleOverride)
        .filter(ScheduleOverride.program_id == program.id)
        .first()
    )
    context = ScheduleContext(
        program=program_state_from_row(program),
        library=load_template_library(db, program.category_id),
        overrides=overrides_from_row(override_row),
        sessions=load_session_facts(db, program),
    )
    return LoadedProgram(program=program, override_row=override_row, context=context)
