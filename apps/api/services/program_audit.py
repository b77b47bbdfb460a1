"""
Program Modification Audit Service

Tracks every change to an athlete's program position and schedule.
Provides an audit trail for support, analytics, and manual rollback.
"""

from uuid import UUID
from typing import Optional
from sqlalchemy.orm import Session

from models import ProgramModificationLog, TrainingProgram


def serialize_program(program: TrainingProgram) -> dict:
    """Serialize program position and gating to a JSON-compatible dict."""
    def iso(value):
        return value.isoformat() if value else None

    return {
        "skill_level": program.skill_level,
        "current_phase": program.current_phase,
        "current_week": program.current_week,
        "current_day": program.current_day,
        "weeks_per_phase": program.weeks_per_phase,
        "training_days": list(program.training_days or []),
        "spp_unlocked_at": iso(program.spp_unlocked_at),
        "ssp_unlocked_at": iso(program.ssp_unlocked_at),
        "paused_at": iso(program.paused_at),
        "pause_reason": program.pause_reason,
        "reassessment_pending_phase": program.reassessment_pending_phase,
    }


def log_modification(
    db: Session,
    athlete_id: UUID,
    program_id: Optional[UUID],
    action: str,
    before_state: Optional[dict] = None,
    after_state: Optional[dict] = None,
    reason: Optional[str] = None,
    source: str = "api",
) -> ProgramModificationLog:
    """
    Log a program modification for audit trail.

    Args:
        db: Database session
        athlete_id: Athlete making the modification
        program_id: Program being modified (None once deleted)
        action: Action type (cascade_to_today, swap_workouts, advance, etc.)
        before_state: JSON-serializable state before modification
        after_state: JSON-serializable state after modification
        reason: Optional athlete-provided reason
        source: Source of modification (api, web, mobile, coach)

    Returns:
        Created ProgramModificationLog entry
    """
    log_entry = ProgramModificationLog(
        athlete_id=athlete_id,
        program_id=program_id,
        action=action,
        before_state=before_state,
        after_state=after_state,
        reason=reason,
        source=source,
    )
    db.add(log_entry)
    # Don't commit here - let the caller handle transaction
    return log_entry


def log_schedule_change(
    db: Session,
    program: TrainingProgram,
    action: str,
    before_overrides: dict,
    after_overrides: dict,
    details: Optional[dict] = None,
    reason: Optional[str] = None,
) -> ProgramModificationLog:
    """Log a change to the override record (cascade, swap, move, focus, phase reset)."""
    after_state = dict(after_overrides)
    if details:
        after_state["details"] = details
    return log_modification(
        db=db,
        athlete_id=program.athlete_id,
        program_id=program.id,
        action=action,
        before_state=before_overrides,
        after_state=after_state,
        reason=reason,
    )


def log_program_transition(
    db: Session,
    program: TrainingProgram,
    action: str,
    before_state: dict,
    reason: Optional[str] = None,
) -> ProgramModificationLog:
    """Log a state-machine transition. Call after the row has been updated."""
    return log_modification(
        db=db,
        athlete_id=program.athlete_id,
        program_id=program.id,
        action=action,
        before_state=before_state,
        after_state=serialize_program(program),
        reason=reason,
    )
