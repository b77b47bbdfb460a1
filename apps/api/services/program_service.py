"""
Program Service

Request-level orchestration for the scheduling engine:

    load aggregate -> pure engine call -> persist -> audit

Each public method is one atomic operation. Nothing is written until the
engine has returned a complete new state, and get_db rolls the request
transaction back on any error, so a failed operation leaves the program
and override record exactly as they were.

Engine errors are translated into API exceptions here. Content-library
gaps are logged and surfaced as a generic 503.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.config import settings
from core.exceptions import APIException, ConflictError, NotFoundError, ServiceUnavailableError, ValidationError
from models import TrainingProgram
from services import intake as intake_service
from services.program_audit import log_program_transition, log_schedule_change, serialize_program
from services.program_store import LoadedProgram, apply_program_state, load_program, save_overrides
from services.schedule_engine import (
    ContentUnavailableError,
    Difficulty,
    EnergyLevel,
    OverrideState,
    Phase,
    ScheduleConflictError,
    ScheduleError,
    ScheduleValidationError,
    SkillLevel,
    Slot,
    cascade_to_today,
    move_workout_to_date,
    swap_workouts,
)
from services.schedule_engine import calendar_view, progression

logger = logging.getLogger(__name__)


def to_api_exception(exc: ScheduleError) -> APIException:
    """Map an engine error to the API error taxonomy."""
    if isinstance(exc, ScheduleValidationError):
        return ValidationError(exc.message, field=exc.field)
    if isinstance(exc, ScheduleConflictError):
        return ConflictError(exc.message, reason=exc.reason)
    if isinstance(exc, ContentUnavailableError):
        return ServiceUnavailableError()
    return ConflictError(exc.message, reason=exc.reason)


@contextmanager
def domain_errors(operation: str, athlete_id: Optional[UUID] = None):
    """Translate engine errors raised inside the block into API exceptions."""
    try:
        yield
    except ScheduleError as e:
        level = logging.WARNING if isinstance(e, ContentUnavailableError) else logging.INFO
        logger.log(
            level,
            f"{operation} rejected: {e.reason}",
            extra={
                "extra_fields": {
                    "operation": operation,
                    "reason": e.reason,
                    "athlete_id": str(athlete_id) if athlete_id else None,
                }
            },
        )
        raise to_api_exception(e) from e


class ProgramService:
    """Scheduling operations for one athlete's program."""

    def __init__(self, db: Session, athlete_id: UUID, now: Optional[datetime] = None):
        self.db = db
        self.athlete_id = athlete_id
        self.now = now or datetime.now(timezone.utc)

    @property
    def today(self) -> date:
        return self.now.date()

    # ============ Loading / persisting ============

    def _load(self, for_update: bool = False) -> LoadedProgram:
        loaded = load_program(self.db, self.athlete_id, for_update=for_update)
        if loaded is None:
            raise NotFoundError()
        return loaded

    def _save_overrides(
        self,
        loaded: LoadedProgram,
        new_overrides: OverrideState,
        action: str,
        details: Optional[dict] = None,
        reason: Optional[str] = None,
    ) -> None:
        before = loaded.overrides.to_storage()
        loaded.override_row = save_overrides(self.db, loaded.program, loaded.override_row, new_overrides)
        log_schedule_change(
            self.db,
            loaded.program,
            action,
            before_overrides=before,
            after_overrides=new_overrides.to_storage(),
            details=details,
            reason=reason,
        )
        self.db.flush()

    def _save_state(
        self,
        loaded: LoadedProgram,
        new_state: progression.ProgramState,
        action: str,
        reason: Optional[str] = None,
    ) -> None:
        before = serialize_program(loaded.program)
        apply_program_state(loaded.program, new_state)
        log_program_transition(self.db, loaded.program, action, before_state=before, reason=reason)
        self.db.flush()
        logger.info(
            f"Program {action}",
            extra={
                "extra_fields": {
                    "athlete_id": str(self.athlete_id),
                    "program_id": str(loaded.program.id),
                    "phase": new_state.current_phase.value,
                    "week": new_state.current_week,
                    "day": new_state.current_day,
                }
            },
        )

    # ============ Reads ============

    def get_program(self) -> TrainingProgram:
        return self._load().program

    def get_calendar(self, start: date, end: date) -> calendar_view.CalendarView:
        if end < start:
            raise ValidationError("end_date must not be before start_date", field="end_date")
        if (end - start).days > settings.MAX_CALENDAR_RANGE_DAYS:
            raise ValidationError(
                f"Calendar range cannot exceed {settings.MAX_CALENDAR_RANGE_DAYS} days",
                field="end_date",
            )
        loaded = self._load()
        with domain_errors("calendar_view", self.athlete_id):
            return calendar_view.build_calendar_view(loaded.context, start, end, self.today)

    def get_full_calendar(self) -> calendar_view.CalendarView:
        loaded = self._load()
        with domain_errors("full_calendar", self.athlete_id):
            return calendar_view.build_full_program_calendar(
                loaded.context, self.today, buffer_days=settings.CALENDAR_BUFFER_DAYS
            )

    def get_calendar_meta(self) -> calendar_view.CalendarMeta:
        return calendar_view.build_calendar_meta(self._load().context, self.today)

    def get_today_workout(self) -> Optional[calendar_view.TodayWorkout]:
        return calendar_view.select_today_workout(self._load().context, self.today)

    def get_week_schedule(self, phase: Phase, week: int):
        loaded = self._load()
        with domain_errors("week_schedule", self.athlete_id):
            return calendar_view.build_week_schedule(loaded.context, phase, week, self.today)

    def get_phase_overview(self, phase: Phase) -> dict:
        return calendar_view.build_phase_overview(self._load().context, phase, self.today)

    def get_progress_summary(self) -> dict:
        return calendar_view.build_progress_summary(self._load().context)

    def get_reassessment_status(self) -> progression.ReassessmentStatus:
        context = self._load().context
        pending = context.program.reassessment_pending_phase
        completed = context.completed_in_phase(pending) if pending else 0
        return progression.reassessment_status(context.program, completed)

    # ============ Schedule mutations ============

    def cascade_to_today(self, template_id: UUID) -> dict:
        loaded = self._load(for_update=True)
        with domain_errors("cascade_to_today", self.athlete_id):
            result = cascade_to_today(loaded.context, template_id, self.today)

        if result.applied:
            self._save_overrides(loaded, result.overrides, "cascade_to_today", details=result.to_dict())
        logger.info(
            f"Cascade {result.reason}",
            extra={
                "extra_fields": {
                    "athlete_id": str(self.athlete_id),
                    "template_id": str(template_id),
                    "affected_slot_count": result.affected_slot_count,
                }
            },
        )
        return result.to_dict()

    def swap_workouts(self, source: Slot, target: Slot, reason: Optional[str] = None) -> dict:
        loaded = self._load(for_update=True)
        with domain_errors("swap_workouts", self.athlete_id):
            result = swap_workouts(loaded.context, source, target)

        details = {
            "source": source.to_dict(),
            "target": target.to_dict(),
            "source_template_id": str(result.source_template_id),
            "target_template_id": str(result.target_template_id),
        }
        self._save_overrides(loaded, result.overrides, "swap_workouts", details=details, reason=reason)
        return {"success": True, **details}

    def move_workout(self, source: Slot, target_date: date, reason: Optional[str] = None) -> dict:
        loaded = self._load(for_update=True)
        with domain_errors("move_workout", self.athlete_id):
            result = move_workout_to_date(loaded.context, source, target_date)

        if result.applied:
            self._save_overrides(loaded, result.overrides, "move_workout", details=result.to_dict(), reason=reason)
        return result.to_dict()

    def set_today_focus(self, template_id: UUID) -> dict:
        loaded = self._load(for_update=True)
        if template_id not in loaded.context.library:
            raise ValidationError("Template does not belong to your program category", field="template_id")
        new_overrides = loaded.overrides.with_today_focus(template_id, self.now)
        self._save_overrides(loaded, new_overrides, "set_today_focus", details={"template_id": str(template_id)})
        return {"success": True, "template_id": str(template_id)}

    def clear_today_focus(self) -> dict:
        loaded = self._load(for_update=True)
        if loaded.overrides.today_focus_template_id is None:
            return {"success": True, "cleared": False}
        self._save_overrides(loaded, loaded.overrides.without_today_focus(), "clear_today_focus")
        return {"success": True, "cleared": True}

    def reset_phase_to_default(self, phase: Phase) -> dict:
        loaded = self._load(for_update=True)
        removed = loaded.overrides.override_count_by_phase()[phase.value]
        if removed:
            self._save_overrides(
                loaded,
                loaded.overrides.reset_phase(phase),
                "reset_phase",
                details={"phase": phase.value, "removed": removed},
            )
        return {"success": True, "phase": phase.value, "removed_overrides": removed}

    # ============ State machine ============

    def advance(self) -> dict:
        loaded = self._load(for_update=True)
        with domain_errors("advance", self.athlete_id):
            new_state, outcome = progression.advance(loaded.state, self.now)
        self._save_state(loaded, new_state, "advance")

        # Today's focus is consumed once it has been done or has lapsed
        focus = loaded.overrides.today_focus_template_id
        if focus is not None and (
            loaded.context.is_completed(focus) or loaded.overrides.active_today_focus(self.today) is None
        ):
            self._save_overrides(loaded, loaded.overrides.without_today_focus(), "clear_today_focus")

        return {
            "status": outcome.status,
            "phase_complete": outcome.phase_complete,
            "trigger_reassessment": outcome.trigger_reassessment,
            "completed_phase": outcome.completed_phase,
            "current_phase": new_state.current_phase,
            "current_week": new_state.current_week,
            "current_day": new_state.current_day,
        }

    def pause(self, reason: Optional[str] = None) -> dict:
        loaded = self._load(for_update=True)
        with domain_errors("pause", self.athlete_id):
            new_state = progression.pause(loaded.state, self.now, reason)
        self._save_state(loaded, new_state, "pause", reason=reason)
        return {"success": True, "paused_at": new_state.paused_at}

    def resume(self) -> dict:
        loaded = self._load(for_update=True)
        with domain_errors("resume", self.athlete_id):
            new_state, was_reset = progression.resume(
                loaded.state, self.now, reset_after_days=settings.PAUSE_RESET_DAYS
            )
        self._save_state(loaded, new_state, "resume")
        message = (
            f"Program reset after a pause of {settings.PAUSE_RESET_DAYS}+ days"
            if was_reset else "Program resumed"
        )
        return {"success": True, "was_reset": was_reset, "message": message}

    def reset(self) -> dict:
        loaded = self._load(for_update=True)
        new_state = progression.reset(loaded.state, self.now)
        self._save_state(loaded, new_state, "reset")
        return {"success": True}

    def complete_reassessment(
        self,
        difficulty: Difficulty,
        energy_level: Optional[EnergyLevel] = None,
        notes: Optional[str] = None,
        maxes_updated: bool = False,
    ) -> dict:
        loaded = self._load(for_update=True)
        pending = loaded.state.reassessment_pending_phase
        completed = loaded.context.completed_in_phase(pending) if pending else 0
        with domain_errors("complete_reassessment", self.athlete_id):
            new_state, outcome = progression.complete_reassessment(
                loaded.state,
                completed,
                difficulty,
                self.now,
                energy_level=energy_level,
                notes=notes,
                maxes_updated=maxes_updated,
            )
        self._save_state(loaded, new_state, "complete_reassessment", reason=notes)
        intake_service.record_reassessment_intake(self.db, loaded.program, outcome, self.now)
        return {
            "skill_level_changed": outcome.skill_level_changed,
            "previous_skill_level": outcome.previous_skill_level,
            "new_skill_level": outcome.new_skill_level,
            "next_phase": outcome.next_phase,
            "is_full_cycle_complete": outcome.is_full_cycle_complete,
            "completion_rate": outcome.completion_rate,
        }

    def trigger_manual_reassessment(self) -> dict:
        loaded = self._load(for_update=True)
        with domain_errors("trigger_reassessment", self.athlete_id):
            new_state = progression.trigger_manual_reassessment(loaded.state)
        self._save_state(loaded, new_state, "trigger_reassessment")
        return {"success": True, "pending_phase": new_state.reassessment_pending_phase}

    def update_skill_level(self, skill_level: SkillLevel) -> dict:
        loaded = self._load(for_update=True)
        previous = loaded.state.skill_level
        with domain_errors("update_skill_level", self.athlete_id):
            new_state = progression.set_skill_level(loaded.state, skill_level)
        self._save_state(loaded, new_state, "update_skill_level")
        return {"success": True, "previous_skill_level": previous, "skill_level": new_state.skill_level}

    def delete_program(self) -> dict:
        loaded = self._load(for_update=True)
        program_id = loaded.program.id
        intake_service.delete_program(self.db, loaded.program)
        return {"success": True, "program_id": str(program_id)}
