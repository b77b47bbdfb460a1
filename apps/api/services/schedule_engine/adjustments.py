"""
Manual schedule adjustments: swap two workouts, move a workout to a date.

Swap exchanges content between two slots of the same week. Move changes
the date a slot falls on and leaves its content alone.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from .context import ScheduleContext
from .errors import ContentUnavailableError, ScheduleConflictError, ScheduleValidationError
from .overrides import OverrideState
from .resolver import TemplateId
from .slot_algebra import Slot, validate_slot


@dataclass(frozen=True)
class SwapResult:
    overrides: OverrideState
    source: Slot
    target: Slot
    source_template_id: TemplateId  # now at source
    target_template_id: TemplateId  # now at target


@dataclass(frozen=True)
class MoveResult:
    applied: bool
    overrides: OverrideState
    source: Slot
    original_date: date
    target_date: date
    displaced_slots: Tuple[Slot, ...] = ()

    @property
    def displaced_slot(self) -> Optional[Slot]:
        return self.displaced_slots[0] if self.displaced_slots else None

    def to_dict(self) -> dict:
        return {
            "applied": self.applied,
            "source": self.source.to_dict(),
            "original_date": self.original_date.isoformat(),
            "target_date": self.target_date.isoformat(),
            "displaced_slot": self.displaced_slot.to_dict() if self.displaced_slot else None,
            "displaced_slots": [slot.to_dict() for slot in self.displaced_slots],
            "displaced_to": self.original_date.isoformat() if self.displaced_slot else None,
        }


def _require_unlocked(context: ScheduleContext, slot: Slot) -> None:
    if not context.program.is_phase_unlocked(slot.phase):
        raise ScheduleConflictError(f"{slot.phase.value} is locked", reason="phase_locked")


def _require_template(context: ScheduleContext, slot: Slot) -> TemplateId:
    template_id = context.resolver.resolve_template_id(slot)
    if template_id is None:
        raise ContentUnavailableError("Workout content is unavailable")
    return template_id


def _require_not_completed(context: ScheduleContext, template_id: TemplateId, verb: str) -> None:
    if context.is_completed(template_id):
        raise ScheduleConflictError(f"Cannot {verb} a completed workout", reason="workout_completed")


def swap_workouts(context: ScheduleContext, source: Slot, target: Slot) -> SwapResult:
    """
    Exchange the templates shown in two slots of the same phase and week.

    Any earlier overrides at either slot are replaced. Assignments that land
    back on the default template are dropped rather than stored.
    """
    validate_slot(source, context.weeks_per_phase, context.workouts_per_week)
    validate_slot(target, context.weeks_per_phase, context.workouts_per_week)

    if source == target:
        raise ScheduleValidationError("Cannot swap a workout with itself", field="target")
    if source.phase != target.phase:
        raise ScheduleValidationError("Workouts can only be swapped within the same phase", field="phase")
    if source.week != target.week:
        raise ScheduleValidationError("Workouts can only be swapped within the same week", field="week")

    _require_unlocked(context, source)

    source_template = _require_template(context, source)
    target_template = _require_template(context, target)
    _require_not_completed(context, source_template, "swap")
    _require_not_completed(context, target_template, "swap")

    resolver = context.resolver
    assignments = {source: target_template, target: source_template}
    kept = {
        slot: template_id
        for slot, template_id in assignments.items()
        if template_id != resolver.default_template_id(slot)
    }
    overrides = context.overrides.without_slot_overrides([source, target]).with_slot_overrides(kept)

    return SwapResult(
        overrides=overrides,
        source=source,
        target=target,
        source_template_id=target_template,
        target_template_id=source_template,
    )


def _set_date(overrides: OverrideState, context: ScheduleContext, slot: Slot, effective: date) -> OverrideState:
    if effective == context.default_date(slot):
        return overrides.without_date_override(slot)
    return overrides.with_date_override(slot, effective)


def move_workout_to_date(context: ScheduleContext, source: Slot, target_date: date) -> MoveResult:
    """
    Put a slot on a different calendar date.

    Every slot already on the target date trades places with it: each one
    takes the source's original date, so the target date ends up holding the
    source alone. Content stays where it is.
    """
    validate_slot(source, context.weeks_per_phase, context.workouts_per_week)
    if target_date < context.start_date:
        raise ScheduleValidationError("Cannot move a workout before the program start", field="target_date")

    _require_unlocked(context, source)
    source_template = _require_template(context, source)
    _require_not_completed(context, source_template, "move")

    original_date = context.effective_date(source)
    if target_date == original_date:
        return MoveResult(
            applied=False,
            overrides=context.overrides,
            source=source,
            original_date=original_date,
            target_date=target_date,
        )

    occupants = [slot for slot in context.slots_on(target_date) if slot != source]
    for displaced in occupants:
        _require_unlocked(context, displaced)
        displaced_template = context.resolver.resolve_template_id(displaced)
        if displaced_template is not None:
            _require_not_completed(context, displaced_template, "move onto")

    overrides = _set_date(context.overrides, context, source, target_date)
    for displaced in occupants:
        overrides = _set_date(overrides, context, displaced, original_date)

    return MoveResult(
        applied=True,
        overrides=overrides,
        source=source,
        original_date=original_date,
        target_date=target_date,
        displaced_slots=tuple(occupants),
    )
