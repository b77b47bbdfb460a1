"""
Cascade Engine ("start = swap")

Starting a workout that is scheduled for a later day pulls it into today's
slot. Every workout between today and the selected slot shifts one slot
later, so nothing is dropped:

    before:  today=A  B  C  D(selected)
    after:   today=D  A  B  C

Rules:
- Today must be a training day, otherwise nothing happens.
- A selected slot already at today's position is a no-op.
- Workouts are never moved backward in time.
- The whole window must be free of completed workouts, otherwise the
  cascade is refused and the override record is left untouched.
- Only overrides that differ from the default template are stored.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from .context import ScheduleContext
from .errors import ContentUnavailableError, ScheduleConflictError, ScheduleValidationError
from .overrides import OverrideState
from .resolver import TemplateId
from .slot_algebra import Slot, absolute_index, slot_for_index

logger = logging.getLogger(__name__)

NOT_TRAINING_DAY = "not_training_day"
ALREADY_TODAY = "already_today"
WORKOUT_IN_PAST = "workout_in_past"
CASCADE_COMPLETED = "cascade_completed"


@dataclass(frozen=True)
class CascadeResult:
    applied: bool
    reason: str
    affected_slot_count: int
    overrides: OverrideState
    from_slot: Optional[Slot] = None
    to_slot: Optional[Slot] = None

    def to_dict(self) -> dict:
        return {
            "applied": self.applied,
            "reason": self.reason,
            "affected_slot_count": self.affected_slot_count,
            "from_slot": self.from_slot.to_dict() if self.from_slot else None,
            "to_slot": self.to_slot.to_dict() if self.to_slot else None,
        }


def _noop(context: ScheduleContext, reason: str, from_slot=None, to_slot=None) -> CascadeResult:
    return CascadeResult(
        applied=False,
        reason=reason,
        affected_slot_count=0,
        overrides=context.overrides,
        from_slot=from_slot,
        to_slot=to_slot,
    )


def shift_window(window: List[Slot], current: Dict[Slot, TemplateId], selected: TemplateId) -> Dict[Slot, TemplateId]:
    """
    Right-shift the templates of a slot window by one position.

    The first slot receives the selected template; every later slot takes
    the template its predecessor held before the shift.
    """
    shifted = {window[0]: selected}
    for previous, slot in zip(window, window[1:]):
        shifted[slot] = current[previous]
    return shifted


def cascade_to_today(context: ScheduleContext, selected_template_id: TemplateId, today: date) -> CascadeResult:
    """
    Pull the slot holding selected_template_id into today's position.

    Raises:
        ScheduleValidationError: template is not scheduled anywhere in the program
        ScheduleConflictError: selected phase is locked, or the window holds a
            completed workout
    """
    wpp = context.weeks_per_phase
    wpw = context.workouts_per_week

    today_slot = context.slot_for_today(today)
    if today_slot is None:
        return _noop(context, NOT_TRAINING_DAY)

    resolver = context.resolver
    selected_slot = resolver.find_slot_for_template(selected_template_id, not_before=today_slot)
    if selected_slot is None:
        raise ScheduleValidationError(
            "Workout is not scheduled in this program",
            field="template_id",
            reason="template_not_in_program",
        )

    today_idx = absolute_index(today_slot, wpp, wpw)
    selected_idx = absolute_index(selected_slot, wpp, wpw)

    if selected_idx == today_idx:
        return _noop(context, ALREADY_TODAY, selected_slot, today_slot)
    if selected_idx < today_idx:
        return _noop(context, WORKOUT_IN_PAST, selected_slot, today_slot)

    if not context.program.is_phase_unlocked(selected_slot.phase):
        raise ScheduleConflictError(
            f"{selected_slot.phase.value} is locked",
            reason="phase_locked",
        )

    window = [slot_for_index(i, wpp, wpw) for i in range(today_idx, selected_idx + 1)]

    current: Dict[Slot, TemplateId] = {}
    for slot in window:
        template_id = resolver.resolve_template_id(slot)
        if template_id is None:
            raise ContentUnavailableError("Workout content is unavailable for part of this range")
        if context.is_completed(template_id):
            logger.info(
                "Cascade blocked by completed workout",
                extra={
                    "extra_fields": {
                        "event": "cascade_blocked",
                        "blocking_slot": slot.key,
                        "from_slot": selected_slot.key,
                        "to_slot": today_slot.key,
                    }
                },
            )
            raise ScheduleConflictError(
                "Cannot reschedule through a completed workout",
                reason="completed_in_range",
            )
        current[slot] = template_id

    shifted = shift_window(window, current, selected_template_id)

    # Keep only real deviations from the default layout
    kept = {
        slot: template_id
        for slot, template_id in shifted.items()
        if template_id != resolver.default_template_id(slot)
    }
    overrides = context.overrides.without_slot_overrides(window).with_slot_overrides(kept)

    return CascadeResult(
        applied=True,
        reason=CASCADE_COMPLETED,
        affected_slot_count=len(window),
        overrides=overrides,
        from_slot=selected_slot,
        to_slot=today_slot,
    )
