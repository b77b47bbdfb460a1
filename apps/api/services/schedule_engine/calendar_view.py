"""
Calendar View Builder

Assembles what the athlete sees: a per-date workout list for a window, the
full program calendar, week and phase listings, and the workout to show
on the home screen today.

Everything is computed from one ScheduleContext in memory. Effective dates
for every slot are worked out once and inverted into a date index, so a
window of hundreds of days costs nothing per date beyond a dict lookup.

Visibility policy: locked phases are shown but flagged is_locked. The
athlete can browse everything and act only on what is unlocked.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional

from .constants import CALENDAR_BUFFER_DAYS, Phase
from .context import ScheduleContext
from .errors import ScheduleValidationError
from .periodization import describe_phase_weeks
from .resolver import MissingResolution, OverrideResolution, TemplateId, TemplateInfo, log_content_gap
from .slot_algebra import Slot, validate_slot

logger = logging.getLogger(__name__)


@dataclass
class CalendarWorkout:
    template_id: TemplateId
    name: str
    phase: Phase
    week: int
    day: int
    scheduled_date: Optional[date]
    exercise_count: int
    estimated_duration_minutes: int
    is_locked: bool = False
    is_completed: bool = False
    is_in_progress: bool = False
    is_today: bool = False
    completed_on_date: Optional[date] = None
    is_slot_override: bool = False
    is_date_override: bool = False


@dataclass
class CalendarDay:
    date: date
    workouts: List[CalendarWorkout] = field(default_factory=list)


@dataclass
class CalendarView:
    start_date: date
    end_date: date
    days: List[CalendarDay]
    program_start_date: date
    program_end_date: date
    training_days: List[int]
    current_phase: Phase
    current_week: int
    current_day: int
    unlocked_phases: List[Phase]
    today_focus_template_id: Optional[TemplateId] = None


@dataclass
class CalendarMeta:
    program_start_date: date
    program_end_date: date
    total_workouts: int
    completed_workouts: int
    weeks_per_phase: int
    workouts_per_week: int
    training_days: List[int]
    unlocked_phases: List[Phase]
    current_phase: Phase
    current_week: int
    current_day: int
    category_id: int
    skill_level: str
    is_paused: bool
    reassessment_pending_phase: Optional[Phase]
    today_focus_template_id: Optional[TemplateId] = None


@dataclass
class TodayWorkout:
    template_id: TemplateId
    name: str
    slot: Slot
    source: str  # in_progress | focus | first_incomplete | scheduled
    exercise_count: int
    estimated_duration_minutes: int
    is_in_progress: bool = False
    is_focus_override: bool = False
    is_slot_override: bool = False
    is_first_incomplete: bool = False


def _workout_entry(
    context: ScheduleContext,
    slot: Slot,
    template: TemplateInfo,
    day: Optional[date],
    today: date,
) -> CalendarWorkout:
    program = context.program
    in_progress = context.in_progress_template_id == template.id
    return CalendarWorkout(
        template_id=template.id,
        name=template.name,
        phase=slot.phase,
        week=slot.week,
        day=slot.day,
        scheduled_date=day,
        exercise_count=template.exercise_count,
        estimated_duration_minutes=template.estimated_duration_minutes,
        is_locked=not program.is_phase_unlocked(slot.phase),
        is_completed=context.is_completed(template.id),
        is_in_progress=in_progress,
        is_today=day == today and (slot == program.current_slot or in_progress),
        completed_on_date=context.completion_dates.get(template.id),
        is_slot_override=slot in context.overrides.slot_overrides,
        is_date_override=slot in context.overrides.date_overrides,
    )


def _template_for(context: ScheduleContext, slot: Slot) -> Optional[TemplateInfo]:
    resolution = context.resolver.resolve(slot)
    if isinstance(resolution, MissingResolution):
        log_content_gap(resolution)
        return None
    template = context.library.get(resolution.template_id)
    if template is None:
        logger.warning(
            f"Override points at unknown template for slot {slot.key}",
            extra={"extra_fields": {"event": "content_gap", "slot": slot.key}},
        )
    return template


def _pinned_completions(context: ScheduleContext, day: date, present: set, today: date) -> List[CalendarWorkout]:
    """Workouts completed on this date that are scheduled somewhere else."""
    pinned = []
    for session in context.sessions:
        if not session.is_completed or session.completed_on != day:
            continue
        if session.template_id in present:
            continue
        template = context.library.get(session.template_id)
        if template is None:
            continue
        slot = context.resolver.find_slot_for_template(template.id)
        if slot is None:
            slot = Slot(template.phase, template.week, template.day)
        entry = _workout_entry(context, slot, template, day, today)
        entry.is_completed = True
        entry.is_today = False
        entry.is_in_progress = False
        entry.completed_on_date = day
        pinned.append(entry)
        present.add(template.id)
    return pinned


def build_calendar_view(context: ScheduleContext, start: date, end: date, today: date) -> CalendarView:
    """Per-date workouts for [start, end] inclusive."""
    if end < start:
        raise ScheduleValidationError("End date must not precede start date", field="end_date")

    days: List[CalendarDay] = []
    current = start
    while current <= end:
        calendar_day = CalendarDay(date=current)
        present = set()

        for slot in context.slots_on(current):
            template = _template_for(context, slot)
            if template is None:
                continue
            calendar_day.workouts.append(_workout_entry(context, slot, template, current, today))
            present.add(template.id)

        calendar_day.workouts.extend(_pinned_completions(context, current, present, today))
        days.append(calendar_day)
        current += timedelta(days=1)

    program = context.program
    return CalendarView(
        start_date=start,
        end_date=end,
        days=days,
        program_start_date=context.start_date,
        program_end_date=context.end_date,
        training_days=program.training_days.as_list(),
        current_phase=program.current_phase,
        current_week=program.current_week,
        current_day=program.current_day,
        unlocked_phases=program.unlocked_phases(),
        today_focus_template_id=context.overrides.active_today_focus(today),
    )


def build_full_program_calendar(
    context: ScheduleContext,
    today: date,
    buffer_days: int = CALENDAR_BUFFER_DAYS,
) -> CalendarView:
    """The whole program with a display buffer either side."""
    start = context.start_date - timedelta(days=buffer_days)
    end = context.end_date + timedelta(days=buffer_days)
    return build_calendar_view(context, start, end, today)


def build_calendar_meta(context: ScheduleContext, today: date) -> CalendarMeta:
    program = context.program
    return CalendarMeta(
        program_start_date=context.start_date,
        program_end_date=context.end_date,
        total_workouts=context.total_workouts,
        completed_workouts=context.completed_session_count,
        weeks_per_phase=context.weeks_per_phase,
        workouts_per_week=context.workouts_per_week,
        training_days=program.training_days.as_list(),
        unlocked_phases=program.unlocked_phases(),
        current_phase=program.current_phase,
        current_week=program.current_week,
        current_day=program.current_day,
        category_id=program.category_id,
        skill_level=program.skill_level.value,
        is_paused=program.is_paused,
        reassessment_pending_phase=program.reassessment_pending_phase,
        today_focus_template_id=context.overrides.active_today_focus(today),
    )


def build_week_schedule(context: ScheduleContext, phase: Phase, week: int, today: date) -> List[CalendarWorkout]:
    """Every slot of one week with overrides applied, in day order."""
    validate_slot(Slot(phase, week, 1), context.weeks_per_phase, context.workouts_per_week)
    workouts = []
    for day in range(1, context.workouts_per_week + 1):
        slot = Slot(phase, week, day)
        template = _template_for(context, slot)
        if template is None:
            continue
        workouts.append(_workout_entry(context, slot, template, context.effective_date(slot), today))
    return workouts


def build_phase_overview(context: ScheduleContext, phase: Phase, today: date) -> Dict:
    """Week-by-week listing of a phase, labelled with its periodization focus."""
    weeks = []
    for info in describe_phase_weeks(context.weeks_per_phase):
        weeks.append({
            **info,
            "workouts": build_week_schedule(context, phase, info["user_week"], today),
        })
    return {
        "phase": phase,
        "is_locked": not context.program.is_phase_unlocked(phase),
        "override_count": context.overrides.override_count_by_phase()[phase.value],
        "weeks": weeks,
    }


def select_today_workout(context: ScheduleContext, today: date) -> Optional[TodayWorkout]:
    """
    The workout to put in front of the athlete today.

    Priority: an in-progress session, then today's focus pick (unless it is
    already done), then the first unfinished workout of the current week,
    then the scheduled slot itself.
    """
    program = context.program
    resolver = context.resolver

    def build(template_id, slot, source, **flags) -> Optional[TodayWorkout]:
        template = context.library.get(template_id)
        if template is None:
            return None
        return TodayWorkout(
            template_id=template.id,
            name=template.name,
            slot=slot,
            source=source,
            exercise_count=template.exercise_count,
            estimated_duration_minutes=template.estimated_duration_minutes,
            **flags,
        )

    in_progress = context.in_progress_template_id
    if in_progress is not None:
        slot = resolver.find_slot_for_template(in_progress, not_before=program.current_slot) or program.current_slot
        found = build(in_progress, slot, "in_progress", is_in_progress=True)
        if found:
            return found

    focus = context.overrides.active_today_focus(today)
    if focus is not None and not context.is_completed(focus):
        slot = resolver.find_slot_for_template(focus, not_before=program.current_slot) or program.current_slot
        found = build(focus, slot, "focus", is_focus_override=True)
        if found:
            return found

    for day in range(1, context.workouts_per_week + 1):
        slot = Slot(program.current_phase, program.current_week, day)
        template_id = resolver.resolve_template_id(slot)
        if template_id is None or context.is_completed(template_id):
            continue
        is_override = isinstance(resolver.resolve(slot), OverrideResolution)
        source = "scheduled" if slot == program.current_slot else "first_incomplete"
        found = build(
            template_id,
            slot,
            source,
            is_slot_override=is_override,
            is_first_incomplete=slot != program.current_slot,
        )
        if found:
            return found

    template_id = resolver.resolve_template_id(program.current_slot)
    if template_id is None:
        return None
    return build(template_id, program.current_slot, "scheduled")


def build_progress_summary(context: ScheduleContext) -> Dict:
    program = context.program
    by_phase = dict(context.completed_sessions_by_phase)
    completed_total = context.completed_session_count
    in_phase = context.completed_in_phase(program.current_phase)
    expected = program.expected_workouts_per_phase
    return {
        "total_workouts": context.total_workouts,
        "completed_workouts": completed_total,
        "completed_by_phase": by_phase,
        "overall_completion_rate": round(completed_total / context.total_workouts, 4) if context.total_workouts else 0.0,
        "current_phase": program.current_phase,
        "current_phase_completed": in_phase,
        "current_phase_expected": expected,
        "current_phase_completion_rate": round(min(1.0, in_phase / expected), 4) if expected else 0.0,
        "overrides_by_phase": context.overrides.override_count_by_phase(),
        "unlocked_phases": program.unlocked_phases(),
    }
