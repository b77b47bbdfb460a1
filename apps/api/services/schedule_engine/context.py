"""
ScheduleContext

The aggregate every scheduling operation works on: program state, the
override record, the category's template library and the completed-session
facts. It is loaded once per request; operations return new values and the
program store persists them.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from functools import cached_property
from typing import Dict, FrozenSet, List, Optional, Tuple

from .constants import PHASE_ORDER, Phase, SessionStatus
from .overrides import OverrideState
from .progression import ProgramState
from .resolver import TemplateId, TemplateLibrary, TemplateResolver
from .slot_algebra import (
    Slot,
    date_for_slot,
    iter_program_slots,
    program_end_date,
    total_workouts,
)


@dataclass(frozen=True)
class SessionFact:
    """A recorded workout session, as reported by the session recorder."""
    template_id: TemplateId
    status: SessionStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    phase: Optional[Phase] = None  # Phase the session was done in

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    @property
    def completed_on(self) -> Optional[date]:
        return self.completed_at.date() if self.completed_at else None


@dataclass(frozen=True)
class ScheduleContext:
    program: ProgramState
    library: TemplateLibrary
    overrides: OverrideState = field(default_factory=OverrideState)
    sessions: Tuple[SessionFact, ...] = ()

    def with_overrides(self, overrides: OverrideState) -> "ScheduleContext":
        return replace(self, overrides=overrides)

    # Program geometry

    @property
    def weeks_per_phase(self) -> int:
        return self.program.weeks_per_phase

    @property
    def workouts_per_week(self) -> int:
        return self.program.workouts_per_week

    @property
    def total_workouts(self) -> int:
        return total_workouts(self.weeks_per_phase, self.workouts_per_week)

    @property
    def start_date(self) -> date:
        return self.program.start_date

    @property
    def end_date(self) -> date:
        return program_end_date(self.start_date, self.program.training_days, self.weeks_per_phase)

    def all_slots(self) -> List[Slot]:
        return list(iter_program_slots(self.weeks_per_phase, self.workouts_per_week))

    # Templates

    @cached_property
    def resolver(self) -> TemplateResolver:
        return TemplateResolver(
            library=self.library,
            category_id=self.program.category_id,
            skill_level=self.program.skill_level,
            weeks_per_phase=self.weeks_per_phase,
            workouts_per_week=self.workouts_per_week,
            slot_overrides=self.overrides.slot_overrides,
        )

    # Dates

    def default_date(self, slot: Slot) -> date:
        return date_for_slot(self.start_date, self.program.training_days, slot, self.weeks_per_phase)

    def effective_date(self, slot: Slot) -> date:
        return self.overrides.effective_date(slot, self.default_date(slot))

    @cached_property
    def effective_dates(self) -> Dict[Slot, date]:
        return {slot: self.effective_date(slot) for slot in self.all_slots()}

    @cached_property
    def slots_by_date(self) -> Dict[date, List[Slot]]:
        by_date: Dict[date, List[Slot]] = {}
        for slot, effective in self.effective_dates.items():
            by_date.setdefault(effective, []).append(slot)
        for slots in by_date.values():
            slots.sort()
        return by_date

    def slots_on(self, day: date) -> List[Slot]:
        return self.slots_by_date.get(day, [])

    def slot_for_today(self, today: date) -> Optional[Slot]:
        """
        Slot occupying today, honouring date overrides.

        A slot moved onto today wins over the algebraic default; a default
        slot that has been moved elsewhere no longer counts.
        """
        slots = self.slots_on(today)
        return slots[0] if slots else None

    # Session facts

    @cached_property
    def completed_template_ids(self) -> FrozenSet[TemplateId]:
        return frozenset(s.template_id for s in self.sessions if s.is_completed)

    @cached_property
    def completion_dates(self) -> Dict[TemplateId, date]:
        """Most recent completion date per template."""
        dates: Dict[TemplateId, date] = {}
        for session in self.sessions:
            if session.is_completed and session.completed_on:
                previous = dates.get(session.template_id)
                if previous is None or session.completed_on > previous:
                    dates[session.template_id] = session.completed_on
        return dates

    @cached_property
    def in_progress_template_id(self) -> Optional[TemplateId]:
        for session in self.sessions:
            if session.status == SessionStatus.IN_PROGRESS:
                return session.template_id
        return None

    def is_completed(self, template_id: Optional[TemplateId]) -> bool:
        return template_id is not None and template_id in self.completed_template_ids

    def session_phase(self, session: SessionFact) -> Optional[Phase]:
        if session.phase is not None:
            return session.phase
        template = self.library.get(session.template_id)
        return template.phase if template else None

    @cached_property
    def completed_sessions_by_phase(self) -> Dict[str, int]:
        """
        Completed sessions per phase over the whole cycle.

        Counts sessions, not slots: with phases longer than four weeks one
        template fills several slots but each session is done once.
        """
        counts = {phase.value: 0 for phase in PHASE_ORDER}
        for session in self.sessions:
            if not session.is_completed:
                continue
            phase = self.session_phase(session)
            if phase is not None:
                counts[phase.value] += 1
        return counts

    @property
    def completed_session_count(self) -> int:
        return sum(self.completed_sessions_by_phase.values())

    def completed_in_phase(self, phase: Phase) -> int:
        """Completed sessions counted toward a phase since it started."""
        started = self.program.phase_started_at
        count = 0
        for session in self.sessions:
            if not session.is_completed:
                continue
            if self.session_phase(session) != phase:
                continue
            if started is not None and session.completed_at is not None and session.completed_at < started:
                continue
            count += 1
        return count
