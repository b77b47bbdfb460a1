"""
Phase / Reassessment State Machine

Program position moves through:

    Active(phase, week, day)
        -> ReassessmentPending(phase)      week overflow past weeks_per_phase
        -> Active(next_phase, 1, 1)        reassessment completed

with Paused reachable from Active, and a forced reset to Active(GPP, 1, 1)
either on resume after a long pause or on explicit request.

Every transition is a pure function from ProgramState to a new
ProgramState. Nothing here touches storage.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

from .constants import (
    MIN_PRIOR_REASSESSMENTS_FOR_ADVANCED,
    PAUSE_RESET_DAYS,
    PHASE_ORDER,
    PROMOTION_COMPLETION_THRESHOLDS,
    PROMOTION_DIFFICULTIES,
    Difficulty,
    EnergyLevel,
    Phase,
    SkillLevel,
)
from .errors import ScheduleConflictError, ScheduleValidationError
from .slot_algebra import Slot, TrainingDays


@dataclass(frozen=True)
class ProgramState:
    """Snapshot of one athlete's program."""
    category_id: int
    skill_level: SkillLevel
    start_date: date
    weeks_per_phase: int
    training_days: TrainingDays
    current_phase: Phase = Phase.GPP
    current_week: int = 1
    current_day: int = 1
    age_group: Optional[str] = None
    total_program_weeks: Optional[int] = None
    phase_started_at: Optional[datetime] = None
    cycle_started_at: Optional[datetime] = None
    spp_unlocked_at: Optional[datetime] = None
    ssp_unlocked_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    pause_reason: Optional[str] = None
    reassessment_pending_phase: Optional[Phase] = None
    last_workout_at: Optional[datetime] = None
    reassessments_completed_at: Dict[Phase, datetime] = field(default_factory=dict)

    @property
    def workouts_per_week(self) -> int:
        return self.training_days.per_week

    @property
    def current_slot(self) -> Slot:
        return Slot(self.current_phase, self.current_week, self.current_day)

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None

    @property
    def expected_workouts_per_phase(self) -> int:
        return self.weeks_per_phase * self.workouts_per_week

    @property
    def completed_reassessment_count(self) -> int:
        return sum(1 for ts in self.reassessments_completed_at.values() if ts is not None)

    def unlock_timestamp(self, phase: Phase) -> Optional[datetime]:
        if phase == Phase.SPP:
            return self.spp_unlocked_at
        if phase == Phase.SSP:
            return self.ssp_unlocked_at
        return None

    def is_phase_unlocked(self, phase: Phase) -> bool:
        """GPP and the current phase are always open; later phases need an unlock timestamp."""
        if phase <= self.current_phase:
            return True
        return self.unlock_timestamp(phase) is not None

    def unlocked_phases(self) -> List[Phase]:
        return [phase for phase in PHASE_ORDER if self.is_phase_unlocked(phase)]


@dataclass(frozen=True)
class AdvanceOutcome:
    status: str  # advanced | phase_complete | program_complete
    phase_complete: bool = False
    trigger_reassessment: bool = False
    completed_phase: Optional[Phase] = None


@dataclass(frozen=True)
class ReassessmentOutcome:
    skill_level_changed: bool
    previous_skill_level: SkillLevel
    new_skill_level: SkillLevel
    completed_phase: Phase
    next_phase: Phase
    is_full_cycle_complete: bool
    completion_rate: float
    difficulty: Difficulty
    energy_level: Optional[EnergyLevel] = None
    notes: Optional[str] = None
    maxes_updated: bool = False


@dataclass(frozen=True)
class ReassessmentStatus:
    pending: bool
    pending_phase: Optional[Phase]
    next_phase: Optional[Phase]
    is_full_cycle_complete: bool
    current_skill_level: SkillLevel
    expected_workouts: int
    completed_workouts: int
    completion_rate: float
    completed_reassessments: int
    can_upgrade_skill_level: bool
    next_skill_level: Optional[SkillLevel]


def _reset_position(state: ProgramState, now: datetime) -> ProgramState:
    return replace(
        state,
        current_phase=Phase.GPP,
        current_week=1,
        current_day=1,
        phase_started_at=now,
        cycle_started_at=now,
        spp_unlocked_at=None,
        ssp_unlocked_at=None,
        paused_at=None,
        pause_reason=None,
        reassessment_pending_phase=None,
    )


def advance(state: ProgramState, now: datetime) -> Tuple[ProgramState, AdvanceOutcome]:
    """
    Move the scheduled-workout pointer forward one training day.

    Overflowing the last week of a phase does not enter the next phase.
    It marks reassessment pending for the finished phase and freezes the
    pointer on the last slot until the reassessment is completed.
    """
    if state.is_paused:
        raise ScheduleConflictError("Program is paused", reason="program_paused")
    if state.reassessment_pending_phase is not None:
        raise ScheduleConflictError(
            f"Reassessment already pending for {state.reassessment_pending_phase.value}",
            reason="reassessment_already_pending",
        )

    day = state.current_day + 1
    week = state.current_week
    if day > state.workouts_per_week:
        day = 1
        week += 1

    if week > state.weeks_per_phase:
        phase = state.current_phase
        new_state = replace(
            state,
            current_week=state.weeks_per_phase,
            current_day=state.workouts_per_week,
            reassessment_pending_phase=phase,
            last_workout_at=now,
        )
        outcome = AdvanceOutcome(
            status="program_complete" if phase.wraps() else "phase_complete",
            phase_complete=True,
            trigger_reassessment=True,
            completed_phase=phase,
        )
        return new_state, outcome

    new_state = replace(state, current_week=week, current_day=day, last_workout_at=now)
    return new_state, AdvanceOutcome(status="advanced")


def pause(state: ProgramState, now: datetime, reason: Optional[str] = None) -> ProgramState:
    """Freeze the program. Unlocks and position are left alone."""
    if state.is_paused:
        raise ScheduleConflictError("Program is already paused", reason="already_paused")
    return replace(state, paused_at=now, pause_reason=reason)


def resume(
    state: ProgramState,
    now: datetime,
    reset_after_days: int = PAUSE_RESET_DAYS,
) -> Tuple[ProgramState, bool]:
    """
    Lift a pause.

    Returns the new state and whether the long-pause reset was applied.
    """
    if not state.is_paused:
        raise ScheduleConflictError("Program is not paused", reason="not_paused")

    if now - state.paused_at >= timedelta(days=reset_after_days):
        return _reset_position(state, now), True

    return replace(state, paused_at=None, pause_reason=None), False


def reset(state: ProgramState, now: datetime) -> ProgramState:
    """Start over at GPP week 1 day 1."""
    return replace(_reset_position(state, now), last_workout_at=None)


def completion_rate(completed_in_phase: int, expected: int) -> float:
    if expected <= 0:
        return 0.0
    return min(1.0, completed_in_phase / expected)


def promotion_target(
    skill_level: SkillLevel,
    rate: float,
    prior_reassessments: int,
) -> Optional[SkillLevel]:
    """Level the athlete qualifies for on completion stats alone, if any."""
    threshold = PROMOTION_COMPLETION_THRESHOLDS.get(skill_level)
    if threshold is None or rate < threshold:
        return None
    target = skill_level.next()
    if target == SkillLevel.ADVANCED and prior_reassessments < MIN_PRIOR_REASSESSMENTS_FOR_ADVANCED:
        return None
    return target


def complete_reassessment(
    state: ProgramState,
    completed_in_phase: int,
    difficulty: Difficulty,
    now: datetime,
    energy_level: Optional[EnergyLevel] = None,
    notes: Optional[str] = None,
    maxes_updated: bool = False,
) -> Tuple[ProgramState, ReassessmentOutcome]:
    """
    Close the pending reassessment and open the next phase.

    Promotion needs both the completion threshold for the current level and
    a "too easy" or "just right" self-report.
    """
    completed_phase = state.reassessment_pending_phase
    if completed_phase is None:
        raise ScheduleConflictError("No reassessment pending", reason="reassessment_not_pending")

    rate = completion_rate(completed_in_phase, state.expected_workouts_per_phase)
    previous = state.skill_level
    new_level = previous
    if difficulty in PROMOTION_DIFFICULTIES:
        target = promotion_target(previous, rate, state.completed_reassessment_count)
        if target is not None:
            new_level = target

    next_phase = completed_phase.next()
    full_cycle = completed_phase.wraps()

    reassessments = dict(state.reassessments_completed_at)
    reassessments[completed_phase] = now

    changes = dict(
        skill_level=new_level,
        current_phase=next_phase,
        current_week=1,
        current_day=1,
        phase_started_at=now,
        reassessment_pending_phase=None,
        reassessments_completed_at=reassessments,
    )
    if full_cycle:
        changes.update(spp_unlocked_at=None, ssp_unlocked_at=None, cycle_started_at=now)
    elif next_phase == Phase.SPP:
        changes["spp_unlocked_at"] = now
    else:
        changes["ssp_unlocked_at"] = now

    outcome = ReassessmentOutcome(
        skill_level_changed=new_level != previous,
        previous_skill_level=previous,
        new_skill_level=new_level,
        completed_phase=completed_phase,
        next_phase=next_phase,
        is_full_cycle_complete=full_cycle,
        completion_rate=rate,
        difficulty=difficulty,
        energy_level=energy_level,
        notes=notes,
        maxes_updated=maxes_updated,
    )
    return replace(state, **changes), outcome


def trigger_manual_reassessment(state: ProgramState) -> ProgramState:
    """Ask for a reassessment of the current phase before it is finished."""
    if state.is_paused:
        raise ScheduleConflictError("Program is paused", reason="program_paused")
    if state.reassessment_pending_phase is not None:
        raise ScheduleConflictError(
            f"Reassessment already pending for {state.reassessment_pending_phase.value}",
            reason="reassessment_already_pending",
        )
    return replace(state, reassessment_pending_phase=state.current_phase)


def reassessment_status(state: ProgramState, completed_in_phase: int) -> ReassessmentStatus:
    pending = state.reassessment_pending_phase
    expected = state.expected_workouts_per_phase
    rate = completion_rate(completed_in_phase, expected) if pending else 0.0
    target = (
        promotion_target(state.skill_level, rate, state.completed_reassessment_count)
        if pending else None
    )
    return ReassessmentStatus(
        pending=pending is not None,
        pending_phase=pending,
        next_phase=pending.next() if pending else None,
        is_full_cycle_complete=bool(pending and pending.wraps()),
        current_skill_level=state.skill_level,
        expected_workouts=expected,
        completed_workouts=completed_in_phase if pending else 0,
        completion_rate=rate,
        completed_reassessments=state.completed_reassessment_count,
        can_upgrade_skill_level=target is not None,
        next_skill_level=target,
    )


def set_skill_level(state: ProgramState, skill_level: SkillLevel) -> ProgramState:
    if not isinstance(skill_level, SkillLevel):
        raise ScheduleValidationError("Unknown skill level", field="skill_level")
    return replace(state, skill_level=skill_level)
