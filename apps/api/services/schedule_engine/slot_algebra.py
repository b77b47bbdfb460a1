"""
Slot Index Algebra

All calendar math for the program lives here. Everything else speaks in
slots and absolute indices and never reasons about weekdays directly.

A slot is a (phase, week, day) coordinate. Its absolute index orders every
slot in the program:

    index = phase_ordinal * wpp * wpw + (week - 1) * wpw + (day - 1)

where wpp is weeks per phase and wpw is workouts (training days) per week.

Dates are laid out from the first occurrence of the earliest training
weekday on or after the program start, then step through the sorted
weekday cycle. Weekday indices use 0=Sunday .. 6=Saturday.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from functools import total_ordering
from typing import Iterable, Iterator, List, Optional, Tuple

from .constants import (
    DEFAULT_DAYS_PER_WEEK,
    DEFAULT_TRAINING_DAYS,
    NUMBER_OF_PHASES,
    PHASE_ORDER,
    SLOT_SEARCH_SAFETY_MARGIN,
    Phase,
)
from .errors import ScheduleValidationError


@total_ordering
@dataclass(frozen=True)
class Slot:
    """One scheduled workout position. Week is the user week (may exceed 4)."""
    phase: Phase
    week: int
    day: int

    def sort_key(self) -> Tuple[int, int, int]:
        return (self.phase.ordinal, self.week, self.day)

    def __lt__(self, other):
        if not isinstance(other, Slot):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    @property
    def key(self) -> str:
        """Stable string form used in JSON storage, e.g. 'GPP-2-3'."""
        return f"{self.phase.value}-{self.week}-{self.day}"

    @classmethod
    def parse(cls, key: str) -> "Slot":
        phase, week, day = key.split("-")
        return cls(Phase(phase), int(week), int(day))

    def to_dict(self) -> dict:
        return {"phase": self.phase.value, "week": self.week, "day": self.day}


class TrainingDays:
    """
    Ordered, de-duplicated set of training weekdays.

    Raises ScheduleValidationError for an empty set or an index outside 0-6.
    """

    __slots__ = ("days",)

    def __init__(self, days: Iterable[int]):
        normalized = sorted(set(int(d) for d in days))
        if not normalized:
            raise ScheduleValidationError("At least one training day is required", field="training_days")
        if normalized[0] < 0 or normalized[-1] > 6:
            raise ScheduleValidationError(
                "Training days must be weekday indices 0 (Sunday) through 6 (Saturday)",
                field="training_days",
            )
        self.days: Tuple[int, ...] = tuple(normalized)

    @classmethod
    def for_days_per_week(cls, days_per_week: int) -> "TrainingDays":
        """Default weekday layout for a requested training frequency."""
        if days_per_week not in DEFAULT_TRAINING_DAYS:
            raise ScheduleValidationError(
                "Days per week must be between 1 and 7",
                field="days_per_week",
            )
        return cls(DEFAULT_TRAINING_DAYS[days_per_week])

    @classmethod
    def from_config(cls, selected: Optional[Iterable[int]], days_per_week: Optional[int]) -> "TrainingDays":
        """Explicit selection wins; otherwise the default layout for the frequency."""
        if selected:
            return cls(selected)
        return cls.for_days_per_week(days_per_week or DEFAULT_DAYS_PER_WEEK)

    @property
    def per_week(self) -> int:
        return len(self.days)

    def position_of(self, weekday: int) -> Optional[int]:
        try:
            return self.days.index(weekday)
        except ValueError:
            return None

    def as_list(self) -> List[int]:
        return list(self.days)

    def __contains__(self, weekday: int) -> bool:
        return weekday in self.days

    def __iter__(self):
        return iter(self.days)

    def __len__(self) -> int:
        return len(self.days)

    def __eq__(self, other):
        return isinstance(other, TrainingDays) and self.days == other.days

    def __hash__(self):
        return hash(self.days)

    def __repr__(self):
        return f"TrainingDays({list(self.days)})"


def weekday_index(d: date) -> int:
    """Weekday with 0=Sunday (Python's date.weekday() has 0=Monday)."""
    return (d.weekday() + 1) % 7


def total_workouts(weeks_per_phase: int, workouts_per_week: int) -> int:
    return NUMBER_OF_PHASES * weeks_per_phase * workouts_per_week


def validate_slot(slot: Slot, weeks_per_phase: int, workouts_per_week: int) -> None:
    """Raise ScheduleValidationError if the slot falls outside program bounds."""
    if not 1 <= slot.week <= weeks_per_phase:
        raise ScheduleValidationError(
            f"Week must be between 1 and {weeks_per_phase}",
            field="week",
        )
    if not 1 <= slot.day <= workouts_per_week:
        raise ScheduleValidationError(
            f"Day must be between 1 and {workouts_per_week}",
            field="day",
        )


def absolute_index(slot: Slot, weeks_per_phase: int, workouts_per_week: int) -> int:
    return (
        slot.phase.ordinal * weeks_per_phase * workouts_per_week
        + (slot.week - 1) * workouts_per_week
        + (slot.day - 1)
    )


def slot_for_index(index: int, weeks_per_phase: int, workouts_per_week: int) -> Optional[Slot]:
    """Inverse of absolute_index. None outside the program."""
    if index < 0 or index >= total_workouts(weeks_per_phase, workouts_per_week):
        return None
    per_phase = weeks_per_phase * workouts_per_week
    phase_idx, within_phase = divmod(index, per_phase)
    week_idx, day_idx = divmod(within_phase, workouts_per_week)
    return Slot(PHASE_ORDER[phase_idx], week_idx + 1, day_idx + 1)


def iter_program_slots(weeks_per_phase: int, workouts_per_week: int) -> Iterator[Slot]:
    """Every slot of the program in canonical order."""
    for phase in PHASE_ORDER:
        for week in range(1, weeks_per_phase + 1):
            for day in range(1, workouts_per_week + 1):
                yield Slot(phase, week, day)


def first_training_date(start_date: date, training_days: TrainingDays) -> date:
    """First occurrence of the earliest training weekday on or after start_date."""
    offset = (training_days.days[0] - weekday_index(start_date)) % 7
    return start_date + timedelta(days=offset)


def date_for_index(start_date: date, training_days: TrainingDays, index: int) -> date:
    """
    Calendar date of the index-th training session (0-based).

    Each full pass through the weekday set advances one calendar week.
    """
    if index < 0:
        raise ScheduleValidationError("Slot index cannot be negative", field="index")
    first = first_training_date(start_date, training_days)
    weeks, position = divmod(index, training_days.per_week)
    day_offset = training_days.days[position] - training_days.days[0]
    return first + timedelta(days=weeks * 7 + day_offset)


def date_for_slot(start_date: date, training_days: TrainingDays, slot: Slot, weeks_per_phase: int) -> date:
    index = absolute_index(slot, weeks_per_phase, training_days.per_week)
    return date_for_index(start_date, training_days, index)


def index_for_date(start_date: date, training_days: TrainingDays, target: date) -> Optional[int]:
    """
    Absolute index of the session falling on target, ignoring program length.

    None when target is not a training weekday or precedes the first
    training date.
    """
    position = training_days.position_of(weekday_index(target))
    if position is None:
        return None

    first = first_training_date(start_date, training_days)
    if target < first:
        return None

    weeks = (target - first).days // 7
    return weeks * training_days.per_week + position


def slot_for_date(
    start_date: date,
    training_days: TrainingDays,
    target: date,
    weeks_per_phase: int,
) -> Optional[Slot]:
    """
    Slot scheduled on target by the default layout.

    None for non-training weekdays, dates before the first training date,
    and dates after the last SSP session.
    """
    index = index_for_date(start_date, training_days, target)
    if index is None:
        return None

    wpw = training_days.per_week
    # Anything past this bound is well beyond the last phase
    if index > weeks_per_phase * NUMBER_OF_PHASES * wpw + SLOT_SEARCH_SAFETY_MARGIN:
        return None
    return slot_for_index(index, weeks_per_phase, wpw)


def program_end_date(start_date: date, training_days: TrainingDays, weeks_per_phase: int) -> date:
    """Date of the final SSP session."""
    last = total_workouts(weeks_per_phase, training_days.per_week) - 1
    return date_for_index(start_date, training_days, last)
