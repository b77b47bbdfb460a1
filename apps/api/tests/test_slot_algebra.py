"""
Tests for slot index algebra

Covers the date <-> (phase, week, day) conversions, including the
reference program that starts Monday 2024-01-01 training Mon/Wed/Fri.
"""
from datetime import date, timedelta

import pytest

from services.schedule_engine import Phase, ScheduleValidationError, Slot, TrainingDays
from services.schedule_engine.slot_algebra import (
    absolute_index,
    date_for_index,
    date_for_slot,
    first_training_date,
    index_for_date,
    iter_program_slots,
    program_end_date,
    slot_for_date,
    slot_for_index,
    total_workouts,
    validate_slot,
    weekday_index,
)

MWF = TrainingDays([1, 3, 5])
START = date(2024, 1, 1)  # Monday


# =============================================================================
# SLOTS
# =============================================================================

class TestSlot:

    def test_ordering_follows_phase_then_week_then_day(self):
        assert Slot(Phase.GPP, 4, 3) < Slot(Phase.SPP, 1, 1)
        assert Slot(Phase.SPP, 1, 2) < Slot(Phase.SPP, 2, 1)
        assert Slot(Phase.SSP, 1, 1) > Slot(Phase.SPP, 8, 7)

    def test_key_round_trip(self):
        slot = Slot(Phase.SSP, 3, 2)
        assert slot.key == "SSP-3-2"
        assert Slot.parse("SSP-3-2") == slot

    def test_to_dict(self):
        assert Slot(Phase.GPP, 1, 2).to_dict() == {"phase": "GPP", "week": 1, "day": 2}

    def test_slots_are_hashable(self):
        assert len({Slot(Phase.GPP, 1, 1), Slot(Phase.GPP, 1, 1)}) == 1


class TestTrainingDays:

    def test_sorted_and_deduplicated(self):
        assert TrainingDays([5, 1, 3, 1]).as_list() == [1, 3, 5]

    def test_empty_rejected(self):
        with pytest.raises(ScheduleValidationError) as exc:
            TrainingDays([])
        assert exc.value.field == "training_days"

    @pytest.mark.parametrize("bad", [[-1], [7], [1, 3, 9]])
    def test_out_of_range_rejected(self, bad):
        with pytest.raises(ScheduleValidationError):
            TrainingDays(bad)

    def test_defaults_by_frequency(self):
        assert TrainingDays.for_days_per_week(3).as_list() == [1, 3, 5]
        assert TrainingDays.for_days_per_week(7).as_list() == [0, 1, 2, 3, 4, 5, 6]

    def test_unsupported_frequency(self):
        with pytest.raises(ScheduleValidationError) as exc:
            TrainingDays.for_days_per_week(8)
        assert exc.value.field == "days_per_week"

    def test_explicit_selection_wins(self):
        assert TrainingDays.from_config([2, 4], 3).as_list() == [2, 4]
        assert TrainingDays.from_config(None, None).as_list() == [1, 3, 5]

    def test_position_of(self):
        assert MWF.position_of(3) == 1
        assert MWF.position_of(2) is None


# =============================================================================
# INDEX ALGEBRA
# =============================================================================

class TestIndexAlgebra:

    def test_weekday_index_is_sunday_based(self):
        assert weekday_index(date(2024, 1, 7)) == 0  # Sunday
        assert weekday_index(date(2024, 1, 1)) == 1  # Monday
        assert weekday_index(date(2024, 1, 6)) == 6  # Saturday

    def test_total_workouts(self):
        assert total_workouts(4, 3) == 36
        assert total_workouts(6, 5) == 90

    def test_absolute_index(self):
        assert absolute_index(Slot(Phase.GPP, 1, 1), 4, 3) == 0
        assert absolute_index(Slot(Phase.SPP, 2, 3), 4, 3) == 17
        assert absolute_index(Slot(Phase.SSP, 4, 3), 4, 3) == 35

    def test_slot_for_index_outside_program(self):
        assert slot_for_index(-1, 4, 3) is None
        assert slot_for_index(36, 4, 3) is None

    @pytest.mark.parametrize("weeks_per_phase", range(2, 9))
    @pytest.mark.parametrize("workouts_per_week", range(1, 8))
    def test_index_round_trip(self, weeks_per_phase, workouts_per_week):
        slots = list(iter_program_slots(weeks_per_phase, workouts_per_week))
        assert len(slots) == total_workouts(weeks_per_phase, workouts_per_week)
        for expected_index, slot in enumerate(slots):
            assert absolute_index(slot, weeks_per_phase, workouts_per_week) == expected_index
            assert slot_for_index(expected_index, weeks_per_phase, workouts_per_week) == slot

    def test_validate_slot(self):
        validate_slot(Slot(Phase.GPP, 4, 3), 4, 3)
        with pytest.raises(ScheduleValidationError) as exc:
            validate_slot(Slot(Phase.GPP, 5, 1), 4, 3)
        assert exc.value.field == "week"
        with pytest.raises(ScheduleValidationError) as exc:
            validate_slot(Slot(Phase.GPP, 1, 4), 4, 3)
        assert exc.value.field == "day"


# =============================================================================
# DATES
# =============================================================================

class TestDates:
    """Reference program: Monday 2024-01-01, Mon/Wed/Fri, 4-week phases"""

    def test_first_training_date_on_a_training_day(self):
        assert first_training_date(START, MWF) == START

    def test_first_training_date_waits_for_earliest_weekday(self):
        # Tuesday start: the layout begins on the following Monday
        assert first_training_date(date(2024, 1, 2), MWF) == date(2024, 1, 8)

    @pytest.mark.parametrize("slot,expected", [
        (Slot(Phase.GPP, 1, 1), date(2024, 1, 1)),
        (Slot(Phase.GPP, 1, 2), date(2024, 1, 3)),
        (Slot(Phase.GPP, 1, 3), date(2024, 1, 5)),
        (Slot(Phase.GPP, 2, 1), date(2024, 1, 8)),
        (Slot(Phase.SPP, 1, 1), date(2024, 1, 29)),
        (Slot(Phase.SSP, 1, 1), date(2024, 2, 26)),
        (Slot(Phase.SSP, 4, 3), date(2024, 3, 22)),
    ])
    def test_date_for_slot(self, slot, expected):
        assert date_for_slot(START, MWF, slot, 4) == expected

    def test_program_end_date(self):
        assert program_end_date(START, MWF, 4) == date(2024, 3, 22)

    def test_slot_for_date(self):
        assert slot_for_date(START, MWF, date(2024, 1, 3), 4) == Slot(Phase.GPP, 1, 2)
        assert slot_for_date(START, MWF, date(2024, 3, 22), 4) == Slot(Phase.SSP, 4, 3)

    def test_rest_day_has_no_slot(self):
        assert slot_for_date(START, MWF, date(2024, 1, 2), 4) is None

    def test_dates_outside_program_have_no_slot(self):
        assert slot_for_date(START, MWF, date(2023, 12, 29), 4) is None
        assert slot_for_date(START, MWF, date(2024, 3, 25), 4) is None
        assert slot_for_date(START, MWF, date(2030, 1, 7), 4) is None

    def test_index_for_date_ignores_program_length(self):
        assert index_for_date(START, MWF, date(2024, 3, 25)) == 36

    def test_negative_index_rejected(self):
        with pytest.raises(ScheduleValidationError):
            date_for_index(START, MWF, -1)

    @pytest.mark.parametrize("days", [[1], [0, 6], [1, 3, 5], [2, 3, 4, 6], [0, 1, 2, 3, 4, 5, 6]])
    @pytest.mark.parametrize("weeks_per_phase", [2, 4, 5, 8])
    def test_date_round_trip(self, days, weeks_per_phase):
        training_days = TrainingDays(days)
        start = date(2024, 5, 15)  # Wednesday
        previous = None
        for slot in iter_program_slots(weeks_per_phase, training_days.per_week):
            scheduled = date_for_slot(start, training_days, slot, weeks_per_phase)
            assert weekday_index(scheduled) in training_days
            assert slot_for_date(start, training_days, scheduled, weeks_per_phase) == slot
            if previous is not None:
                assert scheduled > previous
            previous = scheduled

    def test_consecutive_weeks_are_seven_days_apart(self):
        for day in range(1, 4):
            first = date_for_slot(START, MWF, Slot(Phase.GPP, 1, day), 4)
            second = date_for_slot(START, MWF, Slot(Phase.GPP, 2, day), 4)
            assert second - first == timedelta(days=7)
