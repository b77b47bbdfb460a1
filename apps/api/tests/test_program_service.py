"""
Tests for the program service against a real database session

Time is pinned through ProgramService(now=...), so the program always
starts Monday 2024-01-01 and trains Mon/Wed/Fri with 4-week phases.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from core.exceptions import ConflictError, NotFoundError, ValidationError
from models import IntakeResponse, ProgramModificationLog, ScheduleOverride, TrainingProgram, WorkoutSession
from services import intake as intake_service
from services.program_service import ProgramService
from services.program_store import as_utc, load_program
from services.schedule_engine import Difficulty, Phase, ScheduleConflictError, ScheduleValidationError, SkillLevel, Slot

from fixtures.program_fixtures import find_template, record_session

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)  # Monday
WEDNESDAY = datetime(2024, 1, 3, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def program(db_session, test_athlete, template_library):
    program = intake_service.complete_intake(
        db_session,
        test_athlete.id,
        category_id=1,
        years_of_experience=0,
        preferred_training_days_per_week=3,
        now=START,
    )
    db_session.commit()
    return program


def service_at(db_session, athlete, when):
    return ProgramService(db_session, athlete.id, now=when)


def actions(db_session, athlete):
    rows = (
        db_session.query(ProgramModificationLog)
        .filter(ProgramModificationLog.athlete_id == athlete.id)
        .order_by(ProgramModificationLog.created_at)
        .all()
    )
    return [row.action for row in rows]


# =============================================================================
# INTAKE
# =============================================================================

class TestIntake:

    def test_creates_program_at_gpp_start(self, db_session, test_athlete, program):
        assert program.start_date == date(2024, 1, 1)
        assert program.training_days == [1, 3, 5]
        assert program.weeks_per_phase == 4
        assert program.skill_level == "Novice"
        assert (program.current_phase, program.current_week, program.current_day) == ("GPP", 1, 1)
        assert db_session.query(IntakeResponse).filter(IntakeResponse.athlete_id == test_athlete.id).count() == 1
        assert actions(db_session, test_athlete) == ["create_program"]

    @pytest.mark.parametrize("years,expected", [(0, SkillLevel.NOVICE), (2, SkillLevel.MODERATE), (5, SkillLevel.ADVANCED)])
    def test_skill_level_from_experience(self, years, expected):
        assert intake_service.skill_level_for_experience(years) == expected

    def test_weeks_until_season_sets_phase_length(self, db_session, test_athlete, template_library):
        program = intake_service.complete_intake(
            db_session,
            test_athlete.id,
            category_id=1,
            years_of_experience=1,
            preferred_training_days_per_week=4,
            now=START,
            weeks_until_season=18,
        )
        assert program.weeks_per_phase == 6
        assert program.training_days == [1, 2, 4, 5]

    def test_second_intake_conflicts(self, db_session, test_athlete, program):
        with pytest.raises(ScheduleConflictError) as exc:
            intake_service.complete_intake(
                db_session, test_athlete.id, category_id=1, years_of_experience=0,
                preferred_training_days_per_week=3, now=START,
            )
        assert exc.value.reason == "program_exists"

    def test_selected_days_must_match_frequency(self, db_session, test_athlete, template_library):
        with pytest.raises(ScheduleValidationError) as exc:
            intake_service.complete_intake(
                db_session, test_athlete.id, category_id=1, years_of_experience=0,
                preferred_training_days_per_week=3, now=START, selected_training_days=[1, 4],
            )
        assert exc.value.field == "selected_training_days"

    def test_missing_program(self, db_session, test_athlete):
        with pytest.raises(NotFoundError):
            service_at(db_session, test_athlete, START).get_program()


# =============================================================================
# SCHEDULE CHANGES
# =============================================================================

class TestScheduleChanges:

    def test_cascade_persists_overrides(self, db_session, test_athlete, program):
        selected = find_template(db_session, Phase.GPP, 2, 1)
        result = service_at(db_session, test_athlete, WEDNESDAY).cascade_to_today(selected.id)
        db_session.commit()

        assert result["applied"]
        assert result["affected_slot_count"] == 3
        row = db_session.query(ScheduleOverride).filter(ScheduleOverride.program_id == program.id).one()
        assert len(row.slot_overrides) == 3
        assert "cascade_to_today" in actions(db_session, test_athlete)

        loaded = load_program(db_session, test_athlete.id)
        assert loaded.context.resolver.resolve_template_id(Slot(Phase.GPP, 1, 2)) == selected.id

    def test_cascade_noop_writes_nothing(self, db_session, test_athlete, program):
        selected = find_template(db_session, Phase.GPP, 2, 1)
        tuesday = datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)
        result = service_at(db_session, test_athlete, tuesday).cascade_to_today(selected.id)
        assert not result["applied"]
        assert result["reason"] == "not_training_day"
        assert db_session.query(ScheduleOverride).count() == 0

    def test_cascade_through_completed_workout(self, db_session, test_athlete, program):
        record_session(db_session, program, find_template(db_session, Phase.GPP, 1, 3), at=START)
        selected = find_template(db_session, Phase.GPP, 2, 1)

        with pytest.raises(ConflictError) as exc:
            service_at(db_session, test_athlete, WEDNESDAY).cascade_to_today(selected.id)
        assert exc.value.status_code == 409
        assert exc.value.error_code == "COMPLETED_IN_RANGE"
        assert db_session.query(ScheduleOverride).count() == 0

    def test_swap_then_reset_phase(self, db_session, test_athlete, program):
        service = service_at(db_session, test_athlete, WEDNESDAY)
        result = service.swap_workouts(Slot(Phase.GPP, 2, 1), Slot(Phase.GPP, 2, 3), reason="Gym closed")
        assert result["success"]
        assert service.get_progress_summary()["overrides_by_phase"]["GPP"] == 2

        reset = service.reset_phase_to_default(Phase.GPP)
        assert reset["removed_overrides"] == 2
        assert service.get_progress_summary()["overrides_by_phase"]["GPP"] == 0

        log = (
            db_session.query(ProgramModificationLog)
            .filter(ProgramModificationLog.action == "swap_workouts")
            .one()
        )
        assert log.reason == "Gym closed"

    def test_swap_validation_error(self, db_session, test_athlete, program):
        with pytest.raises(ValidationError) as exc:
            service_at(db_session, test_athlete, WEDNESDAY).swap_workouts(
                Slot(Phase.GPP, 1, 1), Slot(Phase.GPP, 2, 1)
            )
        assert exc.value.error_code == "VALIDATION_ERROR_WEEK"

    def test_move_shows_on_calendar(self, db_session, test_athlete, program):
        service = service_at(db_session, test_athlete, START)
        result = service.move_workout(Slot(Phase.GPP, 1, 1), date(2024, 1, 3))
        assert result["displaced_slot"] == {"phase": "GPP", "week": 1, "day": 2}

        view = service.get_calendar(date(2024, 1, 1), date(2024, 1, 3))
        by_date = {d.date: d.workouts for d in view.days}
        assert by_date[date(2024, 1, 3)][0].day == 1
        assert by_date[date(2024, 1, 1)][0].day == 2

    def test_calendar_range_limit(self, db_session, test_athlete, program):
        with pytest.raises(ValidationError):
            service_at(db_session, test_athlete, START).get_calendar(date(2024, 1, 1), date(2026, 1, 1))


class TestTodayFocus:

    def test_focus_changes_today_only(self, db_session, test_athlete, program):
        focus = find_template(db_session, Phase.GPP, 3, 2)
        service = service_at(db_session, test_athlete, WEDNESDAY)
        service.set_today_focus(focus.id)

        today = service.get_today_workout()
        assert today.source == "focus"
        assert today.template_id == focus.id
        assert service.get_calendar_meta().today_focus_template_id == focus.id

        tomorrow = service_at(db_session, test_athlete, WEDNESDAY + timedelta(days=1))
        assert tomorrow.get_today_workout().source == "scheduled"

    def test_focus_must_be_in_category(self, db_session, test_athlete, program):
        other = find_template(db_session, Phase.GPP, 1, 1, skill_level=SkillLevel.ADVANCED)
        # Any skill level within the category is accepted
        service_at(db_session, test_athlete, WEDNESDAY).set_today_focus(other.id)
        with pytest.raises(ValidationError) as exc:
            service_at(db_session, test_athlete, WEDNESDAY).set_today_focus(program.id)
        assert exc.value.error_code == "VALIDATION_ERROR_TEMPLATE_ID"

    def test_advance_clears_lapsed_focus(self, db_session, test_athlete, program):
        focus = find_template(db_session, Phase.GPP, 3, 2)
        service_at(db_session, test_athlete, WEDNESDAY).set_today_focus(focus.id)
        service_at(db_session, test_athlete, WEDNESDAY + timedelta(days=2)).advance()

        row = db_session.query(ScheduleOverride).filter(ScheduleOverride.program_id == program.id).one()
        assert row.today_focus_template_id is None

    def test_clear_focus(self, db_session, test_athlete, program):
        service = service_at(db_session, test_athlete, WEDNESDAY)
        assert service.clear_today_focus() == {"success": True, "cleared": False}
        service.set_today_focus(find_template(db_session, Phase.GPP, 3, 2).id)
        assert service.clear_today_focus() == {"success": True, "cleared": True}


# =============================================================================
# PROGRESSION
# =============================================================================

class TestProgression:

    def test_phase_completion_and_reassessment(self, db_session, test_athlete, program):
        service = service_at(db_session, test_athlete, datetime(2024, 1, 26, 18, 0, tzinfo=timezone.utc))
        for _ in range(11):
            assert service.advance()["status"] == "advanced"
        final = service.advance()
        assert final["status"] == "phase_complete"
        assert final["trigger_reassessment"]

        with pytest.raises(ConflictError) as exc:
            service.advance()
        assert exc.value.error_code == "REASSESSMENT_ALREADY_PENDING"

        for week in range(1, 5):
            for day in range(1, 4):
                if (week, day) in ((4, 2), (4, 3)):
                    continue
                record_session(
                    db_session, program, find_template(db_session, Phase.GPP, week, day),
                    at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc) + timedelta(days=2 * (week * 3 + day)),
                )

        status = service.get_reassessment_status()
        assert status.pending_phase == Phase.GPP
        assert status.completed_workouts == 10
        assert status.can_upgrade_skill_level

        result = service.complete_reassessment(Difficulty.JUST_RIGHT, notes="Felt strong")
        assert result["skill_level_changed"]
        assert result["new_skill_level"] == SkillLevel.MODERATE
        assert result["next_phase"] == Phase.SPP

        db_session.expire_all()
        row = db_session.query(TrainingProgram).filter(TrainingProgram.id == program.id).one()
        assert row.current_phase == "SPP"
        assert row.skill_level == "Moderate"
        assert row.spp_unlocked_at is not None
        assert row.gpp_reassessment_completed_at is not None

        intakes = (
            db_session.query(IntakeResponse)
            .filter(IntakeResponse.athlete_id == test_athlete.id)
            .order_by(IntakeResponse.completed_at)
            .all()
        )
        assert [i.intake_type for i in intakes] == ["initial", "reassessment"]
        assert intakes[-1].previous_skill_level == "Novice"
        assert intakes[-1].self_assessment["notes"] == "Felt strong"

    def test_manual_reassessment(self, db_session, test_athlete, program):
        service = service_at(db_session, test_athlete, WEDNESDAY)
        assert service.trigger_manual_reassessment()["pending_phase"] == Phase.GPP
        with pytest.raises(ConflictError):
            service.trigger_manual_reassessment()

    def test_long_pause_resets(self, db_session, test_athlete, program):
        service_at(db_session, test_athlete, START).advance()
        service_at(db_session, test_athlete, START).pause("Injury")

        result = service_at(db_session, test_athlete, START + timedelta(days=20)).resume()
        assert result["was_reset"]

        db_session.expire_all()
        row = db_session.query(TrainingProgram).filter(TrainingProgram.id == program.id).one()
        assert (row.current_phase, row.current_week, row.current_day) == ("GPP", 1, 1)
        assert row.paused_at is None

    def test_short_pause_resumes(self, db_session, test_athlete, program):
        service_at(db_session, test_athlete, START).advance()
        service_at(db_session, test_athlete, START).pause()
        result = service_at(db_session, test_athlete, START + timedelta(days=3)).resume()
        assert not result["was_reset"]
        assert service_at(db_session, test_athlete, START).get_program().current_day == 2

    def test_update_skill_level(self, db_session, test_athlete, program):
        result = service_at(db_session, test_athlete, START).update_skill_level(SkillLevel.ADVANCED)
        assert result["previous_skill_level"] == SkillLevel.NOVICE
        assert service_at(db_session, test_athlete, START).get_calendar_meta().skill_level == "Advanced"


# =============================================================================
# STORE
# =============================================================================

class TestStore:

    def test_sessions_from_previous_cycle_are_ignored(self, db_session, test_athlete, program):
        template = find_template(db_session, Phase.GPP, 1, 1)
        record_session(db_session, program, template, at=START - timedelta(days=30))
        loaded = load_program(db_session, test_athlete.id)
        assert loaded.context.sessions == ()

        record_session(db_session, program, template, at=START + timedelta(hours=1))
        loaded = load_program(db_session, test_athlete.id)
        assert loaded.context.is_completed(template.id)

    def test_delete_program_keeps_history(self, db_session, test_athlete, program):
        record_session(db_session, program, find_template(db_session, Phase.GPP, 1, 1), at=START)
        service_at(db_session, test_athlete, START).delete_program()
        db_session.commit()
        db_session.expire_all()

        assert db_session.query(TrainingProgram).count() == 0
        assert db_session.query(IntakeResponse).count() == 1
        session = db_session.query(WorkoutSession).one()
        assert session.program_id is None
        assert "delete_program" in actions(db_session, test_athlete)

    def test_as_utc(self):
        naive = datetime(2024, 1, 1, 12, 0)
        assert as_utc(naive).tzinfo == timezone.utc
        assert as_utc(START) is START
        assert as_utc(None) is None
