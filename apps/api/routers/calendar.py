"""
Calendar API Router

The calendar is where athletes see and rearrange their program.

Endpoints:
- GET /v1/calendar - Workouts per date for a range (default: current month)
- GET /v1/calendar/full - Whole program with a display buffer either side
- GET /v1/calendar/meta - Program dates, counts and unlocked phases
- GET /v1/calendar/today - The workout to show on the home screen
- GET /v1/calendar/week - One week of one phase
- GET /v1/calendar/phases/{phase} - Phase overview with override counts
- POST /v1/calendar/cascade - Pull a future workout to today, shifting the rest
- POST /v1/calendar/swap - Swap two workouts within a week
- POST /v1/calendar/move - Move a workout to another date
- POST/DELETE /v1/calendar/today-focus - Pin or clear today's workout
- POST /v1/calendar/phases/{phase}/reset - Drop all overrides in a phase
"""

import calendar as month_calendar
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.auth import get_current_athlete
from core.database import get_db
from models import Athlete
from schemas import (
    CalendarMetaResponse,
    CalendarViewResponse,
    CalendarWorkoutResponse,
    CascadeRequest,
    CascadeResponse,
    MoveRequest,
    MoveResponse,
    PhaseOverviewResponse,
    SlotRef,
    SwapRequest,
    SwapResponse,
    TodayFocusRequest,
    TodayWorkoutResponse,
)
from services.program_service import ProgramService
from services.schedule_engine import Phase, Slot

router = APIRouter(prefix="/v1/calendar", tags=["Calendar"])


def _slot(ref: SlotRef) -> Slot:
    return Slot(ref.phase, ref.week, ref.day)


def _current_month(today: date):
    last_day = month_calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


# =============================================================================
# READS
# =============================================================================

@router.get("", response_model=CalendarViewResponse)
def get_calendar(
    start_date: Optional[date] = Query(None, description="First date (inclusive)"),
    end_date: Optional[date] = Query(None, description="Last date (inclusive)"),
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """
    Get workouts per date for a range.

    Without dates the current month is returned. Workouts in locked phases
    are included and flagged is_locked.
    """
    service = ProgramService(db, athlete.id)
    month_start, month_end = _current_month(service.today)
    return service.get_calendar(start_date or month_start, end_date or month_end)


@router.get("/full", response_model=CalendarViewResponse)
def get_full_calendar(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """Get the full program calendar with a buffer before the start and after the end."""
    return ProgramService(db, athlete.id).get_full_calendar()


@router.get("/meta", response_model=CalendarMetaResponse)
def get_calendar_meta(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).get_calendar_meta()


@router.get("/today", response_model=Optional[TodayWorkoutResponse])
def get_today_workout(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """
    Get the workout to do today.

    An in-progress session wins, then today's focus, then the first
    unfinished workout of the current week.
    """
    return ProgramService(db, athlete.id).get_today_workout()


@router.get("/week", response_model=List[CalendarWorkoutResponse])
def get_week_schedule(
    phase: Phase = Query(...),
    week: int = Query(..., ge=1),
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).get_week_schedule(phase, week)


@router.get("/phases/{phase}", response_model=PhaseOverviewResponse)
def get_phase_overview(
    phase: Phase,
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).get_phase_overview(phase)


# =============================================================================
# SCHEDULE CHANGES
# =============================================================================

@router.post("/cascade", response_model=CascadeResponse)
def cascade_workout_to_today(
    request: CascadeRequest,
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """
    Do a future workout today.

    The chosen workout takes today's slot and everything in between shifts
    one position later. A no-op (not a training day, already today, workout
    in the past) returns applied=false with a reason.
    """
    return ProgramService(db, athlete.id).cascade_to_today(request.template_id)


@router.post("/swap", response_model=SwapResponse)
def swap_workouts(
    request: SwapRequest,
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """Swap the workouts of two slots in the same phase and week."""
    return ProgramService(db, athlete.id).swap_workouts(
        _slot(request.source), _slot(request.target), reason=request.reason
    )


@router.post("/move", response_model=MoveResponse)
def move_workout(
    request: MoveRequest,
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """
    Move a workout to another date.

    If another workout already lands on the target date it takes the moved
    workout's old date.
    """
    return ProgramService(db, athlete.id).move_workout(
        _slot(request.source), request.target_date, reason=request.reason
    )


@router.post("/today-focus")
def set_today_focus(
    request: TodayFocusRequest,
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """Pin a workout for today without changing the schedule."""
    return ProgramService(db, athlete.id).set_today_focus(request.template_id)


@router.delete("/today-focus")
def clear_today_focus(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).clear_today_focus()


@router.post("/phases/{phase}/reset")
def reset_phase_to_default(
    phase: Phase,
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """Remove every slot and date override in a phase."""
    return ProgramService(db, athlete.id).reset_phase_to_default(phase)
