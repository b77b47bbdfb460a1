"""
Programs API Router

Intake, program state and progression.

Endpoints:
- POST /v1/programs/intake - Complete intake and create the program
- GET /v1/programs/me - Current program state
- DELETE /v1/programs/me - Delete the program to redo intake
- GET /v1/programs/me/intakes - Intake and reassessment history, newest first
- POST /v1/programs/me/advance - Mark today's workout done and move on
- POST /v1/programs/me/pause - Pause the program
- POST /v1/programs/me/resume - Resume (resets after a long pause)
- POST /v1/programs/me/reset - Back to GPP week 1 day 1
- GET /v1/programs/me/reassessment - Reassessment status
- POST /v1/programs/me/reassessment - Submit a reassessment
- POST /v1/programs/me/reassessment/trigger - Ask for a reassessment now
- PUT /v1/programs/me/skill-level - Set the skill level manually
- GET /v1/programs/me/progress - Completion summary
"""

from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from core.auth import get_current_athlete
from core.database import get_db
from models import Athlete
from schemas import (
    AdvanceResponse,
    IntakeHistoryResponse,
    IntakeRequest,
    PauseRequest,
    ProgramResponse,
    ProgressSummaryResponse,
    ReassessmentRequest,
    ReassessmentResultResponse,
    ReassessmentStatusResponse,
    ResumeResponse,
    SkillLevelRequest,
)
from services import intake as intake_service
from services.program_service import ProgramService, domain_errors

router = APIRouter(prefix="/v1/programs", tags=["Programs"])


@router.post("/intake", response_model=ProgramResponse, status_code=status.HTTP_201_CREATED)
def complete_intake(
    request: IntakeRequest,
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """
    Complete the intake questionnaire.

    Creates the program at GPP week 1 day 1, starting today. Fails with 409
    if the athlete already has a program; delete it first to redo intake.
    """
    with domain_errors("complete_intake", athlete.id):
        return intake_service.complete_intake(
            db,
            athlete.id,
            category_id=request.category_id,
            years_of_experience=request.years_of_experience,
            preferred_training_days_per_week=request.preferred_training_days_per_week,
            now=datetime.now(timezone.utc),
            selected_training_days=request.selected_training_days,
            weeks_until_season=request.weeks_until_season,
            age_group=request.age_group,
        )


@router.get("/me", response_model=ProgramResponse)
def get_my_program(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).get_program()


@router.delete("/me")
def delete_my_program(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """Delete the program so intake can be redone. Intake history is kept."""
    return ProgramService(db, athlete.id).delete_program()


@router.get("/me/intakes", response_model=List[IntakeHistoryResponse])
def get_intake_history(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return intake_service.intake_history(db, athlete.id)


# =============================================================================
# PROGRESSION
# =============================================================================

@router.post("/me/advance", response_model=AdvanceResponse)
def advance_program(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """
    Move to the next training day.

    Finishing a phase sets reassessment pending; advancing is blocked until
    the reassessment is submitted.
    """
    return ProgramService(db, athlete.id).advance()


@router.post("/me/pause")
def pause_program(
    request: PauseRequest,
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).pause(request.reason)


@router.post("/me/resume", response_model=ResumeResponse)
def resume_program(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """Resume a paused program. A long pause restarts the program from GPP."""
    return ProgramService(db, athlete.id).resume()


@router.post("/me/reset")
def reset_program(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).reset()


# =============================================================================
# REASSESSMENT
# =============================================================================

@router.get("/me/reassessment", response_model=ReassessmentStatusResponse)
def get_reassessment_status(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).get_reassessment_status()


@router.post("/me/reassessment", response_model=ReassessmentResultResponse)
def complete_reassessment(
    request: ReassessmentRequest,
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    """
    Submit the end-of-phase reassessment.

    Unlocks the next phase and may promote the skill level based on
    completion rate and how hard the phase felt.
    """
    return ProgramService(db, athlete.id).complete_reassessment(
        request.phase_difficulty,
        energy_level=request.energy_level,
        notes=request.notes,
        maxes_updated=request.maxes_updated,
    )


@router.post("/me/reassessment/trigger")
def trigger_reassessment(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).trigger_manual_reassessment()


@router.put("/me/skill-level")
def update_skill_level(
    request: SkillLevelRequest,
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).update_skill_level(request.skill_level)


@router.get("/me/progress", response_model=ProgressSummaryResponse)
def get_progress(
    athlete: Athlete = Depends(get_current_athlete),
    db: Session = Depends(get_db),
):
    return ProgramService(db, athlete.id).get_progress_summary()
