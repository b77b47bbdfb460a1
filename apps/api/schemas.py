from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List, Dict, Literal

from services.schedule_engine import Difficulty, EnergyLevel, Phase, SkillLevel


# ============ Requests ============

class SlotRef(BaseModel):
    """A (phase, week, day) coordinate. Week is the user week, day the training day index."""
    phase: Phase
    week: int = Field(..., ge=1, le=8)
    day: int = Field(..., ge=1, le=7)


class IntakeRequest(BaseModel):
    category_id: int = Field(..., ge=1, le=4, description="Training category (1-4)")
    years_of_experience: int = Field(..., ge=0, le=60)
    preferred_training_days_per_week: int = Field(..., ge=1, le=7)
    selected_training_days: Optional[List[int]] = Field(
        None, description="Weekday indices, 0=Sunday..6=Saturday"
    )
    weeks_until_season: Optional[int] = Field(None, ge=1, le=52)
    age_group: Optional[Literal["14-17", "18-35", "36+"]] = None


class CascadeRequest(BaseModel):
    template_id: UUID


class SwapRequest(BaseModel):
    source: SlotRef
    target: SlotRef
    reason: Optional[str] = Field(None, max_length=500)


class MoveRequest(BaseModel):
    source: SlotRef
    target_date: date
    reason: Optional[str] = Field(None, max_length=500)


class TodayFocusRequest(BaseModel):
    template_id: UUID


class PauseRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ReassessmentRequest(BaseModel):
    phase_difficulty: Difficulty
    energy_level: Optional[EnergyLevel] = None
    notes: Optional[str] = Field(None, max_length=2000)
    maxes_updated: bool = False


class SkillLevelRequest(BaseModel):
    skill_level: SkillLevel


# ============ Program ============

class ProgramResponse(BaseModel):
    id: UUID
    category_id: int
    skill_level: SkillLevel
    age_group: Optional[str] = None
    start_date: date
    total_program_weeks: Optional[int] = None
    weeks_per_phase: int
    training_days: List[int]
    current_phase: Phase
    current_week: int
    current_day: int
    spp_unlocked_at: Optional[datetime] = None
    ssp_unlocked_at: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    pause_reason: Optional[str] = None
    reassessment_pending_phase: Optional[Phase] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class IntakeHistoryResponse(BaseModel):
    id: UUID
    intake_type: Literal["initial", "reassessment"]
    category_id: int
    years_of_experience: int
    preferred_training_days_per_week: int
    selected_training_days: Optional[List[int]] = None
    weeks_until_season: Optional[int] = None
    age_group: Optional[str] = None
    assigned_skill_level: SkillLevel
    previous_skill_level: Optional[SkillLevel] = None
    skill_level_changed: Optional[bool] = None
    completed_phase: Optional[Phase] = None
    self_assessment: Optional[Dict] = None
    maxes_updated: Optional[bool] = None
    completed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdvanceResponse(BaseModel):
    status: str
    phase_complete: bool
    trigger_reassessment: bool
    completed_phase: Optional[Phase] = None
    current_phase: Phase
    current_week: int
    current_day: int


class ResumeResponse(BaseModel):
    success: bool
    was_reset: bool
    message: str


class ReassessmentStatusResponse(BaseModel):
    pending: bool
    pending_phase: Optional[Phase] = None
    next_phase: Optional[Phase] = None
    is_full_cycle_complete: bool
    current_skill_level: SkillLevel
    expected_workouts: int
    completed_workouts: int
    completion_rate: float
    completed_reassessments: int
    can_upgrade_skill_level: bool
    next_skill_level: Optional[SkillLevel] = None


class ReassessmentResultResponse(BaseModel):
    skill_level_changed: bool
    previous_skill_level: SkillLevel
    new_skill_level: SkillLevel
    next_phase: Phase
    is_full_cycle_complete: bool
    completion_rate: float


class ProgressSummaryResponse(BaseModel):
    total_workouts: int
    completed_workouts: int
    completed_by_phase: Dict[str, int]
    overall_completion_rate: float
    current_phase: Phase
    current_phase_completed: int
    current_phase_expected: int
    current_phase_completion_rate: float
    overrides_by_phase: Dict[str, int]
    unlocked_phases: List[Phase]


# ============ Calendar ============

class CalendarWorkoutResponse(BaseModel):
    template_id: UUID
    name: str
    phase: Phase
    week: int
    day: int
    scheduled_date: Optional[date] = None
    exercise_count: int
    estimated_duration_minutes: int
    is_locked: bool
    is_completed: bool
    is_in_progress: bool
    is_today: bool
    completed_on_date: Optional[date] = None
    is_slot_override: bool = False
    is_date_override: bool = False

    model_config = ConfigDict(from_attributes=True)


class CalendarDayResponse(BaseModel):
    date: date
    workouts: List[CalendarWorkoutResponse]

    model_config = ConfigDict(from_attributes=True)


class CalendarViewResponse(BaseModel):
    start_date: date
    end_date: date
    days: List[CalendarDayResponse]
    program_start_date: date
    program_end_date: date
    training_days: List[int]
    current_phase: Phase
    current_week: int
    current_day: int
    unlocked_phases: List[Phase]
    today_focus_template_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class CalendarMetaResponse(BaseModel):
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
    skill_level: SkillLevel
    is_paused: bool
    reassessment_pending_phase: Optional[Phase] = None
    today_focus_template_id: Optional[UUID] = None

    model_config = ConfigDict(from_attributes=True)


class TodayWorkoutResponse(BaseModel):
    template_id: UUID
    name: str
    slot: SlotRef
    source: str
    exercise_count: int
    estimated_duration_minutes: int
    is_in_progress: bool
    is_focus_override: bool
    is_slot_override: bool
    is_first_incomplete: bool

    model_config = ConfigDict(from_attributes=True)


class PhaseWeekResponse(BaseModel):
    user_week: int
    template_week: int
    label: str
    volume_multiplier: float
    workouts: List[CalendarWorkoutResponse]


class PhaseOverviewResponse(BaseModel):
    phase: Phase
    is_locked: bool
    override_count: int
    weeks: List[PhaseWeekResponse]


class CascadeResponse(BaseModel):
    applied: bool
    reason: str
    affected_slot_count: int
    from_slot: Optional[SlotRef] = None
    to_slot: Optional[SlotRef] = None


class SwapResponse(BaseModel):
    success: bool
    source: SlotRef
    target: SlotRef
    source_template_id: UUID
    target_template_id: UUID


class MoveResponse(BaseModel):
    applied: bool
    source: SlotRef
    original_date: date
    target_date: date
    displaced_slot: Optional[SlotRef] = None
    displaced_slots: List[SlotRef] = []
    displaced_to: Optional[date] = None
