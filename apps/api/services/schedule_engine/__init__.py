# Scheduling Engine
#
# Pure calendar and progression logic for periodized training programs.
#
# Architecture:
# - Slot algebra owns every date <-> (phase, week, day) conversion
# - Periodization maps stretched phases onto the 4-week template library
# - Resolver picks a slot's template (override, default, or missing)
# - Cascade / adjustments compute new override records
# - Progression is the phase and reassessment state machine
#
# No module here performs I/O. services/program_store.py loads and saves
# the aggregate these functions operate on.

from .constants import Phase, SkillLevel, Difficulty, EnergyLevel, SessionStatus, PHASE_ORDER
from .errors import ScheduleError, ScheduleValidationError, ScheduleConflictError, ContentUnavailableError
from .slot_algebra import Slot, TrainingDays
from .resolver import TemplateInfo, TemplateLibrary, TemplateResolver
from .overrides import OverrideState
from .progression import ProgramState
from .context import ScheduleContext, SessionFact
from .cascade import cascade_to_today, CascadeResult
from .adjustments import swap_workouts, move_workout_to_date, SwapResult, MoveResult

__all__ = [
    # Constants
    'Phase',
    'SkillLevel',
    'Difficulty',
    'EnergyLevel',
    'SessionStatus',
    'PHASE_ORDER',

    # Errors
    'ScheduleError',
    'ScheduleValidationError',
    'ScheduleConflictError',
    'ContentUnavailableError',

    # Values
    'Slot',
    'TrainingDays',
    'TemplateInfo',
    'TemplateLibrary',
    'TemplateResolver',
    'OverrideState',
    'ProgramState',
    'ScheduleContext',
    'SessionFact',

    # Mutations
    'cascade_to_today',
    'CascadeResult',
    'swap_workouts',
    'move_workout_to_date',
    'SwapResult',
    'MoveResult',
]
