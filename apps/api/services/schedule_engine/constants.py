"""
Constants for the scheduling engine.

Phase and skill level are ordered enums. Progression code asks them for
their ordinal or successor instead of comparing strings.
"""

from enum import Enum
from typing import Dict, List, Optional


class Phase(str, Enum):
    """Training phases, in program order."""
    GPP = "GPP"    # General physical preparation
    SPP = "SPP"    # Specific physical preparation
    SSP = "SSP"    # Sport-specific preparation

    @property
    def ordinal(self) -> int:
        return PHASE_ORDER.index(self)

    def next(self) -> "Phase":
        """Following phase; SSP cycles back to GPP."""
        return PHASE_ORDER[(self.ordinal + 1) % len(PHASE_ORDER)]

    def wraps(self) -> bool:
        """True when advancing past this phase starts a new cycle."""
        return self.ordinal == len(PHASE_ORDER) - 1

    def __lt__(self, other):
        if not isinstance(other, Phase):
            return NotImplemented
        return self.ordinal < other.ordinal

    def __le__(self, other):
        if not isinstance(other, Phase):
            return NotImplemented
        return self.ordinal <= other.ordinal

    def __gt__(self, other):
        if not isinstance(other, Phase):
            return NotImplemented
        return self.ordinal > other.ordinal

    def __ge__(self, other):
        if not isinstance(other, Phase):
            return NotImplemented
        return self.ordinal >= other.ordinal


PHASE_ORDER: List[Phase] = [Phase.GPP, Phase.SPP, Phase.SSP]


class SkillLevel(str, Enum):
    """Athlete skill classification, lowest first."""
    NOVICE = "Novice"
    MODERATE = "Moderate"
    ADVANCED = "Advanced"

    @property
    def ordinal(self) -> int:
        return SKILL_ORDER.index(self)

    def next(self) -> Optional["SkillLevel"]:
        """One step up, or None at the top."""
        idx = self.ordinal + 1
        return SKILL_ORDER[idx] if idx < len(SKILL_ORDER) else None


SKILL_ORDER: List[SkillLevel] = [SkillLevel.NOVICE, SkillLevel.MODERATE, SkillLevel.ADVANCED]


class Difficulty(str, Enum):
    """Self-reported difficulty at reassessment."""
    TOO_EASY = "too_easy"
    JUST_RIGHT = "just_right"
    CHALLENGING = "challenging"
    TOO_HARD = "too_hard"


class EnergyLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class SessionStatus(str, Enum):
    """Workout session states as reported by the session recorder."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class IntakeType(str, Enum):
    INITIAL = "initial"
    REASSESSMENT = "reassessment"


# Periodization
DEFAULT_WEEKS_PER_PHASE = 4
MIN_WEEKS_PER_PHASE = 2
MAX_WEEKS_PER_PHASE = 8
NUMBER_OF_PHASES = len(PHASE_ORDER)
DEFAULT_TOTAL_PROGRAM_WEEKS = 12
TEMPLATE_WEEKS = 4

# Template week (1-4) -> display metadata
WEEK_FOCUS_LABELS: Dict[int, str] = {
    1: "Introduction",
    2: "Build",
    3: "Peak",
    4: "Deload",
}
DEFAULT_WEEK_FOCUS_LABEL = "Training"

WEEK_VOLUME_MULTIPLIERS: Dict[int, float] = {
    1: 0.7,
    2: 0.85,
    3: 1.0,
    4: 0.6,
}
DEFAULT_VOLUME_MULTIPLIER = 1.0

# Weekday indices use 0=Sunday .. 6=Saturday
DEFAULT_TRAINING_DAYS: Dict[int, List[int]] = {
    1: [1],
    2: [1, 4],
    3: [1, 3, 5],
    4: [1, 2, 4, 5],
    5: [1, 2, 3, 4, 5],
    6: [1, 2, 3, 4, 5, 6],
    7: [0, 1, 2, 3, 4, 5, 6],
}
DEFAULT_DAYS_PER_WEEK = 3

# Extra steps allowed when walking dates forward to a slot
SLOT_SEARCH_SAFETY_MARGIN = 50

# Pause longer than this restarts the program
PAUSE_RESET_DAYS = 14

# Days shown either side of the program in the full calendar
CALENDAR_BUFFER_DAYS = 14

# Reassessment promotion thresholds, keyed by the level being left
PROMOTION_COMPLETION_THRESHOLDS: Dict[SkillLevel, float] = {
    SkillLevel.NOVICE: 0.75,
    SkillLevel.MODERATE: 0.80,
}
MIN_PRIOR_REASSESSMENTS_FOR_ADVANCED = 2
PROMOTION_DIFFICULTIES = frozenset({Difficulty.TOO_EASY, Difficulty.JUST_RIGHT})
