"""
Periodization Mapper

Maps a phase's user-facing week number onto one of the four template weeks
in the content library:

    1 = Introduction, 2 = Build, 3 = Peak, 4 = Deload

Phases can run from 2 to 8 weeks. The first week is always the
introduction and the last is always the deload; longer phases stretch the
build and peak weeks in between. Shorter phases drop them.

Usage:
    map_user_week_to_template_week(5, 6)   # -> 3
    generate_week_mapping(6)               # -> [1, 2, 2, 3, 3, 4]
"""

import math
from typing import Dict, List, Optional

from .constants import (
    DEFAULT_TOTAL_PROGRAM_WEEKS,
    DEFAULT_VOLUME_MULTIPLIER,
    DEFAULT_WEEK_FOCUS_LABEL,
    MAX_WEEKS_PER_PHASE,
    MIN_WEEKS_PER_PHASE,
    NUMBER_OF_PHASES,
    WEEK_FOCUS_LABELS,
    WEEK_VOLUME_MULTIPLIERS,
)


def clamp_weeks_per_phase(weeks_per_phase: int) -> int:
    return max(MIN_WEEKS_PER_PHASE, min(MAX_WEEKS_PER_PHASE, weeks_per_phase))


def calculate_weeks_per_phase(
    total_weeks: Optional[int] = None,
    number_of_phases: int = NUMBER_OF_PHASES,
) -> int:
    """
    Split a total program length evenly across the phases.

    Args:
        total_weeks: Weeks until the athlete's season (None -> 12)
        number_of_phases: Phases in one cycle

    Returns:
        Weeks per phase, clamped to [2, 8]
    """
    if total_weeks is None:
        total_weeks = DEFAULT_TOTAL_PROGRAM_WEEKS
    return clamp_weeks_per_phase(total_weeks // number_of_phases)


def map_user_week_to_template_week(user_week: int, weeks_per_phase: int) -> int:
    """Template week (1-4) to serve for a user week within a phase."""
    n = clamp_weeks_per_phase(weeks_per_phase)
    week = max(1, min(n, user_week))

    if n == 4:
        return week

    if n == 2:
        return 1 if week == 1 else 4

    if n == 3:
        return {1: 1, 2: 2, 3: 4}[week]

    # n > 4: intro and deload pinned, middle weeks split between build and peak
    if week == 1:
        return 1
    if week == n:
        return 4

    middle_weeks = n - 2
    half_point = math.ceil(middle_weeks / 2)
    middle_position = week - 1
    return 2 if middle_position <= half_point else 3


def generate_week_mapping(weeks_per_phase: int) -> List[int]:
    """Template week for every user week of a phase, in order."""
    n = clamp_weeks_per_phase(weeks_per_phase)
    return [map_user_week_to_template_week(week, n) for week in range(1, n + 1)]


def get_week_focus_label(template_week: int) -> str:
    return WEEK_FOCUS_LABELS.get(template_week, DEFAULT_WEEK_FOCUS_LABEL)


def get_week_volume_multiplier(template_week: int) -> float:
    return WEEK_VOLUME_MULTIPLIERS.get(template_week, DEFAULT_VOLUME_MULTIPLIER)


def describe_phase_weeks(weeks_per_phase: int) -> List[Dict]:
    """
    Display metadata for each user week of a phase.

    Used by phase overview screens to label weeks without knowing how the
    stretch/compress mapping works.
    """
    weeks = []
    for user_week, template_week in enumerate(generate_week_mapping(weeks_per_phase), start=1):
        weeks.append({
            "user_week": user_week,
            "template_week": template_week,
            "label": get_week_focus_label(template_week),
            "volume_multiplier": get_week_volume_multiplier(template_week),
        })
    return weeks
