"""
Template Resolver

Decides which content template a slot shows:

1. A slot override set by cascade or swap
2. The default template at the periodization-mapped template week
3. Nothing (a gap in the content library)

Resolution results are an explicit sum type so callers match on the
outcome instead of checking for None.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from .constants import Phase, SkillLevel
from .periodization import map_user_week_to_template_week
from .slot_algebra import Slot, iter_program_slots

logger = logging.getLogger(__name__)

TemplateId = Hashable


@dataclass(frozen=True)
class TemplateInfo:
    """Read-only view of a content template."""
    id: TemplateId
    category_id: int
    phase: Phase
    skill_level: SkillLevel
    week: int  # Template week 1-4
    day: int
    name: str
    description: Optional[str] = None
    exercise_count: int = 0
    estimated_duration_minutes: int = 0


@dataclass(frozen=True)
class TemplateKey:
    category_id: int
    phase: Phase
    skill_level: SkillLevel
    template_week: int
    day: int


@dataclass(frozen=True)
class OverrideResolution:
    template_id: TemplateId


@dataclass(frozen=True)
class DefaultResolution:
    template_id: TemplateId


@dataclass(frozen=True)
class MissingResolution:
    slot: Slot
    key: TemplateKey


Resolution = Union[OverrideResolution, DefaultResolution, MissingResolution]


class TemplateLibrary:
    """
    In-memory index over one category's templates.

    Built once per request from the template rows so calendar construction
    never goes back to storage per date.
    """

    def __init__(self, templates: Iterable[TemplateInfo]):
        self._by_id: Dict[TemplateId, TemplateInfo] = {}
        self._by_key: Dict[TemplateKey, TemplateInfo] = {}
        for template in templates:
            self._by_id[template.id] = template
            key = TemplateKey(
                category_id=template.category_id,
                phase=template.phase,
                skill_level=template.skill_level,
                template_week=template.week,
                day=template.day,
            )
            self._by_key[key] = template

    def get(self, template_id: TemplateId) -> Optional[TemplateInfo]:
        return self._by_id.get(template_id)

    def lookup(self, key: TemplateKey) -> Optional[TemplateInfo]:
        return self._by_key.get(key)

    def __contains__(self, template_id: TemplateId) -> bool:
        return template_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[TemplateInfo]:
        return iter(self._by_id.values())


class TemplateResolver:
    """Resolves slots for one program (category, skill level, phase length)."""

    def __init__(
        self,
        library: TemplateLibrary,
        category_id: int,
        skill_level: SkillLevel,
        weeks_per_phase: int,
        workouts_per_week: int,
        slot_overrides: Optional[Mapping[Slot, TemplateId]] = None,
    ):
        self.library = library
        self.category_id = category_id
        self.skill_level = skill_level
        self.weeks_per_phase = weeks_per_phase
        self.workouts_per_week = workouts_per_week
        self.slot_overrides = dict(slot_overrides or {})

    def with_overrides(self, slot_overrides: Mapping[Slot, TemplateId]) -> "TemplateResolver":
        return TemplateResolver(
            self.library,
            self.category_id,
            self.skill_level,
            self.weeks_per_phase,
            self.workouts_per_week,
            slot_overrides,
        )

    def default_key(self, slot: Slot) -> TemplateKey:
        return TemplateKey(
            category_id=self.category_id,
            phase=slot.phase,
            skill_level=self.skill_level,
            template_week=map_user_week_to_template_week(slot.week, self.weeks_per_phase),
            day=slot.day,
        )

    def default_template_id(self, slot: Slot) -> Optional[TemplateId]:
        template = self.library.lookup(self.default_key(slot))
        return template.id if template else None

    def resolve(self, slot: Slot) -> Resolution:
        override = self.slot_overrides.get(slot)
        if override is not None:
            return OverrideResolution(override)

        key = self.default_key(slot)
        template = self.library.lookup(key)
        if template is not None:
            return DefaultResolution(template.id)
        return MissingResolution(slot, key)

    def resolve_template_id(self, slot: Slot) -> Optional[TemplateId]:
        """Template id for a slot, logging a content gap when there is none."""
        resolution = self.resolve(slot)
        if isinstance(resolution, (OverrideResolution, DefaultResolution)):
            return resolution.template_id

        log_content_gap(resolution)
        return None

    def iter_resolved(self) -> Iterator[Tuple[Slot, Resolution]]:
        for slot in iter_program_slots(self.weeks_per_phase, self.workouts_per_week):
            yield slot, self.resolve(slot)

    def find_slot_for_template(self, template_id: TemplateId, not_before: Optional[Slot] = None) -> Optional[Slot]:
        """
        Slot currently resolving to template_id.

        Stretched phases repeat a template week, so one template can sit in
        several slots. The first match at or after not_before wins; failing
        that, the first match in the program.
        """
        first_match = None
        for slot, resolution in self.iter_resolved():
            if isinstance(resolution, MissingResolution):
                continue
            if resolution.template_id != template_id:
                continue
            if not_before is None or not slot < not_before:
                return slot
            if first_match is None:
                first_match = slot
        return first_match

    def resolved_map(self) -> Dict[Slot, TemplateId]:
        """Slot -> template id for every slot with content."""
        resolved = {}
        for slot, resolution in self.iter_resolved():
            if isinstance(resolution, MissingResolution):
                log_content_gap(resolution)
                continue
            resolved[slot] = resolution.template_id
        return resolved


def log_content_gap(resolution: MissingResolution) -> None:
    key = resolution.key
    logger.warning(
        f"No template for slot {resolution.slot.key}",
        extra={
            "extra_fields": {
                "event": "content_gap",
                "slot": resolution.slot.key,
                "category_id": key.category_id,
                "phase": key.phase.value,
                "skill_level": key.skill_level.value,
                "template_week": key.template_week,
                "day": key.day,
            }
        },
    )


def missing_slots(resolver: TemplateResolver) -> List[Slot]:
    """Slots with no content; non-empty means the library is incomplete."""
    return [
        slot for slot, resolution in resolver.iter_resolved()
        if isinstance(resolution, MissingResolution)
    ]
