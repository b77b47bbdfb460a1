"""
Override Store

The per-program record of schedule customizations:

- slot overrides: which template a slot shows (set by cascade and swap)
- date overrides: which calendar date a slot falls on (set by move)
- today focus: an ephemeral pointer to the workout the athlete chose for
  today; it expires at the end of the day it was set

OverrideState is an immutable value. Every operation returns a new state;
the program store decides whether and how to persist it.
"""

from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, Iterable, Mapping, Optional

from .constants import PHASE_ORDER, Phase
from .resolver import TemplateId
from .slot_algebra import Slot


@dataclass(frozen=True)
class OverrideState:
    slot_overrides: Dict[Slot, TemplateId] = field(default_factory=dict)
    date_overrides: Dict[Slot, date] = field(default_factory=dict)
    today_focus_template_id: Optional[TemplateId] = None
    today_focus_set_at: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return not (self.slot_overrides or self.date_overrides or self.today_focus_template_id)

    # Slot overrides

    def with_slot_overrides(self, overrides: Mapping[Slot, TemplateId]) -> "OverrideState":
        merged = dict(self.slot_overrides)
        merged.update(overrides)
        return replace(self, slot_overrides=merged)

    def without_slot_overrides(self, slots: Iterable[Slot]) -> "OverrideState":
        drop = set(slots)
        return replace(
            self,
            slot_overrides={s: t for s, t in self.slot_overrides.items() if s not in drop},
        )

    # Date overrides

    def with_date_override(self, slot: Slot, effective: date) -> "OverrideState":
        merged = dict(self.date_overrides)
        merged[slot] = effective
        return replace(self, date_overrides=merged)

    def without_date_override(self, slot: Slot) -> "OverrideState":
        return replace(
            self,
            date_overrides={s: d for s, d in self.date_overrides.items() if s != slot},
        )

    def effective_date(self, slot: Slot, default: date) -> date:
        return self.date_overrides.get(slot, default)

    # Today focus

    def with_today_focus(self, template_id: TemplateId, now: datetime) -> "OverrideState":
        return replace(self, today_focus_template_id=template_id, today_focus_set_at=now)

    def without_today_focus(self) -> "OverrideState":
        return replace(self, today_focus_template_id=None, today_focus_set_at=None)

    def active_today_focus(self, today: date) -> Optional[TemplateId]:
        """Focus pointer if it was set today; a focus from an earlier day has lapsed."""
        if self.today_focus_template_id is None:
            return None
        if self.today_focus_set_at is not None and self.today_focus_set_at.date() != today:
            return None
        return self.today_focus_template_id

    # Phase-level

    def reset_phase(self, phase: Phase) -> "OverrideState":
        """Drop every slot and date override inside one phase."""
        return replace(
            self,
            slot_overrides={s: t for s, t in self.slot_overrides.items() if s.phase != phase},
            date_overrides={s: d for s, d in self.date_overrides.items() if s.phase != phase},
        )

    def override_count_by_phase(self) -> Dict[str, int]:
        counts = Counter(s.phase for s in self.slot_overrides)
        counts.update(s.phase for s in self.date_overrides)
        return {phase.value: counts.get(phase, 0) for phase in PHASE_ORDER}

    # Storage form

    def to_storage(self) -> dict:
        return {
            "slot_overrides": [
                {**slot.to_dict(), "template_id": str(template_id)}
                for slot, template_id in sorted(self.slot_overrides.items())
            ],
            "date_overrides": [
                {**slot.to_dict(), "date": effective.isoformat()}
                for slot, effective in sorted(self.date_overrides.items())
            ],
        }
