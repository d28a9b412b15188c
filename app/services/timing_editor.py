"""
Éditeur d'horaires / Branch timing editor.

Transformations pures de la vue d'édition, sans accès base : chaque mutation
retourne une nouvelle vue et la remonte via on_change.
Pure transforms over the editing view, no storage access: every mutation
returns a new view and reports it through on_change.
"""

from collections.abc import Callable
from datetime import date, timedelta
from typing import Any

from app.schemas.timing import BranchTimingView, OverrideRule, WeekdayRule
from app.services.branch_timing import new_override_id

# Exception ajoutée / Placeholder for a freshly added override
NEW_OVERRIDE_OFFSET_DAYS = 7
NEW_OVERRIDE_NOTE = "New override"

_WEEKDAY_FIELDS = set(WeekdayRule.model_fields) - {"day"}
_OVERRIDE_FIELDS = set(OverrideRule.model_fields) - {"id"}


def _merge(model, patch: dict[str, Any], allowed: set[str]):
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"Unknown or read-only fields: {', '.join(sorted(unknown))}")
    # Revalider le résultat / Re-validate the merged result
    return type(model).model_validate({**model.model_dump(), **patch})


class BranchTimingEditor:
    """Surface d'édition d'une vue / Editing surface over one BranchTimingView."""

    def __init__(
        self,
        value: BranchTimingView,
        on_change: Callable[[BranchTimingView], None] | None = None,
    ):
        self.value = value
        self.on_change = on_change

    def _emit(self, next_value: BranchTimingView) -> BranchTimingView:
        self.value = next_value
        if self.on_change is not None:
            self.on_change(next_value)
        return next_value

    def change_weekday(self, index: int, patch: dict[str, Any]) -> BranchTimingView:
        """Fusionner un patch dans weekly[index] / Merge a patch into weekly[index]."""
        if not 0 <= index < len(self.value.weekly):
            raise IndexError(f"Weekday index out of range: {index}")
        weekly = [
            _merge(rule, patch, _WEEKDAY_FIELDS) if i == index else rule
            for i, rule in enumerate(self.value.weekly)
        ]
        return self._emit(self.value.model_copy(update={"weekly": weekly}))

    def add_override(self, today: date | None = None) -> BranchTimingView:
        """Ajouter une fermeture d'un jour, dans une semaine / Append a one-day closure a week ahead."""
        day = ((today or date.today()) + timedelta(days=NEW_OVERRIDE_OFFSET_DAYS)).isoformat()
        override = OverrideRule(
            id=new_override_id(day),
            start_date=day,
            end_date=day,
            is_closed=True,
            open="",
            close="",
            note=NEW_OVERRIDE_NOTE,
        )
        overrides = [*self.value.overrides, override]
        return self._emit(self.value.model_copy(update={"overrides": overrides}))

    def change_override(self, override_id: str, patch: dict[str, Any]) -> BranchTimingView:
        # Id inconnu : rien / Unknown id: no-op
        if not any(o.id == override_id for o in self.value.overrides):
            return self.value
        overrides = [
            _merge(o, patch, _OVERRIDE_FIELDS) if o.id == override_id else o
            for o in self.value.overrides
        ]
        return self._emit(self.value.model_copy(update={"overrides": overrides}))

    def delete_override(self, override_id: str) -> BranchTimingView:
        overrides = [o for o in self.value.overrides if o.id != override_id]
        return self._emit(self.value.model_copy(update={"overrides": overrides}))
