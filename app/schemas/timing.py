"""Schémas Horaires / Branch timing schemas.

Deux formes coexistent / Two shapes coexist:
- lignes à plat telles que stockées (TimingRow*) / flat rows as stored;
- vue d'édition normalisée (BranchTimingView) / normalized editing view.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

from app.models.timing import DAYS, Weekday


class TimingRowBase(BaseModel):
    branch_id: int
    day_of_week: str
    start_date: str | None = None  # YYYY-MM-DD
    end_date: str | None = None
    is_closed: bool = False
    open_time: str | None = None
    close_time: str | None = None


class TimingRowRead(TimingRowBase):
    model_config = ConfigDict(from_attributes=True)
    id: int


class WeekdayRule(BaseModel):
    """Règle hebdomadaire d'un jour / Recurring rule for one weekday."""
    day: Weekday
    is_closed: bool = False
    open: str = ""  # HH:MM, ignoré si fermé / ignored when closed
    close: str = ""


class OverrideRule(BaseModel):
    """Exception datée, appliquée à tous les jours de la période / Date-ranged exception.

    `id` est local à la session d'édition ; `note` n'est pas stockée.
    `id` is local to the editing session; `note` is never persisted.
    """
    id: str
    start_date: str = ""
    end_date: str = ""
    is_closed: bool = True
    open: str = ""
    close: str = ""
    note: str = ""


class BranchTimingUpdate(BaseModel):
    weekly: list[WeekdayRule]
    overrides: list[OverrideRule] = []

    @field_validator("weekly")
    @classmethod
    def weekly_complete(cls, weekly: list[WeekdayRule]) -> list[WeekdayRule]:
        """Un seul jour par nom, aucun manquant / Exactly one rule per weekday, no gaps."""
        days = [rule.day for rule in weekly]
        if len(days) != len(DAYS) or set(days) != set(DAYS):
            raise ValueError("weekly must hold exactly one rule per weekday")
        return weekly


class BranchTimingView(BranchTimingUpdate):
    """Agrégat d'édition / Editing aggregate for one branch."""
    branch_id: int
    branch_name: str = "Branch"


class EffectiveHours(BaseModel):
    """Horaires effectifs d'une date / Resolved hours for one calendar date."""
    date: str
    day: Weekday
    is_closed: bool
    open: str = ""
    close: str = ""
    source: Literal["weekly", "override"]
    override_id: str | None = None
    is_open: bool | None = None
