"""
Service des horaires de succursale / Branch timing service.

Passe des lignes à plat stockées (une par jour et par applicabilité) à la vue
d'édition normalisée (7 règles hebdomadaires + exceptions datées), et inversement.
Converts the flat stored rows (one per weekday and applicability) into the
normalized editing view (7 weekly rules + date overrides), and back.

Les exceptions n'ont pas d'identifiant en base : elles sont regroupées par
valeur (dates, fermeture, heures). Deux exceptions identiques fusionnent.
Overrides have no stored identity: they are grouped by value (dates, closed
flag, times). Two identical overrides merge into one.
"""

import uuid
from collections.abc import Iterable
from datetime import date

from app.models.timing import DAYS
from app.schemas.timing import (
    BranchTimingView,
    EffectiveHours,
    OverrideRule,
    TimingRowBase,
    WeekdayRule,
)
from app.services.time_format import TimeFormatService

DEFAULT_OPEN = "09:00"
DEFAULT_CLOSE = "17:00"


def new_override_id(start_date: str | None = None) -> str:
    """Identifiant local d'exception / Local override id, e.g. ov_20260201_1a2b3c."""
    stamp = (start_date or "na").replace("-", "")
    return f"ov_{stamp}_{uuid.uuid4().hex[:6]}"


class BranchTimingService:
    """Regroupement / expansion des horaires / Timing grouping and expansion."""

    # --- Hebdomadaire / Weekly ---

    @staticmethod
    def build_default_weekly() -> list[WeekdayRule]:
        """7 jours ouverts 09:00-17:00 / Seven open days, 09:00-17:00."""
        return [
            WeekdayRule(day=day, is_closed=False, open=DEFAULT_OPEN, close=DEFAULT_CLOSE)
            for day in DAYS
        ]

    @staticmethod
    def collapse_weekly(rows: Iterable[TimingRowBase]) -> list[WeekdayRule]:
        """
        Règles hebdomadaires depuis les lignes stockées / Weekly rules from stored rows.
        Toujours 7 entrées dans l'ordre canonique, jours absents = défaut.
        """
        weekly_rows = [r for r in rows if not r.start_date and not r.end_date]
        weekly = []
        for day in DAYS:
            row = next((r for r in weekly_rows if str(r.day_of_week) == day.value), None)
            if row is None:
                weekly.append(
                    WeekdayRule(day=day, is_closed=False, open=DEFAULT_OPEN, close=DEFAULT_CLOSE)
                )
                continue
            weekly.append(WeekdayRule(
                day=day,
                is_closed=bool(row.is_closed),
                open=TimeFormatService.to_canonical(row.open_time) or DEFAULT_OPEN,
                close=TimeFormatService.to_canonical(row.close_time) or DEFAULT_CLOSE,
            ))
        return weekly

    @staticmethod
    def expand_weekly(weekly: Iterable[WeekdayRule], branch_id: int) -> list[TimingRowBase]:
        """Une ligne sans dates par jour / One dateless row per weekday."""
        return [
            TimingRowBase(
                branch_id=branch_id,
                day_of_week=rule.day.value,
                start_date=None,
                end_date=None,
                is_closed=rule.is_closed,
                open_time=TimeFormatService.to_storage(rule.open, rule.is_closed),
                close_time=TimeFormatService.to_storage(rule.close, rule.is_closed),
            )
            for rule in weekly
        ]

    # --- Exceptions / Overrides ---

    @staticmethod
    def group_overrides(rows: Iterable[TimingRowBase]) -> list[OverrideRule]:
        """
        Regrouper les lignes d'exception par valeur / Group override rows by value.
        Clé : (début, fin, fermé, ouverture, fermeture). Ordre de première apparition.
        Key: (start, end, closed, open, close). First-seen order.
        """
        groups: dict[tuple[str, str, str, str, str], OverrideRule] = {}
        for r in rows:
            if not r.start_date and not r.end_date:
                continue
            key = (
                r.start_date or "",
                r.end_date or "",
                str(bool(r.is_closed)),
                r.open_time or "",
                r.close_time or "",
            )
            if key in groups:
                continue
            groups[key] = OverrideRule(
                id=new_override_id(r.start_date),
                start_date=r.start_date or "",
                end_date=r.end_date or "",
                is_closed=bool(r.is_closed),
                open=TimeFormatService.to_canonical(r.open_time),
                close=TimeFormatService.to_canonical(r.close_time),
                note="",
            )
        return list(groups.values())

    @staticmethod
    def expand_overrides(overrides: Iterable[OverrideRule], branch_id: int) -> list[TimingRowBase]:
        """7 lignes par exception, une par jour / Seven rows per override, one per weekday."""
        rows = []
        for o in overrides:
            open_time = TimeFormatService.to_storage(o.open, o.is_closed)
            close_time = TimeFormatService.to_storage(o.close, o.is_closed)
            for day in DAYS:
                rows.append(TimingRowBase(
                    branch_id=branch_id,
                    day_of_week=day.value,
                    start_date=o.start_date or None,
                    end_date=o.end_date or None,
                    is_closed=o.is_closed,
                    open_time=open_time,
                    close_time=close_time,
                ))
        return rows

    # --- Vue complète / Full view ---

    @staticmethod
    def build_empty_view(branch_id: int, branch_name: str | None = None) -> BranchTimingView:
        return BranchTimingView(
            branch_id=branch_id,
            branch_name=branch_name or "Branch",
            weekly=BranchTimingService.build_default_weekly(),
            overrides=[],
        )

    @staticmethod
    def collapse_view(
        rows: Iterable[TimingRowBase], branch_id: int, branch_name: str | None = None
    ) -> BranchTimingView:
        """Vue d'édition depuis les lignes stockées / Editing view from stored rows."""
        rows = list(rows)
        return BranchTimingView(
            branch_id=branch_id,
            branch_name=branch_name or "Branch",
            weekly=BranchTimingService.collapse_weekly(rows),
            overrides=BranchTimingService.group_overrides(rows),
        )

    @staticmethod
    def expand_view(view: BranchTimingView) -> list[TimingRowBase]:
        """
        Jeu de remplacement complet / Complete replacement row set.
        = 7 lignes hebdomadaires + 7 par exception (7 + 7N).
        """
        return (
            BranchTimingService.expand_weekly(view.weekly, view.branch_id)
            + BranchTimingService.expand_overrides(view.overrides, view.branch_id)
        )

    # --- Horaires effectifs / Effective hours ---

    @staticmethod
    def override_applies(override: OverrideRule, iso_date: str) -> bool:
        """Exception active à cette date / Whether the override covers the date.

        Sans date de début, ou fin < début : jamais active.
        No start date, or end < start: never applies.
        """
        if not override.start_date:
            return False
        end = override.end_date or override.start_date
        return override.start_date <= iso_date <= end

    @staticmethod
    def resolve_hours(view: BranchTimingView, on_date: date) -> EffectiveHours:
        """
        Horaires effectifs pour une date / Effective hours for one date.
        La dernière exception applicable l'emporte, sinon la règle du jour.
        The last applicable override wins, otherwise the weekday rule.
        """
        iso = on_date.isoformat()
        day = DAYS[on_date.weekday()]
        matching = [o for o in view.overrides if BranchTimingService.override_applies(o, iso)]
        if matching:
            o = matching[-1]
            return EffectiveHours(
                date=iso,
                day=day,
                is_closed=o.is_closed,
                open="" if o.is_closed else o.open,
                close="" if o.is_closed else o.close,
                source="override",
                override_id=o.id,
            )
        rule = next(r for r in view.weekly if r.day == day)
        return EffectiveHours(
            date=iso,
            day=day,
            is_closed=rule.is_closed,
            open="" if rule.is_closed else rule.open,
            close="" if rule.is_closed else rule.close,
            source="weekly",
        )

    @staticmethod
    def is_open_at(hours: EffectiveHours, hhmm: str) -> bool:
        """Ouvert à l'heure donnée / Open at the given HH:MM (close time exclusive)."""
        if hours.is_closed:
            return False
        at = TimeFormatService.to_minutes(TimeFormatService.to_canonical(hhmm))
        start = TimeFormatService.to_minutes(hours.open)
        end = TimeFormatService.to_minutes(hours.close)
        if at is None or start is None or end is None:
            return False
        return start <= at < end
