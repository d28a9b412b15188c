"""
Seed des succursales de démonstration / Demo branch seeding.
Crée trois succursales avec horaires au premier démarrage si la table est vide.
Creates three branches with hours on first startup if the table is empty.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.library_branch import LibraryBranch
from app.models.timing import DAYS, Timing, Weekday
from app.schemas.timing import BranchTimingView, OverrideRule, WeekdayRule
from app.services.branch_timing import BranchTimingService

logger = logging.getLogger(__name__)


def _week(weekday_hours: tuple[str, str], saturday: tuple[str, str] | None, sunday_open: bool = False):
    rules = []
    for day in DAYS:
        if day == Weekday.SATURDAY:
            hours = saturday
        elif day == Weekday.SUNDAY:
            hours = weekday_hours if sunday_open else None
        else:
            hours = weekday_hours
        if hours is None:
            rules.append(WeekdayRule(day=day, is_closed=True))
        else:
            rules.append(WeekdayRule(day=day, open=hours[0], close=hours[1]))
    return rules


DEMO_BRANCHES = [
    {
        "name": "Main Branch",
        "address": "1 Library Square",
        "weekly": _week(("09:00", "18:00"), ("10:00", "16:00")),
        "overrides": [
            OverrideRule(id="seed_1", start_date="2026-01-10", end_date="2026-01-10", is_closed=True),
            OverrideRule(
                id="seed_2", start_date="2026-01-12", end_date="2026-01-12",
                is_closed=False, open="12:00", close="18:00",
            ),
        ],
    },
    {
        "name": "City Branch",
        "address": "42 Market Street",
        "weekly": _week(("10:00", "19:00"), ("11:00", "16:00")),
        "overrides": [],
    },
    {
        "name": "North Branch",
        "address": "7 Northern Road",
        "weekly": _week(("09:00", "17:00"), None),
        "overrides": [
            OverrideRule(id="seed_3", start_date="2026-01-08", end_date="2026-01-08", is_closed=True),
        ],
    },
]


async def seed_demo_branches(session: AsyncSession) -> None:
    """Créer les succursales démo si aucune n'existe / Create demo branches if none exist."""
    count = await session.scalar(select(func.count(LibraryBranch.id)))
    if count:
        logger.info("%s existing branch(es), seed skipped", count)
        return

    for demo in DEMO_BRANCHES:
        branch = LibraryBranch(name=demo["name"], address=demo["address"])
        session.add(branch)
        await session.flush()
        view = BranchTimingView(
            branch_id=branch.id,
            branch_name=branch.name,
            weekly=demo["weekly"],
            overrides=demo["overrides"],
        )
        session.add_all([Timing(**row.model_dump()) for row in BranchTimingService.expand_view(view)])
    await session.commit()
    logger.info("Seeded %d demo branches", len(DEMO_BRANCHES))
