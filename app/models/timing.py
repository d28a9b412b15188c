"""Modèle Horaires succursale / Branch timing model."""

import enum

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Weekday(str, enum.Enum):
    """Jour de semaine / Weekday name as stored in day_of_week."""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


# Ordre canonique / Canonical order (Monday first, matches date.weekday())
DAYS: tuple[Weekday, ...] = tuple(Weekday)


class Timing(Base):
    """Ligne d'horaire à plat / Flat timing row.

    Convention : start_date et end_date nuls = règle hebdomadaire du jour.
    Sinon = exception (override) pour ce jour sur la période.
    Convention: both dates null = weekly rule for that weekday.
    Otherwise = override for that weekday over the date range.
    """
    __tablename__ = "timings"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("library_branches.id"), nullable=False, index=True)
    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)
    start_date: Mapped[str | None] = mapped_column(String(10))  # YYYY-MM-DD
    end_date: Mapped[str | None] = mapped_column(String(10))
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False)
    open_time: Mapped[str | None] = mapped_column(String(8))  # HH:MM ou HH:MM:SS
    close_time: Mapped[str | None] = mapped_column(String(8))

    # Relations
    branch: Mapped["LibraryBranch"] = relationship(back_populates="timings")

    @property
    def is_override(self) -> bool:
        return bool(self.start_date or self.end_date)

    def __repr__(self) -> str:
        span = f" {self.start_date}..{self.end_date}" if self.is_override else ""
        return f"<Timing branch={self.branch_id} {self.day_of_week}{span}>"
