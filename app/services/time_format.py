"""
Service de format des horaires / Time format service.
Normalise les heures stockées (HH:MM:SS ou HH:MM) vers HH:MM et inversement.
"""

import re
from typing import Any

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class TimeFormatService:
    """Conversion stockage <-> édition / Storage <-> editing time conversion."""

    @staticmethod
    def to_canonical(raw: Any) -> str:
        """
        Heure canonique HH:MM / Canonical HH:MM time.
        "09:30:00" -> "09:30", None -> "", illisible / unparseable -> "".
        """
        if raw is None or raw == "":
            return ""
        head = str(raw)[:5]
        return head if _HHMM.match(head) else ""

    @staticmethod
    def to_storage(canonical: str, is_closed: bool) -> str | None:
        """Valeur à stocker / Value to store (None if closed or empty)."""
        if is_closed or not canonical:
            return None
        return canonical

    @staticmethod
    def to_minutes(canonical: str) -> int | None:
        """Minutes depuis minuit / Minutes since midnight, None if not HH:MM."""
        if not _HHMM.match(canonical or ""):
            return None
        hours, mins = map(int, canonical.split(":"))
        return hours * 60 + mins
