"""
Modèles SQLAlchemy / SQLAlchemy models.
Importer tous les modèles ici pour qu'Alembic les détecte.
Import all models here so Alembic can detect them.
"""

from app.models.library_branch import LibraryBranch
from app.models.timing import DAYS, Timing, Weekday

__all__ = [
    "LibraryBranch",
    "Timing",
    "Weekday",
    "DAYS",
]
