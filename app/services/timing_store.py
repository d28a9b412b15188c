"""
Accès stockage des succursales et horaires / Branch and timing storage access.

Enregistrement = remplacement complet : suppression de toutes les lignes de la
succursale puis insertion du nouveau jeu. Par défaut en deux transactions
séparées : un échec à l'insertion laisse la succursale sans aucune ligne.
Save = full replace: delete every row of the branch then insert the new set.
By default in two separate transactions: an insert failure leaves the branch
with zero rows until the next successful save.
"""

import logging
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.library_branch import LibraryBranch
from app.models.timing import Timing
from app.schemas.branch import BranchRead
from app.schemas.timing import TimingRowBase, TimingRowRead

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Erreur de stockage / Storage error carrying the backend message."""

    phase = "query"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TimingDeleteError(StoreError):
    """Échec de suppression : lignes précédentes intactes / Delete failed, prior rows kept."""

    phase = "delete"


class TimingInsertError(StoreError):
    """Échec d'insertion après suppression / Insert failed after delete."""

    phase = "insert"


class TimingStore:
    """Lecture / écriture des succursales et horaires / Branch and timing reads and writes."""

    def __init__(self, session_factory: async_sessionmaker, atomic: bool = False):
        self._session_factory = session_factory
        self.atomic = atomic

    # --- Succursales / Branches ---

    async def fetch_branches(self) -> list[BranchRead]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(LibraryBranch).order_by(LibraryBranch.name)
                )
                return [BranchRead.model_validate(b) for b in result.scalars().all()]
        except SQLAlchemyError as exc:
            logger.error("Load branches failed: %s", exc)
            raise StoreError(f"Failed to load branches: {exc}") from exc

    async def create_branch(self, name: str, address: str = "") -> BranchRead:
        try:
            async with self._session_factory() as session:
                branch = LibraryBranch(name=name.strip(), address=(address or "").strip())
                session.add(branch)
                await session.commit()
                await session.refresh(branch)
                return BranchRead.model_validate(branch)
        except SQLAlchemyError as exc:
            logger.error("Create branch failed: %s", exc)
            raise StoreError(f"Failed to add branch: {exc}") from exc

    # --- Horaires / Timings ---

    async def fetch_timings(self, branch_id: int) -> list[TimingRowRead]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Timing).where(Timing.branch_id == branch_id).order_by(Timing.id)
                )
                return [TimingRowRead.model_validate(t) for t in result.scalars().all()]
        except SQLAlchemyError as exc:
            logger.error("Load timings failed for branch %s: %s", branch_id, exc)
            raise StoreError(f"Failed to load timings: {exc}") from exc

    async def replace_timings(self, branch_id: int, rows: Sequence[TimingRowBase]) -> int:
        """Remplacer toutes les lignes / Replace every timing row of the branch.

        Retourne le nombre de lignes insérées / Returns the inserted row count.
        """
        if self.atomic:
            return await self._replace_atomic(branch_id, rows)

        async with self._session_factory() as session:
            await self._delete_rows(session, branch_id)
            try:
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise TimingDeleteError(f"Failed to save timings: {exc}") from exc

        if not rows:
            return 0
        async with self._session_factory() as session:
            await self._insert_rows(session, rows)
            try:
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("Branch %s left without timings after failed insert", branch_id)
                raise TimingInsertError(f"Failed to save timings: {exc}") from exc
        logger.info("Saved %d timing rows for branch %s", len(rows), branch_id)
        return len(rows)

    async def _replace_atomic(self, branch_id: int, rows: Sequence[TimingRowBase]) -> int:
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    await self._delete_rows(session, branch_id)
                    if rows:
                        await self._insert_rows(session, rows)
            except StoreError:
                raise
            except SQLAlchemyError as exc:
                raise TimingInsertError(f"Failed to save timings: {exc}") from exc
        logger.info("Saved %d timing rows for branch %s (atomic)", len(rows), branch_id)
        return len(rows)

    async def _delete_rows(self, session: AsyncSession, branch_id: int) -> None:
        try:
            await session.execute(delete(Timing).where(Timing.branch_id == branch_id))
        except SQLAlchemyError as exc:
            logger.error("Delete timings failed for branch %s: %s", branch_id, exc)
            raise TimingDeleteError(f"Failed to save timings: {exc}") from exc

    async def _insert_rows(self, session: AsyncSession, rows: Sequence[TimingRowBase]) -> None:
        try:
            session.add_all([Timing(**row.model_dump()) for row in rows])
            await session.flush()
        except SQLAlchemyError as exc:
            logger.error("Insert timings failed: %s", exc)
            raise TimingInsertError(f"Failed to save timings: {exc}") from exc
