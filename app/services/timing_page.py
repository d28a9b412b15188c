"""
Orchestration de la page Succursales & Horaires / Branches & Hours page orchestration.

Machine d'états chargement / édition / enregistrement, indépendante de toute UI.
Load / edit / save state machine, independent of any UI toolkit.

Les erreurs de stockage sont capturées ici et exposées en message ; pas de
nouvelle tentative automatique. Storage errors are caught here and exposed as
messages; there is no automatic retry.
"""

import enum
import logging

from app.schemas.branch import BranchRead
from app.schemas.timing import BranchTimingView
from app.services.branch_timing import BranchTimingService
from app.services.timing_editor import BranchTimingEditor
from app.services.timing_store import StoreError, TimingStore

logger = logging.getLogger(__name__)


class LoadStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class SaveStatus(str, enum.Enum):
    IDLE = "idle"
    SAVING = "saving"
    ERROR = "error"


class TimingCache:
    """Vues d'édition par succursale / Editing views keyed by branch id."""

    def __init__(self):
        self._views: dict[int, BranchTimingView] = {}

    def get(self, branch_id: int) -> BranchTimingView | None:
        return self._views.get(branch_id)

    def put(self, branch_id: int, view: BranchTimingView) -> None:
        self._views[branch_id] = view

    def invalidate(self, branch_id: int) -> None:
        self._views.pop(branch_id, None)

    def __contains__(self, branch_id: int) -> bool:
        return branch_id in self._views

    def __len__(self) -> int:
        return len(self._views)


class BranchTimingPage:
    """Page d'administration des horaires / Branch hours admin page state."""

    def __init__(self, store: TimingStore):
        self.store = store
        self.cache = TimingCache()

        self.branches: list[BranchRead] = []
        self.branches_status = LoadStatus.IDLE
        self.branches_error = ""

        self.active_branch_id: int | None = None
        self.filter_text = ""

        self.timings_status: dict[int, LoadStatus] = {}
        self.timings_error = ""

        self.save_status = SaveStatus.IDLE
        self.dirty = False

    # --- Succursales / Branches ---

    @property
    def active_branch(self) -> BranchRead | None:
        return next((b for b in self.branches if b.id == self.active_branch_id), None)

    @property
    def filtered_branches(self) -> list[BranchRead]:
        """Filtre rapide nom / adresse / id / Quick filter on name, address and id."""
        q = self.filter_text.strip().lower()
        if not q:
            return list(self.branches)
        return [
            b for b in self.branches
            if q in (b.name or "").lower() or q in (b.address or "").lower() or q in str(b.id)
        ]

    async def load_branches(self) -> None:
        self.branches_status = LoadStatus.LOADING
        self.branches_error = ""
        try:
            self.branches = await self.store.fetch_branches()
            self.branches_status = LoadStatus.LOADED
        except StoreError as exc:
            self.branches_error = exc.message or "Failed to load branches"
            return
        finally:
            # Jamais bloqué en chargement / Never left in LOADING
            if self.branches_status == LoadStatus.LOADING:
                self.branches_status = LoadStatus.ERROR
        # Succursale active par défaut / Default active branch, once
        if self.active_branch_id is None and self.branches:
            self.active_branch_id = self.branches[0].id

    async def select_branch(self, branch_id: int) -> None:
        self.active_branch_id = branch_id
        branch = self.active_branch
        await self.load_timings(branch_id, branch.name if branch else None)

    async def add_branch(self, name: str, address: str = "") -> BranchRead | None:
        if not name or not name.strip():
            return None
        try:
            branch = await self.store.create_branch(name, address)
        except StoreError as exc:
            self.branches_error = exc.message or "Failed to add branch"
            return None
        self.branches = [branch, *self.branches]
        self.active_branch_id = branch.id
        self.dirty = False
        # Vue vide pour ne pas afficher un éditeur vierge / Seed an empty view
        self.cache.put(branch.id, BranchTimingService.build_empty_view(branch.id, branch.name))
        self.timings_status[branch.id] = LoadStatus.LOADED
        return branch

    # --- Horaires / Timings ---

    def timing_status(self, branch_id: int) -> LoadStatus:
        return self.timings_status.get(branch_id, LoadStatus.IDLE)

    @property
    def timings_loading(self) -> bool:
        return any(s == LoadStatus.LOADING for s in self.timings_status.values())

    async def load_timings(self, branch_id: int, branch_name: str | None = None, force: bool = False) -> None:
        """Charger et regrouper les horaires / Load and collapse timings, cached per branch."""
        if branch_id is None:
            return
        if not force and branch_id in self.cache:
            return

        self.timings_status[branch_id] = LoadStatus.LOADING
        self.timings_error = ""
        try:
            rows = await self.store.fetch_timings(branch_id)
            # Réponse tardive écrite quand même / Late responses still land in the cache
            self.cache.put(branch_id, BranchTimingService.collapse_view(rows, branch_id, branch_name))
            self.timings_status[branch_id] = LoadStatus.LOADED
        except StoreError as exc:
            self.timings_error = exc.message or "Failed to load timings"
        finally:
            if self.timings_status.get(branch_id) == LoadStatus.LOADING:
                self.timings_status[branch_id] = LoadStatus.ERROR

    @property
    def active_value(self) -> BranchTimingView | None:
        branch = self.active_branch
        if branch is None:
            return None
        return self.cache.get(branch.id) or BranchTimingService.build_empty_view(branch.id, branch.name)

    def apply_change(self, next_value: BranchTimingView) -> None:
        """Remontée de l'éditeur / Editor change callback."""
        self.dirty = True
        self.cache.put(next_value.branch_id, next_value)

    def editor(self) -> BranchTimingEditor | None:
        value = self.active_value
        if value is None:
            return None
        return BranchTimingEditor(value, on_change=self.apply_change)

    # --- Enregistrement / Save ---

    @property
    def saving(self) -> bool:
        return self.save_status == SaveStatus.SAVING

    @property
    def can_save(self) -> bool:
        return (
            not self.saving
            and self.branches_status != LoadStatus.LOADING
            and not self.timings_loading
            and self.active_branch_id is not None
            and self.dirty
        )

    async def save(self) -> bool:
        """
        Remplacer les horaires de la succursale active / Replace the active branch's timings.
        Succès : vue rechargée depuis la base (note perdue, exceptions regroupées).
        Success: view reloaded from storage (note dropped, overrides regrouped).
        """
        value = self.active_value
        if self.active_branch_id is None or value is None or self.saving:
            return False

        branch_id = self.active_branch_id
        self.save_status = SaveStatus.SAVING
        self.timings_error = ""
        try:
            await self.store.replace_timings(branch_id, BranchTimingService.expand_view(value))
            self.save_status = SaveStatus.IDLE
        except StoreError as exc:
            logger.warning("Save failed for branch %s (%s phase): %s", branch_id, exc.phase, exc.message)
            self.timings_error = exc.message or "Failed to save timings"
            return False
        finally:
            # Jamais bloqué en enregistrement / Never left in SAVING
            if self.save_status == SaveStatus.SAVING:
                self.save_status = SaveStatus.ERROR

        self.dirty = False
        self.cache.invalidate(branch_id)
        await self.load_timings(branch_id, value.branch_name, force=True)
        return True
