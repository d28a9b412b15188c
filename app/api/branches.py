"""Routes Succursales et Horaires / Branch and timing API routes."""

from datetime import date as date_type

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import String, cast, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.database import get_db, get_session_factory
from app.models.library_branch import LibraryBranch
from app.rate_limit import limiter
from app.schemas.branch import BranchCreate, BranchRead, BranchUpdate
from app.schemas.timing import BranchTimingUpdate, BranchTimingView, EffectiveHours, TimingRowRead
from app.services.branch_timing import BranchTimingService
from app.services.timing_store import StoreError, TimingStore

router = APIRouter()


def get_timing_store(session_factory: async_sessionmaker = Depends(get_session_factory)) -> TimingStore:
    return TimingStore(session_factory, atomic=settings.TIMINGS_ATOMIC_SAVE)


async def _get_branch_or_404(db: AsyncSession, branch_id: int) -> LibraryBranch:
    branch = await db.get(LibraryBranch, branch_id)
    if not branch:
        raise HTTPException(status_code=404, detail="Branch not found")
    return branch


async def _load_view(store: TimingStore, branch: LibraryBranch) -> BranchTimingView:
    try:
        rows = await store.fetch_timings(branch.id)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=exc.message)
    return BranchTimingService.collapse_view(rows, branch.id, branch.name)


# --- Succursales / Branches ---

@router.get("/", response_model=list[BranchRead])
async def list_branches(q: str | None = None, db: AsyncSession = Depends(get_db)):
    """Lister les succursales par nom / List branches ordered by name, with quick filter."""
    query = select(LibraryBranch).order_by(LibraryBranch.name)
    text = (q or "").strip()
    if text:
        # Sous-chaîne littérale, comme le filtre de la page / Literal substring, as on the page
        escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        query = query.where(or_(
            LibraryBranch.name.ilike(pattern, escape="\\"),
            LibraryBranch.address.ilike(pattern, escape="\\"),
            cast(LibraryBranch.id, String).ilike(pattern, escape="\\"),
        ))
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{branch_id}", response_model=BranchRead)
async def get_branch(branch_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_branch_or_404(db, branch_id)


@router.post("/", response_model=BranchRead, status_code=201)
async def create_branch(data: BranchCreate, db: AsyncSession = Depends(get_db)):
    """Créer une succursale / Create a branch."""
    branch = LibraryBranch(**data.model_dump())
    db.add(branch)
    await db.flush()
    await db.refresh(branch)
    return branch


@router.put("/{branch_id}", response_model=BranchRead)
async def update_branch(branch_id: int, data: BranchUpdate, db: AsyncSession = Depends(get_db)):
    branch = await _get_branch_or_404(db, branch_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        if isinstance(value, str) and key != "manager_id":
            value = value.strip()
        setattr(branch, key, value)
    await db.flush()
    await db.refresh(branch)
    return branch


@router.delete("/{branch_id}", status_code=204)
async def delete_branch(branch_id: int, db: AsyncSession = Depends(get_db)):
    """Supprimer une succursale et ses horaires / Delete a branch and its timings."""
    branch = await _get_branch_or_404(db, branch_id)
    await db.delete(branch)


# --- Horaires / Timings ---

@router.get("/{branch_id}/timings", response_model=BranchTimingView)
async def get_timings(
    branch_id: int,
    db: AsyncSession = Depends(get_db),
    store: TimingStore = Depends(get_timing_store),
):
    """Vue d'édition regroupée / Collapsed editing view."""
    branch = await _get_branch_or_404(db, branch_id)
    return await _load_view(store, branch)


@router.get("/{branch_id}/timings/rows", response_model=list[TimingRowRead])
async def get_timing_rows(
    branch_id: int,
    db: AsyncSession = Depends(get_db),
    store: TimingStore = Depends(get_timing_store),
):
    """Lignes stockées brutes / Raw stored rows."""
    await _get_branch_or_404(db, branch_id)
    try:
        return await store.fetch_timings(branch_id)
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=exc.message)


@router.put("/{branch_id}/timings", response_model=BranchTimingView)
@limiter.limit(settings.RATE_LIMIT_SAVE)
async def save_timings(
    request: Request,
    branch_id: int,
    data: BranchTimingUpdate,
    db: AsyncSession = Depends(get_db),
    store: TimingStore = Depends(get_timing_store),
):
    """
    Remplacer les horaires / Replace the branch timings.
    Suppression puis insertion, puis relecture / Delete, insert, then reload.
    """
    branch = await _get_branch_or_404(db, branch_id)
    view = BranchTimingView(
        branch_id=branch.id,
        branch_name=branch.name,
        weekly=data.weekly,
        overrides=data.overrides,
    )
    try:
        await store.replace_timings(branch.id, BranchTimingService.expand_view(view))
    except StoreError as exc:
        raise HTTPException(status_code=500, detail=exc.message)
    return await _load_view(store, branch)


@router.get("/{branch_id}/hours", response_model=EffectiveHours)
async def get_effective_hours(
    branch_id: int,
    date: date_type = Query(...),
    time: str | None = Query(default=None, pattern=r"^\d{2}:\d{2}(:\d{2})?$"),
    db: AsyncSession = Depends(get_db),
    store: TimingStore = Depends(get_timing_store),
):
    """Horaires effectifs d'une date / Effective hours for a date, optional open check."""
    branch = await _get_branch_or_404(db, branch_id)
    view = await _load_view(store, branch)
    hours = BranchTimingService.resolve_hours(view, date)
    if time:
        hours.is_open = BranchTimingService.is_open_at(hours, time)
    return hours
