"""
Points API Endpoints.

Score changes, reversals and ledger queries.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from backend.app.schemas.person import PersonResponse
from backend.app.schemas.points import (
    PointsCreate, PointsApplyResponse, ReversalResponse,
    LedgerEntryResponse, LedgerHistoryResponse, LedgerStatsResponse
)
from backend.app.core.dependencies import get_caller, get_score_engine
from backend.app.domain.scoring.score_engine import ScoreEngine

router = APIRouter(prefix="/points", tags=["Points"])


@router.post("", response_model=PointsApplyResponse, status_code=status.HTTP_201_CREATED)
async def apply_points(
    points_data: PointsCreate,
    caller: str = Depends(get_caller),
    engine: ScoreEngine = Depends(get_score_engine)
):
    """
    Add (positive) or remove (negative) points.

    The change is recorded in the person's ledger in the same transaction.
    """
    person, entry = await engine.apply_delta(
        person_id=points_data.person_id,
        delta=points_data.points,
        comment=points_data.comment,
        actor=caller
    )

    return PointsApplyResponse(
        message="Points added successfully" if entry.delta > 0 else "Points removed successfully",
        person=PersonResponse.model_validate(person),
        entry=LedgerEntryResponse.model_validate(entry)
    )


@router.get("/history/{person_id}", response_model=LedgerHistoryResponse)
async def get_history(
    person_id: int,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    caller: str = Depends(get_caller),
    engine: ScoreEngine = Depends(get_score_engine)
):
    """Paginated ledger of a person, newest first."""
    return await engine.list_history(person_id, page=page, page_size=limit)


@router.get("/stats/{person_id}", response_model=LedgerStatsResponse)
async def get_stats(
    person_id: int,
    caller: str = Depends(get_caller),
    engine: ScoreEngine = Depends(get_score_engine)
):
    """Ledger statistics of a person."""
    return await engine.compute_stats(person_id)


@router.delete("/{entry_id}", response_model=ReversalResponse)
async def reverse_points(
    entry_id: int = Path(..., description="Ledger entry ID"),
    caller: str = Depends(get_caller),
    engine: ScoreEngine = Depends(get_score_engine)
):
    """
    Cancel a ledger entry.

    The person's current score is compensated by the entry's delta and the
    entry is removed.
    """
    entry, new_score = await engine.reverse_entry(entry_id)

    return ReversalResponse(
        message="Modification cancelled successfully",
        reversed_entry=LedgerEntryResponse.model_validate(entry),
        new_score=new_score
    )
