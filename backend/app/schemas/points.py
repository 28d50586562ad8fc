"""
Points Pydantic schemas.

Request and response models for score changes, reversals, ledger history
and ledger statistics.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List

from backend.app.schemas.person import PersonResponse


class PointsCreate(BaseModel):
    """Schema for applying a score delta. Accepts ``personId`` or ``person_id``."""
    person_id: int = Field(..., alias="personId", description="Target person")
    points: int = Field(..., ge=-200, le=200, description="Signed, non-zero delta")
    comment: str = Field(..., min_length=1, description="Justification, 1-500 characters after trimming")

    class Config:
        populate_by_name = True


class LedgerEntryResponse(BaseModel):
    """Schema for one ledger entry."""
    id: int
    person_id: int
    delta: int
    comment: str
    modified_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class PointsApplyResponse(BaseModel):
    """Updated person together with the entry that was appended."""
    message: str
    person: PersonResponse
    entry: LedgerEntryResponse


class ReversalResponse(BaseModel):
    """The removed entry and the compensated score."""
    message: str
    reversed_entry: LedgerEntryResponse
    new_score: int


class PersonScoreSummary(BaseModel):
    """Compact person view attached to ledger queries."""
    id: int
    name: str
    score: int
    max_score: int

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    current_page: int
    page_size: int
    total_pages: int
    total_count: int
    has_next: bool
    has_previous: bool


class LedgerHistoryResponse(BaseModel):
    """One page of a person's ledger, newest first."""
    person: PersonScoreSummary
    history: List[LedgerEntryResponse]
    pagination: Pagination


class PointsBucket(BaseModel):
    total: int
    count: int


class LedgerStats(BaseModel):
    """Aggregates over a person's ledger."""
    total_modifications: int
    total_points_changed: int
    points_added: PointsBucket
    points_removed: PointsBucket


class PersonStatsSummary(BaseModel):
    id: int
    name: str
    current_score: int
    max_score: int


class LedgerStatsResponse(BaseModel):
    person: PersonStatsSummary
    stats: LedgerStats


class LedgerDiscrepancy(BaseModel):
    """A person whose cached score disagrees with its ledger."""
    person_id: int
    name: str
    score: int
    max_score: int
    ledger_total: int
