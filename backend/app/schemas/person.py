"""
Person Pydantic schemas.

Defines request and response models for the person directory.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List


class PersonCreate(BaseModel):
    """Schema for creating a new person."""
    name: str = Field(..., min_length=1, description="Person name, 1-100 characters after trimming (unique, case-insensitive)")


class PersonUpdate(BaseModel):
    """Schema for renaming a person."""
    name: str = Field(..., min_length=1, description="New person name, 1-100 characters after trimming")


class PersonResponse(BaseModel):
    """Schema for person response."""
    id: int
    name: str
    score: int
    max_score: int
    created_by: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PersonListItem(PersonResponse):
    """Person with the number of ledger entries recorded for it."""
    entry_count: int


class PersonListResponse(BaseModel):
    """Schema for the person list, newest first."""
    persons: List[PersonListItem]
    total: int


class PersonDeleteResponse(BaseModel):
    """Result of a person purge."""
    message: str
    id: int
    deleted_entries: int
