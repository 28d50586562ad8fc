"""
Person API Endpoints.

Create, list, view, rename and delete tracked persons.
"""

from fastapi import APIRouter, Depends, status
from backend.app.schemas.person import (
    PersonCreate, PersonUpdate, PersonResponse,
    PersonListItem, PersonListResponse, PersonDeleteResponse
)
from backend.app.core.dependencies import get_caller, get_directory_engine
from backend.app.domain.directory.directory_engine import DirectoryEngine

router = APIRouter(prefix="/persons", tags=["Persons"])


@router.post("", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
async def create_person(
    person_data: PersonCreate,
    caller: str = Depends(get_caller),
    directory: DirectoryEngine = Depends(get_directory_engine)
):
    """
    Create a new person with a zero score.

    Names are unique regardless of case.
    """
    person = await directory.create(person_data.name, creator=caller)
    return PersonResponse.model_validate(person)


@router.get("", response_model=PersonListResponse)
async def list_persons(
    caller: str = Depends(get_caller),
    directory: DirectoryEngine = Depends(get_directory_engine)
):
    """List all persons, newest first, with their ledger entry counts."""
    rows = await directory.list()

    return PersonListResponse(
        persons=[
            PersonListItem(**PersonResponse.model_validate(person).model_dump(), entry_count=count)
            for person, count in rows
        ],
        total=len(rows)
    )


@router.get("/{person_id}", response_model=PersonResponse)
async def get_person(
    person_id: int,
    caller: str = Depends(get_caller),
    directory: DirectoryEngine = Depends(get_directory_engine)
):
    """Get a single person."""
    person = await directory.get(person_id)
    return PersonResponse.model_validate(person)


@router.put("/{person_id}", response_model=PersonResponse)
async def rename_person(
    person_id: int,
    person_data: PersonUpdate,
    caller: str = Depends(get_caller),
    directory: DirectoryEngine = Depends(get_directory_engine)
):
    """Rename a person. The new name must not belong to another person."""
    person = await directory.rename(person_id, person_data.name)
    return PersonResponse.model_validate(person)


@router.delete("/{person_id}", response_model=PersonDeleteResponse)
async def delete_person(
    person_id: int,
    caller: str = Depends(get_caller),
    directory: DirectoryEngine = Depends(get_directory_engine)
):
    """
    Delete a person and its whole ledger.

    Irreversible purge; nothing is compensated.
    """
    removed = await directory.delete(person_id)

    return PersonDeleteResponse(
        message="Person deleted successfully",
        id=person_id,
        deleted_entries=removed
    )
