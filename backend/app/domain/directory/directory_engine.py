"""
Directory Engine (Domain Logic).

Manages person identity: creation, renaming, deletion and lookups.
Enforces case-insensitive name uniqueness. Deleting a person purges its
ledger entries inside the same unit of work.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError, DuplicateNameError
from backend.app.db.session import transaction
from backend.app.domain.validation import normalize_name, is_storable_id
from backend.app.models.ledger_entry import LedgerEntry
from backend.app.models.person import Person

logger = logging.getLogger(__name__)


class DirectoryEngine:

    def __init__(self, db: AsyncSession, default_max_score: int):
        self.db = db
        self.default_max_score = default_max_score

    async def _name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Person.id).where(func.lower(Person.name) == func.lower(name))
        if exclude_id is not None:
            query = query.where(Person.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def _load(self, person_id: int, for_update: bool = False) -> Person:
        if not is_storable_id(person_id):
            raise ResourceNotFoundError("Person", person_id)
        if for_update:
            person = await self.db.get(Person, person_id, with_for_update=True, populate_existing=True)
        else:
            person = await self.db.get(Person, person_id)
        if not person:
            raise ResourceNotFoundError("Person", person_id)
        return person

    async def create(self, name: str, creator: str) -> Person:
        """
        Create a person with score 0 and the configured max score.

        Raises:
            InvalidInputError: name length outside 1-100 after trimming
            DuplicateNameError: another person already has this name (any case)
        """
        name = normalize_name(name)

        async with transaction(self.db):
            if await self._name_taken(name):
                raise DuplicateNameError(name)

            person = Person(
                name=name,
                score=0,
                max_score=self.default_max_score,
                created_by=creator
            )
            self.db.add(person)
            try:
                await self.db.flush()
            except IntegrityError as exc:
                # Lost a race against a concurrent create with the same name
                raise DuplicateNameError(name) from exc

        logger.info("Person created: id=%s name=%r by=%s", person.id, person.name, creator)
        return person

    async def rename(self, person_id: int, new_name: str) -> Person:
        """
        Rename a person.

        Raises:
            InvalidInputError: name length outside 1-100 after trimming
            ResourceNotFoundError: unknown person
            DuplicateNameError: a different person already has this name
        """
        new_name = normalize_name(new_name)

        async with transaction(self.db):
            person = await self._load(person_id)

            if await self._name_taken(new_name, exclude_id=person_id):
                raise DuplicateNameError(new_name)

            person.name = new_name
            try:
                await self.db.flush()
            except IntegrityError as exc:
                raise DuplicateNameError(new_name) from exc

        logger.info("Person renamed: id=%s name=%r", person.id, person.name)
        return person

    async def delete(self, person_id: int) -> int:
        """
        Delete a person and all of its ledger entries atomically.

        This is a purge, not a reversal: no score is compensated.

        Returns:
            Number of ledger entries removed with the person
        """
        async with transaction(self.db):
            # Lock the person so no entry can be appended during the purge
            person = await self._load(person_id, for_update=True)

            result = await self.db.execute(
                delete(LedgerEntry).where(LedgerEntry.person_id == person_id)
            )
            removed = result.rowcount or 0

            await self.db.delete(person)

        logger.info("Person deleted: id=%s ledger_entries_removed=%s", person_id, removed)
        return removed

    async def get(self, person_id: int) -> Person:
        return await self._load(person_id)

    async def list(self) -> List[Tuple[Person, int]]:
        """All persons, newest first, each paired with its ledger entry count."""
        entry_counts = (
            select(
                LedgerEntry.person_id,
                func.count(LedgerEntry.id).label("entry_count")
            )
            .group_by(LedgerEntry.person_id)
            .subquery()
        )

        query = (
            select(Person, func.coalesce(entry_counts.c.entry_count, 0))
            .outerjoin(entry_counts, entry_counts.c.person_id == Person.id)
            .order_by(Person.created_at.desc(), Person.id.desc())
        )

        result = await self.db.execute(query)
        return [(person, count) for person, count in result.all()]
