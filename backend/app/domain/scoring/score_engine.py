"""
Score Engine (Domain Logic).

Applies score deltas under the bounded-balance rule, appends ledger
entries, reverses past entries and answers ledger queries.

Invariant for every person: 0 <= score <= max_score and
score == sum(delta of its surviving ledger entries).

Every mutation runs as one unit of work:
1. Lock the person row (FOR UPDATE where the store supports it)
2. Check the bound against the current score
3. Shift the score with a guarded UPDATE (score + d stays within bounds)
4. Append or remove the ledger row
5. Commit, or roll back everything
"""

import logging
import math
from typing import List, Tuple

from sqlalchemy import select, update, delete, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import (
    ResourceNotFoundError,
    OutOfRangeError,
    InvalidReversalError,
    StoreFailureError,
)
from backend.app.db.session import transaction
from backend.app.domain.validation import (
    normalize_comment,
    validate_delta,
    validate_page,
    bound_violation,
    is_storable_id,
)
from backend.app.models.ledger_entry import LedgerEntry
from backend.app.models.person import Person
from backend.app.models.timestamps import utcnow
from backend.app.schemas.points import (
    LedgerEntryResponse,
    LedgerHistoryResponse,
    LedgerStats,
    LedgerStatsResponse,
    LedgerDiscrepancy,
    Pagination,
    PersonScoreSummary,
    PersonStatsSummary,
    PointsBucket,
)

logger = logging.getLogger(__name__)


class ScoreEngine:

    def __init__(self, db: AsyncSession):
        self.db = db

    # --- store helpers ---

    async def _load_person(self, person_id: int, for_update: bool = False) -> Person:
        if not is_storable_id(person_id):
            raise ResourceNotFoundError("Person", person_id)
        query = select(Person).where(Person.id == person_id).execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        person = result.scalar_one_or_none()
        if not person:
            raise ResourceNotFoundError("Person", person_id)
        return person

    async def _load_entry(self, entry_id: int) -> LedgerEntry:
        if not is_storable_id(entry_id):
            raise ResourceNotFoundError("Ledger entry", entry_id)
        result = await self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.id == entry_id)
            .execution_options(populate_existing=True)
        )
        entry = result.scalar_one_or_none()
        if not entry:
            raise ResourceNotFoundError("Ledger entry", entry_id)
        return entry

    async def _shift_score(self, person_id: int, shift: int) -> bool:
        """
        Add ``shift`` to the stored score only if the result stays in bounds.

        The bound is re-evaluated by the store against the row's current
        value, so two writers can never both pass on a stale read.
        Returns False when no row matched.
        """
        shifted = Person.score + shift
        result = await self.db.execute(
            update(Person)
            .where(
                Person.id == person_id,
                shifted >= 0,
                shifted <= Person.max_score,
            )
            .values(score=shifted, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # --- bound checks ---

    @staticmethod
    def _check_delta(person: Person, delta: int) -> None:
        violation = bound_violation(person.score + delta, person.max_score)
        if violation:
            logger.warning(
                "Delta rejected: person=%s score=%s delta=%+d max=%s bound=%s",
                person.id, person.score, delta, person.max_score, violation
            )
            raise OutOfRangeError(violation, person.score, delta, person.max_score)

    @staticmethod
    def _check_reversal(person: Person, entry: LedgerEntry) -> None:
        if bound_violation(person.score - entry.delta, person.max_score):
            logger.warning(
                "Reversal rejected: entry=%s person=%s score=%s delta=%+d max=%s",
                entry.id, person.id, person.score, entry.delta, person.max_score
            )
            raise InvalidReversalError(entry.id, person.score, entry.delta, person.max_score)

    # --- mutations ---

    async def apply_delta(
        self,
        person_id: int,
        delta: int,
        comment: str,
        actor: str
    ) -> Tuple[Person, LedgerEntry]:
        """
        Apply a signed delta to a person's score and append a ledger entry.

        Args:
            person_id: Target person
            delta: Non-zero integer in [-200, 200]
            comment: Justification, 1-500 characters after trimming
            actor: Caller identity recorded as ``modified_by``

        Returns:
            (updated person, new ledger entry)

        Raises:
            InvalidInputError: bad delta or comment
            ResourceNotFoundError: unknown person
            OutOfRangeError: resulting score would leave [0, max_score]
            StoreFailureError: the unit of work could not commit
        """
        delta = validate_delta(delta)
        comment = normalize_comment(comment)

        async with transaction(self.db):
            person = await self._load_person(person_id, for_update=True)
            self._check_delta(person, delta)

            if not await self._shift_score(person_id, delta):
                # Score moved under us: report against the fresh value
                person = await self._load_person(person_id, for_update=True)
                self._check_delta(person, delta)
                raise StoreFailureError("Score changed concurrently, retry the operation")

            entry = LedgerEntry(
                person_id=person_id,
                delta=delta,
                comment=comment,
                modified_by=actor
            )
            self.db.add(entry)
            await self.db.flush()

            person = await self._load_person(person_id)

        logger.info(
            "Delta applied: person=%s delta=%+d score=%s/%s entry=%s by=%s",
            person.id, delta, person.score, person.max_score, entry.id, actor
        )
        return person, entry

    async def reverse_entry(self, entry_id: int) -> Tuple[LedgerEntry, int]:
        """
        Undo one ledger entry relative to the person's current score.

        The compensated score is ``score - entry.delta``; later entries are
        not replayed. The entry row is deleted permanently.

        Returns:
            (removed entry, new score)

        Raises:
            ResourceNotFoundError: unknown (or already reversed) entry
            InvalidReversalError: compensated score would leave [0, max_score]
            StoreFailureError: the unit of work could not commit
        """
        async with transaction(self.db):
            entry = await self._load_entry(entry_id)
            person = await self._load_person(entry.person_id, for_update=True)
            # Re-read under the person lock; a concurrent reversal may have won
            entry = await self._load_entry(entry_id)
            self._check_reversal(person, entry)

            removed = await self.db.execute(
                delete(LedgerEntry)
                .where(LedgerEntry.id == entry_id)
                .execution_options(synchronize_session=False)
            )
            if removed.rowcount != 1:
                raise ResourceNotFoundError("Ledger entry", entry_id)

            if not await self._shift_score(person.id, -entry.delta):
                person = await self._load_person(person.id, for_update=True)
                self._check_reversal(person, entry)
                raise StoreFailureError("Score changed concurrently, retry the operation")

            person = await self._load_person(person.id)
            self.db.expunge(entry)

        logger.info(
            "Entry reversed: entry=%s person=%s delta=%+d score=%s/%s",
            entry.id, person.id, entry.delta, person.score, person.max_score
        )
        return entry, person.score

    # --- queries ---

    async def list_history(self, person_id: int, page: int = 1, page_size: int = 20) -> LedgerHistoryResponse:
        """
        Get one page of a person's ledger, newest first.

        Pages past the end yield an empty slice rather than an error.
        """
        validate_page(page, page_size)
        person = await self._load_person(person_id)

        count_query = select(func.count(LedgerEntry.id)).where(LedgerEntry.person_id == person_id)
        total = (await self.db.execute(count_query)).scalar() or 0

        offset = (page - 1) * page_size
        entries = []
        # Past the last page: nothing to fetch
        if offset < total:
            query = (
                select(LedgerEntry)
                .where(LedgerEntry.person_id == person_id)
                .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
                .offset(offset)
                .limit(min(page_size, total - offset))
            )
            entries = (await self.db.execute(query)).scalars().all()

        total_pages = math.ceil(total / page_size)

        return LedgerHistoryResponse(
            person=PersonScoreSummary.model_validate(person),
            history=[LedgerEntryResponse.model_validate(entry) for entry in entries],
            pagination=Pagination(
                current_page=page,
                page_size=page_size,
                total_pages=total_pages,
                total_count=total,
                has_next=page < total_pages,
                has_previous=page > 1
            )
        )

    async def compute_stats(self, person_id: int) -> LedgerStatsResponse:
        """
        Aggregate a person's ledger.

        ``total_points_changed`` is computed from the entries, independently
        of the cached score, so the two can be compared.
        """
        person = await self._load_person(person_id)

        positive = LedgerEntry.delta > 0
        negative = LedgerEntry.delta < 0
        query = select(
            func.count(LedgerEntry.id),
            func.coalesce(func.sum(LedgerEntry.delta), 0),
            func.coalesce(func.sum(case((positive, LedgerEntry.delta), else_=0)), 0),
            func.count(case((positive, 1))),
            func.coalesce(func.sum(case((negative, -LedgerEntry.delta), else_=0)), 0),
            func.count(case((negative, 1))),
        ).where(LedgerEntry.person_id == person_id)

        row = (await self.db.execute(query)).one()
        count, total, added, added_count, removed, removed_count = row

        return LedgerStatsResponse(
            person=PersonStatsSummary(
                id=person.id,
                name=person.name,
                current_score=person.score,
                max_score=person.max_score
            ),
            stats=LedgerStats(
                total_modifications=count,
                total_points_changed=total,
                points_added=PointsBucket(total=added, count=added_count),
                points_removed=PointsBucket(total=removed, count=removed_count)
            )
        )

    async def reconcile(self) -> List[LedgerDiscrepancy]:
        """
        Compare every person's cached score with its ledger.

        Returns the persons whose score differs from the sum of their
        entries or sits outside [0, max_score]. Empty when consistent.
        """
        totals = (
            select(
                LedgerEntry.person_id,
                func.sum(LedgerEntry.delta).label("ledger_total")
            )
            .group_by(LedgerEntry.person_id)
            .subquery()
        )
        query = (
            select(Person, func.coalesce(totals.c.ledger_total, 0))
            .outerjoin(totals, totals.c.person_id == Person.id)
            .order_by(Person.id)
        )
        result = await self.db.execute(query)

        discrepancies = []
        for person, ledger_total in result.all():
            if person.score != ledger_total or bound_violation(person.score, person.max_score):
                discrepancies.append(LedgerDiscrepancy(
                    person_id=person.id,
                    name=person.name,
                    score=person.score,
                    max_score=person.max_score,
                    ledger_total=ledger_total
                ))

        if discrepancies:
            logger.error("Ledger reconciliation found %d inconsistent person(s)", len(discrepancies))
        return discrepancies
