"""
Ledger Entry database model.

Append-only record of every change applied to a person's score.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, String, CheckConstraint
from backend.app.db.session import Base
from backend.app.models.timestamps import utcnow


class LedgerEntry(Base):
    """
    Ledger Entry model.

    Immutable record of one score change: the exact delta applied, the
    justification and who applied it.
    NO updates allowed. A row is only removed by a reversal (which
    compensates the person's score in the same transaction) or together
    with its person.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_ledger_entries_delta_non_zero"),
        CheckConstraint("delta >= -200 AND delta <= 200", name="ck_ledger_entries_delta_range"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Linkage
    person_id = Column(Integer, ForeignKey("persons.id", ondelete="CASCADE"), nullable=False, index=True)

    # Entry details
    delta = Column(Integer, nullable=False)
    comment = Column(String(500), nullable=False)
    modified_by = Column(String(255), nullable=False)

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, person_id={self.person_id}, delta={self.delta})>"
