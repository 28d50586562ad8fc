"""
Person database model.

A tracked entity carrying a bounded score. The score is a cached projection
of the person's ledger entries and always satisfies 0 <= score <= max_score.
"""

from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint, Index
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.timestamps import utcnow


class Person(Base):
    """
    Person model.

    ``score`` is only changed by the score engine, ``name`` only by the
    directory engine. Names are unique case-insensitively (functional
    unique index on lower(name), declared below the class).
    """
    __tablename__ = "persons"
    __table_args__ = (
        CheckConstraint("score >= 0", name="ck_persons_score_non_negative"),
        CheckConstraint("score <= max_score", name="ck_persons_score_within_max"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)

    # Bounded score
    score = Column(Integer, nullable=False, default=0)
    max_score = Column(Integer, nullable=False)

    # Attribution only (identity of the caller that created the row)
    created_by = Column(String(255), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Person(id={self.id}, name='{self.name}', score={self.score}/{self.max_score})>"


Index("uq_persons_name_lower", func.lower(Person.name), unique=True)
