"""
Shared validation and bound helpers for the directory and score engines.
"""

from typing import Optional

from backend.app.core.exceptions import InvalidInputError

NAME_MAX_LENGTH = 100
COMMENT_MAX_LENGTH = 500
MAX_ABS_DELTA = 200

# Ids are stored in 32-bit INTEGER columns
MAX_STORE_ID = 2**31 - 1


def _bounded_text(value: str, field: str, max_length: int) -> str:
    if not isinstance(value, str):
        raise InvalidInputError(f"{field} must be a string", field=field)
    value = value.strip()
    if not 1 <= len(value) <= max_length:
        raise InvalidInputError(
            f"{field} must contain between 1 and {max_length} characters",
            field=field
        )
    return value


def normalize_name(name: str) -> str:
    """Trim a person name and check its length (1-100)."""
    return _bounded_text(name, "name", NAME_MAX_LENGTH)


def normalize_comment(comment: str) -> str:
    """Trim a ledger comment and check its length (1-500)."""
    return _bounded_text(comment, "comment", COMMENT_MAX_LENGTH)


def validate_delta(delta: int) -> int:
    """A delta is a non-zero integer within [-200, 200]."""
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidInputError("points must be an integer", field="points")
    if delta == 0:
        raise InvalidInputError("points must not be zero", field="points")
    if abs(delta) > MAX_ABS_DELTA:
        raise InvalidInputError(
            f"points must be between -{MAX_ABS_DELTA} and {MAX_ABS_DELTA}",
            field="points"
        )
    return delta


def is_storable_id(value: int) -> bool:
    """True if ``value`` can name a row at all (positive, fits the id column)."""
    return 1 <= value <= MAX_STORE_ID


def validate_page(page: int, page_size: int) -> None:
    if page < 1:
        raise InvalidInputError("page must be a positive integer", field="page")
    if page_size < 1:
        raise InvalidInputError("page size must be a positive integer", field="limit")


def bound_violation(score: int, max_score: int) -> Optional[str]:
    """
    Check a candidate score against the bound.

    Returns:
        "low" if the score is negative, "high" if it exceeds max_score,
        None if 0 <= score <= max_score
    """
    if score < 0:
        return "low"
    if score > max_score:
        return "high"
    return None
