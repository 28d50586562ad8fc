"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import persons, points

router = APIRouter()

# Person directory endpoints
router.include_router(persons.router)

# Score and ledger endpoints
router.include_router(points.router)
