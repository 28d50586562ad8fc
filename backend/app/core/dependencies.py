"""
Request dependencies for FastAPI.

Provides caller authentication (JWT bearer tokens issued by the identity
provider) and engine instances bound to the request's database session.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.core.config import settings
from backend.app.core.jwt import caller_identity
from backend.app.db.session import get_db
from backend.app.domain.directory.directory_engine import DirectoryEngine
from backend.app.domain.scoring.score_engine import ScoreEngine

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_caller(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    """
    FastAPI dependency for JWT authentication.

    Any authenticated caller may read and mutate any person; the identity
    is only used for attribution (``created_by`` / ``modified_by``) and is
    attached to the request log.

    Returns:
        The caller identity (the token's ``sub`` claim)

    Raises:
        HTTPException: 401 if the token is invalid, expired or has no subject
    """
    caller = caller_identity(credentials.credentials)
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.caller = caller
    return caller


async def get_directory_engine(db: AsyncSession = Depends(get_db)) -> DirectoryEngine:
    return DirectoryEngine(db, default_max_score=settings.default_max_score)


async def get_score_engine(db: AsyncSession = Depends(get_db)) -> ScoreEngine:
    return ScoreEngine(db)
