"""
Caller tokens.

Callers are identified by HS256 tokens issued by the identity provider and
signed with the shared secret. The ``sub`` claim is the caller identity
recorded on persons (``created_by``) and ledger entries (``modified_by``).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from backend.app.core.config import settings

# A token without these claims is never accepted
REQUIRED_CLAIMS = {"require_sub": True, "require_exp": True}


def issue_caller_token(subject: str, expires_delta: Optional[timedelta] = None, **claims: Any) -> str:
    """
    Sign a token for ``subject``.

    The service itself never hands tokens out; this is used by operator
    tooling and the test suite to act as a given caller.
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = dict(claims, sub=subject, exp=datetime.now(timezone.utc) + lifetime)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def caller_identity(token: str) -> Optional[str]:
    """
    Verify a caller token and return its subject.

    Returns:
        The ``sub`` claim, or None when the signature, expiry or subject
        is invalid
    """
    try:
        payload: Dict[str, Any] = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options=REQUIRED_CLAIMS,
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        return None
    return subject
