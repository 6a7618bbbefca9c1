"""
JWT authentication and password hashing utilities.

WHAT: bcrypt password hashing and HS256 access tokens for helpdesk users.

WHY: Tokens carry the caller tuple (user_id, org_id, role, client_id) for
clients that want to render role-aware UIs. They are never trusted for
visibility: get_current_user reloads the user row, so a deactivated
account or a changed role takes effect on the next request.
"""

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from helpdesk.core.config import settings
from helpdesk.core.exceptions import TokenExpiredError, TokenInvalidError

if TYPE_CHECKING:
    from helpdesk.models.user import User


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (salt and cost factor are embedded)."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Check a password against a stored hash.

    Accounts without a hash never match. passlib compares in constant time.
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def token_claims_for(user: "User") -> Dict[str, Any]:
    """Identity claims for a user's access token."""
    return {
        "user_id": user.id,
        "org_id": user.org_id,
        "role": user.role.value,
        "client_id": user.client_id,
    }


def create_access_token(
    claims: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign an access token.

    Adds exp (JWT_EXPIRATION_MINUTES unless expires_delta is given), iat
    and nbf to the supplied claims.
    """
    issued_at = datetime.utcnow()
    lifetime = expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)

    payload = dict(claims)
    payload.update(exp=issued_at + lifetime, iat=issued_at, nbf=issued_at)

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    """
    Decode a token and check its signature and lifetime.

    Raises:
        TokenExpiredError: exp is in the past
        TokenInvalidError: Malformed token or bad signature
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError as e:
        raise TokenInvalidError(error=str(e))
