"""
Credentials and request guards

Password digests use passlib's bcrypt context. Bearer tokens are HS256 JWTs
carrying the user id (``sub``) and ``role``; the guards below turn them into an
``AuthContext`` that route dependencies hand to the handlers.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

import settings
from errors import ForbiddenError, UnauthorizedError
from schemas import AuthContext

logger = structlog.get_logger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS
)

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(user_id: int, role: str, expires_in: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expires_in = expires_in or timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES)
    payload = {"sub": str(user_id), "role": role, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[AuthContext]:
    """Return the auth context for a valid token, or None for anything else."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return AuthContext(user_id=int(payload["sub"]), role=payload["role"])
    except (jwt.PyJWTError, KeyError, ValueError) as exc:
        logger.info("token_rejected", reason=str(exc))
        return None


def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthContext]:
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials)


def require_user(ctx: Optional[AuthContext] = Depends(get_auth_context)) -> AuthContext:
    if ctx is None:
        raise UnauthorizedError("Authentication required")
    return ctx


def require_admin(ctx: AuthContext = Depends(require_user)) -> AuthContext:
    if ctx.role != "admin":
        raise ForbiddenError("Access denied. Admin role required")
    return ctx
