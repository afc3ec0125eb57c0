"""Access-token verification for identity-provider issued JWTs."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from app.core.config import get_settings


@dataclass(frozen=True)
class TokenClaims:
    """The subset of token claims the API relies on."""

    user_id: str
    email: Optional[str] = None


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a token signed with the shared provider secret.

    Production tokens come from the identity provider; this is for local
    development and tests.

    Args:
        data: Payload data (typically {"sub": user_id, "email": ...})
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({"exp": expire})
    if settings.token_audience and "aud" not in to_encode:
        to_encode["aud"] = settings.token_audience

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[TokenClaims]:
    """Decode and validate a bearer token.

    Args:
        token: JWT token string

    Returns:
        TokenClaims if valid, None if invalid/expired/missing a subject
    """
    settings = get_settings()
    options = {"verify_aud": bool(settings.token_audience)}
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            audience=settings.token_audience or None,
            options=options,
        )
    except (JWTError, ValidationError):
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None
    email = payload.get("email")
    return TokenClaims(user_id=str(user_id), email=str(email) if email else None)
