"""FastAPI dependencies for authentication, authorization and repositories."""
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import TokenClaims, decode_access_token
from app.db.database import get_async_session
from app.models.enums import StaffRole
from app.models.staff import StaffProfile
from app.services.drafts import DraftRepository
from app.services.pricing_overrides import PricingOverrideRepository
from app.services.quote_engine import QuoteEngine
from app.services.staff import get_profile
from app.services.stores import KeyValueStore, get_store

# HTTP Bearer token extractor (reads Authorization: Bearer <token>)
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> TokenClaims:
    """Dependency to get the calling user from the provider-issued JWT.

    Usage:
        @router.get("/protected")
        async def protected_route(
            current_user: Annotated[TokenClaims, Depends(get_current_user)]
        ):
            return {"user": current_user.user_id}

    Raises:
        HTTPException 401: If token is missing, invalid or expired
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise credentials_exception

    return claims


async def get_staff_profile(
    current_user: Annotated[TokenClaims, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Optional[StaffProfile]:
    """Active staff profile of the caller, or None for customers."""
    profile = await get_profile(session, current_user.user_id)
    if profile is None or not profile.active:
        return None
    return profile


async def require_staff(
    profile: Annotated[Optional[StaffProfile], Depends(get_staff_profile)],
) -> StaffProfile:
    """Raises 403 unless the caller is active staff (employee or admin)."""
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff access required",
        )
    return profile


async def require_admin(
    profile: Annotated[StaffProfile, Depends(require_staff)],
) -> StaffProfile:
    """Raises 403 unless the caller is an active admin."""
    if profile.role != StaffRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return profile


def get_kv_store() -> KeyValueStore:
    return get_store()


def get_draft_repository(
    store: Annotated[KeyValueStore, Depends(get_kv_store)],
) -> DraftRepository:
    return DraftRepository(store)


def get_override_repository(
    store: Annotated[KeyValueStore, Depends(get_kv_store)],
) -> PricingOverrideRepository:
    return PricingOverrideRepository(store)


async def get_quote_engine(
    overrides: Annotated[PricingOverrideRepository, Depends(get_override_repository)],
) -> QuoteEngine:
    """Quote engine with the current pricing overrides applied."""
    return QuoteEngine(overrides=await overrides.get_all())


CurrentUser = Annotated[TokenClaims, Depends(get_current_user)]
StaffUser = Annotated[StaffProfile, Depends(require_staff)]
AdminUser = Annotated[StaffProfile, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_async_session)]
