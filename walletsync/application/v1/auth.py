from http import HTTPStatus
from typing import Optional

from fastapi import Header, HTTPException, Request

from walletsync.domain.profile.entity import Profile, UserRole
from walletsync.domain.profile.repository import ProfileRepository
from walletsync.shared.cache.ttl_cache import CachePort
from walletsync.shared.monitoring.logging import get_logger
from walletsync.shared.monitoring.metrics import record_profile_cache_lookup

logger = get_logger(__name__)


async def load_caller_profile(
    user_id: str, profile_repo: ProfileRepository, cache: CachePort[Profile]
) -> Optional[Profile]:
    """Caller profile through the cache. Misses and stale entries go to the database."""
    cached, is_fresh = cache.get(user_id)
    record_profile_cache_lookup(is_fresh)
    if is_fresh:
        return cached

    profile = await profile_repo.get_profile_by_user_id(user_id)
    if profile:
        cache.put(user_id, profile)
    else:
        cache.invalidate(user_id)
    return profile


async def require_superadmin(
    request: Request, x_user_id: Optional[str] = Header(None)
) -> Profile:
    """
    FastAPI dependency guarding the admin endpoints.

    The caller is identified by the X-User-Id header set by the upstream
    auth proxy.
    """
    if not x_user_id:
        raise HTTPException(HTTPStatus.UNAUTHORIZED, "Not authenticated")

    profile = await load_caller_profile(
        x_user_id, request.app.state.profile_repo, request.app.state.profile_cache
    )

    if not profile or profile.role != UserRole.SUPERADMIN:
        logger.warning(
            f"Admin access denied - User: {x_user_id}, Role: {profile.role.value if profile else None}"
        )
        raise HTTPException(HTTPStatus.FORBIDDEN, "Unauthorized - Admin access required")

    return profile
