from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from pydantic import BaseModel

from walletsync.domain.profile.entity import Profile

PROFILE_SORT_FIELDS = ("created_at", "updated_at", "first_name", "last_name", "email")


class ProfileFilters(BaseModel):
    search: Optional[str] = None
    has_wallets: Optional[bool] = None
    chain: Optional[str] = None
    wallet_tag: Optional[str] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"


class ProfileRepository(ABC):
    @abstractmethod
    async def get_profile_by_user_id(self, user_id: str) -> Optional[Profile]:
        pass

    @abstractmethod
    async def get_profile_by_id(self, profile_id: str) -> Optional[Profile]:
        pass

    @abstractmethod
    async def list_user_profiles(
        self, filters: ProfileFilters, limit: int = 10, offset: int = 0
    ) -> Tuple[List[Profile], int]:
        """Profiles with role USER matching filters, plus the unpaginated total."""
        pass
