"""
Profile directory backed by the Supabase `profiles` table.

Rows are validated into UserProfile here, once, so the rest of the auth
module can rely on the closed StaffRole set.

Queries run in a worker thread since the Supabase client blocks.
"""

import asyncio
import logging
from typing import Any, Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from shared.repository import BaseRepository

from .exceptions import InvalidProfileError
from .models import ProfileGroups, StaffRole, UserProfile

logger = logging.getLogger(__name__)


class ProfileRepository(BaseRepository[UserProfile]):
    """
    Read-only access to staff profiles.

    Note: This repository does NOT perform authorization checks.
    Quick access lists every profile before anyone is signed in.
    """

    table = "profiles"

    async def list_profiles(self) -> list[UserProfile]:
        """List all profiles ordered by full name."""
        result = await asyncio.to_thread(self._query().order("full_name").execute)
        return [self._map_to_profile(row) for row in self._rows(result)]

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Get a profile by ID, or None if it doesn't exist."""
        row = self._first(await asyncio.to_thread(self._query().eq("id", user_id).execute))
        return self._map_to_profile(row) if row else None

    def _map_to_profile(self, data: dict[str, Any]) -> UserProfile:
        """Map database row to UserProfile model."""
        profile_id = str(data.get("id", ""))
        role = data.get("role")
        if role not in {r.value for r in StaffRole}:
            logger.warning(f"Profile {profile_id} has unknown role {role!r}")
            raise InvalidProfileError(profile_id, f"unknown role {role!r}")

        try:
            return UserProfile(
                id=profile_id,
                full_name=data.get("full_name") or "",
                role=StaffRole(role),
                email=data.get("email"),
                first_name=data.get("first_name"),
                last_name=data.get("last_name"),
                # Older rows only carry avatar_url
                image=data.get("image") or data.get("avatar_url"),
                avatar_url=data.get("avatar_url"),
                phone=data.get("phone"),
                address=data.get("address"),
                created_at=data.get("created_at"),
                updated_at=data.get("updated_at"),
            )
        except PydanticValidationError as e:
            raise InvalidProfileError(profile_id, str(e)) from e


class InMemoryProfileDirectory:
    """
    Profile directory holding profiles in memory.

    For testing and development. Use ProfileRepository for production.
    """

    def __init__(self, profiles: Optional[Iterable[UserProfile]] = None):
        self._profiles: dict[str, UserProfile] = {p.id: p for p in profiles or []}

    def add(self, profile: UserProfile) -> None:
        self._profiles[profile.id] = profile

    async def list_profiles(self) -> list[UserProfile]:
        return sorted(self._profiles.values(), key=lambda p: p.full_name)

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._profiles.get(user_id)


def group_profiles_by_role(profiles: Iterable[UserProfile]) -> ProfileGroups:
    """Bucket profiles into the Managers / Technicians / Front Desk sections."""
    groups = ProfileGroups()
    buckets = {
        StaffRole.MANAGER: groups.managers,
        StaffRole.TECHNICIAN: groups.technicians,
        StaffRole.FRONT_DESK: groups.front_desk,
    }
    for profile in profiles:
        buckets[profile.role].append(profile)
    return groups
