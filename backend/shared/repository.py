"""
Base repository class for Supabase table access.

Repositories own one table each and map its rows to Pydantic models.
They run with the service role client, so they never check permissions
themselves. The Supabase client blocks, so async repositories run
`execute()` through `asyncio.to_thread`.
"""

from typing import Any, ClassVar, Generic, Optional, TypeVar

from supabase import Client


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for table repositories.

    Subclasses set `table` and implement the row-to-model mapping.

    Example:
        class ProfileRepository(BaseRepository[UserProfile]):
            table = "profiles"

            async def get_profile(self, user_id: str) -> Optional[UserProfile]:
                row = self._first(await asyncio.to_thread(self._query().eq("id", user_id).execute))
                return self._map_to_profile(row) if row else None
    """

    table: ClassVar[str] = ""

    def __init__(self, db: Client) -> None:
        self._db = db

    def _query(self, columns: str = "*"):
        """Start a select on this repository's table."""
        return self._db.table(self.table).select(columns)

    @staticmethod
    def _rows(result: Any) -> list[dict[str, Any]]:
        """Rows of a query result, empty when Supabase returns no data."""
        return list(result.data or [])

    @classmethod
    def _first(cls, result: Any) -> Optional[dict[str, Any]]:
        """First row of a query result, or None."""
        rows = cls._rows(result)
        return rows[0] if rows else None
