"""Abstract interface for the read-only profile/cosmetic service."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shared.dal.models import PlayerProfile


class ProfileDirectory(ABC):
    """Look up display names and equipped cosmetics for a set of users.

    Implementations can use SQLite, an HTTP profile service, etc.
    Unknown user ids are simply absent from the result.
    """

    @abstractmethod
    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, PlayerProfile]: ...
