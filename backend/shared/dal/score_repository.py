"""Abstract interface for best-score and wallet persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from shared.dal.models import ScoreRecord, Wallet


class ScoreRepository(ABC):
    """Abstract interface for the settlement persistence backend.

    Mutating methods are only valid inside ``transaction()``; the transaction
    is the unit of atomicity for one submission. Implementations must make
    ``replace_best`` a single compare-and-replace keyed by (user, game, bucket)
    and ``update_wallet`` an additive update.
    """

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]: ...

    @abstractmethod
    async def get_best(self, user_id: str, game: str, bucket: str) -> ScoreRecord | None: ...

    @abstractmethod
    async def get_global_best(self, game: str, bucket: str) -> int: ...

    @abstractmethod
    async def replace_best(self, record: ScoreRecord) -> bool:
        """Store record if it beats the stored best (or none exists). Return True if written."""

    @abstractmethod
    async def get_bucket_records(self, game: str, bucket: str) -> list[ScoreRecord]: ...

    @abstractmethod
    async def get_user_records(self, user_id: str, game: str) -> list[ScoreRecord]: ...

    @abstractmethod
    async def create_wallet(self, user_id: str) -> Wallet: ...

    @abstractmethod
    async def get_wallet(self, user_id: str) -> Wallet | None: ...

    @abstractmethod
    async def update_wallet(self, user_id: str, delta_xp: int, delta_gold: int, new_level: int) -> Wallet: ...

    @abstractmethod
    async def get_settlement(self, session_id: str) -> tuple[str, str] | None:
        """Return (owning user_id, outcome JSON) of an already settled session, if any."""

    @abstractmethod
    async def record_settlement(self, session_id: str, user_id: str, outcome_json: str) -> None: ...
