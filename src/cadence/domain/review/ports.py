"""
Ports (interfaces) for review persistence and the item catalog.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from .models import CatalogItem, ItemAggregateStats, ReviewStatus


class ReviewStatusStore(ABC):
    """
    Keyed storage for ReviewStatus records, scoped to one unit of work.

    Reads observe writes staged earlier in the same unit of work.
    """

    @abstractmethod
    async def get(self, learner_id: str, item_id: str) -> ReviewStatus | None:
        """
        Fetch the status for a (learner, item) pair.

        Returns:
            The stored record, or None if the pair has never been reviewed.
        """
        pass

    @abstractmethod
    async def upsert(self, status: ReviewStatus) -> None:
        """
        Stage a create-or-overwrite of ``status``.

        ``status.version`` must be exactly one more than the stored version
        (or 1 when creating). A mismatch raises ConflictError, either here
        or at commit time.
        """
        pass

    @abstractmethod
    async def find_due(self, learner_id: str, now: datetime) -> list[ReviewStatus]:
        """
        Fetch the learner's records that are NEW or scheduled at or before ``now``.

        Ordering is not guaranteed; the selector ranks the result.
        """
        pass

    @abstractmethod
    async def list_for_learner(self, learner_id: str) -> list[ReviewStatus]:
        """Fetch every record belonging to the learner."""
        pass


class ItemStatsStore(ABC):
    """Keyed storage for ItemAggregateStats, scoped to one unit of work."""

    @abstractmethod
    async def get(self, item_id: str) -> ItemAggregateStats | None:
        pass

    @abstractmethod
    async def upsert(self, stats: ItemAggregateStats) -> None:
        """Stage a create-or-overwrite; same versioning rules as ReviewStatusStore."""
        pass


class UnitOfWork(ABC):
    """
    A set of reads and staged writes applied atomically.

    Usage:
        async with repository.unit_of_work() as uow:
            prior = await uow.statuses.get(learner_id, item_id)
            await uow.statuses.upsert(updated)
            await uow.item_stats.upsert(stats)
            await uow.commit()

    Leaving the block without calling commit(), or through an exception or
    cancellation, discards every staged write.
    """

    statuses: ReviewStatusStore
    item_stats: ItemStatsStore

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.rollback()

    @abstractmethod
    async def commit(self) -> None:
        """
        Apply all staged writes as one unit.

        Raises:
            ConflictError: A versioned record changed since it was read.
            StorageError: The store failed; nothing was applied.
        """
        pass

    @abstractmethod
    async def rollback(self) -> None:
        """Discard staged writes. Must be a no-op after a successful commit."""
        pass


class ReviewRepository(ABC):
    """
    Port for the persistence store holding both review entities.

    Implementations:
        - InMemoryReviewRepository: Process-local dictionaries.
        - SqliteReviewRepository: A SQLite database file.
    """

    @abstractmethod
    def unit_of_work(self) -> UnitOfWork:
        """Open a new unit of work. Use it as an async context manager."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release any resources held by the repository."""
        pass


class ItemCatalog(ABC):
    """
    Port for the external item catalog.

    Implementations:
        - InMemoryItemCatalog: Items supplied by the caller.
        - load_yaml_catalog: Items read from a YAML file.
    """

    @abstractmethod
    async def get(self, item_id: str) -> CatalogItem | None:
        pass

    @abstractmethod
    async def get_many(self, item_ids: Iterable[str]) -> dict[str, CatalogItem]:
        """
        Resolve several items at once.

        Returns:
            Mapping of item_id to item; unknown ids are omitted.
        """
        pass
