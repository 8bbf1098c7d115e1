"""
Shared unit-of-work machinery for the persistence adapters.

Writes are staged in memory and handed to the adapter in one call at commit
time, so an adapter only has to make that single call atomic. Reads made
through the unit of work see its own staged writes.
"""

from abc import abstractmethod
from dataclasses import replace
from datetime import datetime

from cadence.application.utils.clock import normalize_datetime
from cadence.domain.errors import ConflictError
from cadence.domain.review.models import ItemAggregateStats, ReviewStatus
from cadence.domain.review.ports import ItemStatsStore, ReviewStatusStore, UnitOfWork

StatusKey = tuple[str, str]


def _utc(value: datetime | None) -> datetime | None:
    return normalize_datetime(value) if value is not None else None


def _normalized_status(status: ReviewStatus) -> ReviewStatus:
    # Stored timestamps are always aware UTC, whatever the caller passed
    return replace(
        status,
        last_reviewed_at=_utc(status.last_reviewed_at),
        next_review_at=_utc(status.next_review_at),
    )


class StagedWrite:
    """A record to write plus the version the store must still hold for it."""

    __slots__ = ("record", "expected_version")

    def __init__(self, record, expected_version: int):
        self.record = record
        self.expected_version = expected_version

    @property
    def is_insert(self) -> bool:
        return self.expected_version == 0


def _check_next_version(current_version: int, new_version: int, what: str) -> None:
    if new_version != current_version + 1:
        raise ConflictError(
            f"{what}: expected version {current_version + 1}, got {new_version}"
        )


class _StagedStatusStore(ReviewStatusStore):
    def __init__(self, uow: "StagingUnitOfWork"):
        self._uow = uow

    async def get(self, learner_id: str, item_id: str) -> ReviewStatus | None:
        key = (learner_id, item_id)
        staged = self._uow._staged_statuses.get(key)
        if staged is not None:
            return staged.record
        return await self._uow._read_status(learner_id, item_id)

    async def upsert(self, status: ReviewStatus) -> None:
        status = _normalized_status(status)
        key = status.key
        staged = self._uow._staged_statuses.get(key)
        if staged is not None:
            _check_next_version(staged.record.version, status.version, f"status {key}")
            staged.record = status
            return
        current = await self._uow._read_status(*key)
        current_version = current.version if current else 0
        _check_next_version(current_version, status.version, f"status {key}")
        self._uow._staged_statuses[key] = StagedWrite(status, current_version)

    async def find_due(self, learner_id: str, now: datetime) -> list[ReviewStatus]:
        committed = await self._uow._read_due_statuses(learner_id, now)
        return [s for s in self._overlay(learner_id, committed) if s.is_due(now)]

    async def list_for_learner(self, learner_id: str) -> list[ReviewStatus]:
        committed = await self._uow._read_learner_statuses(learner_id)
        return self._overlay(learner_id, committed)

    def _overlay(self, learner_id: str, committed: list[ReviewStatus]) -> list[ReviewStatus]:
        merged = {s.key: s for s in committed}
        for key, staged in self._uow._staged_statuses.items():
            if key[0] == learner_id:
                merged[key] = staged.record
        return list(merged.values())


class _StagedItemStatsStore(ItemStatsStore):
    def __init__(self, uow: "StagingUnitOfWork"):
        self._uow = uow

    async def get(self, item_id: str) -> ItemAggregateStats | None:
        staged = self._uow._staged_stats.get(item_id)
        if staged is not None:
            return staged.record
        return await self._uow._read_item_stats(item_id)

    async def upsert(self, stats: ItemAggregateStats) -> None:
        stats = replace(stats, last_reviewed_at=_utc(stats.last_reviewed_at))
        staged = self._uow._staged_stats.get(stats.item_id)
        if staged is not None:
            _check_next_version(staged.record.version, stats.version, f"item stats {stats.item_id}")
            staged.record = stats
            return
        current = await self._uow._read_item_stats(stats.item_id)
        current_version = current.version if current else 0
        _check_next_version(current_version, stats.version, f"item stats {stats.item_id}")
        self._uow._staged_stats[stats.item_id] = StagedWrite(stats, current_version)


class StagingUnitOfWork(UnitOfWork):
    """
    Base unit of work for adapters.

    Subclasses supply committed-state reads and one atomic ``_write``.
    """

    def __init__(self) -> None:
        self._staged_statuses: dict[StatusKey, StagedWrite] = {}
        self._staged_stats: dict[str, StagedWrite] = {}
        self._committed = False
        self.statuses = _StagedStatusStore(self)
        self.item_stats = _StagedItemStatsStore(self)

    @property
    def has_pending_writes(self) -> bool:
        return bool(self._staged_statuses or self._staged_stats)

    async def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Unit of work already committed")
        if self.has_pending_writes:
            # No await here, so cancellation cannot split the write
            self._write(list(self._staged_statuses.values()), list(self._staged_stats.values()))
        self._committed = True
        self._clear()

    async def rollback(self) -> None:
        self._clear()

    def _clear(self) -> None:
        self._staged_statuses.clear()
        self._staged_stats.clear()

    # --- adapter hooks ---
    @abstractmethod
    async def _read_status(self, learner_id: str, item_id: str) -> ReviewStatus | None:
        pass

    @abstractmethod
    async def _read_learner_statuses(self, learner_id: str) -> list[ReviewStatus]:
        pass

    async def _read_due_statuses(self, learner_id: str, now: datetime) -> list[ReviewStatus]:
        """Adapters that can filter in the store should override this."""
        return [s for s in await self._read_learner_statuses(learner_id) if s.is_due(now)]

    @abstractmethod
    async def _read_item_stats(self, item_id: str) -> ItemAggregateStats | None:
        pass

    @abstractmethod
    def _write(self, statuses: list[StagedWrite], stats: list[StagedWrite]) -> None:
        """
        Apply every staged write or none of them.

        Raises:
            ConflictError: A stored version no longer matches ``expected_version``.
            StorageError: The store failed.
        """
        pass
