"""
In-Memory Review Repository: process-local adapter.

Keeps both review entities in dictionaries. Commits check every version
before applying anything, under one lock, so the two writes land together.
"""

import logging
import threading

from cadence.domain.errors import ConflictError, StorageError
from cadence.domain.review.models import ItemAggregateStats, ReviewStatus
from cadence.domain.review.ports import ReviewRepository

from .staging import StagedWrite, StagingUnitOfWork, StatusKey

logger = logging.getLogger(__name__)


class InMemoryUnitOfWork(StagingUnitOfWork):
    def __init__(self, repo: "InMemoryReviewRepository"):
        super().__init__()
        self._repo = repo

    async def _read_status(self, learner_id: str, item_id: str) -> ReviewStatus | None:
        return self._repo._statuses.get((learner_id, item_id))

    async def _read_learner_statuses(self, learner_id: str) -> list[ReviewStatus]:
        return [s for key, s in self._repo._statuses.items() if key[0] == learner_id]

    async def _read_item_stats(self, item_id: str) -> ItemAggregateStats | None:
        return self._repo._item_stats.get(item_id)

    def _write(self, statuses: list[StagedWrite], stats: list[StagedWrite]) -> None:
        repo = self._repo
        with repo._lock:
            if repo.closed:
                raise StorageError("Repository is closed")
            for write in statuses:
                stored = repo._statuses.get(write.record.key)
                self._check(stored.version if stored else 0, write, f"status {write.record.key}")
            for write in stats:
                stored = repo._item_stats.get(write.record.item_id)
                self._check(stored.version if stored else 0, write, f"item stats {write.record.item_id}")

            for write in statuses:
                repo._statuses[write.record.key] = write.record
            for write in stats:
                repo._item_stats[write.record.item_id] = write.record

    @staticmethod
    def _check(stored_version: int, write: StagedWrite, what: str) -> None:
        if stored_version != write.expected_version:
            raise ConflictError(
                f"{what} changed concurrently "
                f"(expected version {write.expected_version}, found {stored_version})"
            )


class InMemoryReviewRepository(ReviewRepository):
    """
    ReviewRepository backed by plain dictionaries.

    Suitable for tests and single-process deployments without durability needs.
    """

    def __init__(self) -> None:
        self._statuses: dict[StatusKey, ReviewStatus] = {}
        self._item_stats: dict[str, ItemAggregateStats] = {}
        self._lock = threading.Lock()
        self.closed = False

    def unit_of_work(self) -> InMemoryUnitOfWork:
        if self.closed:
            raise StorageError("Repository is closed")
        return InMemoryUnitOfWork(self)

    async def close(self) -> None:
        with self._lock:
            self.closed = True
        logger.debug("In-memory review repository closed")
