"""
Review Submission Service: application layer orchestrator.

Turns a quality rating into a new ReviewStatus and an updated
ItemAggregateStats, committed together in one unit of work.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timedelta

from cadence.domain.constants import (
    DEFAULT_CONFLICT_RETRIES,
    DEFAULT_OPERATION_TIMEOUT,
    DEFAULT_RETRY_BACKOFF,
)
from cadence.domain.errors import ConflictError, NotFoundError, OperationTimeoutError, ValidationError
from cadence.domain.review.models import IntervalResult, ReviewStatus
from cadence.domain.review.ports import ItemCatalog, ReviewRepository

from ..utils.clock import normalize_datetime, utc_now
from ..utils.locks import KeyedLock
from .aggregate_tracker import AggregateStatsTracker
from .contracts import SubmitReviewRequest, SubmitReviewResult
from .interval_engine import compute, is_successful, validate_quality

logger = logging.getLogger(__name__)


def validate_identifier(name: str, value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string, got {value!r}")
    return value


def apply_review(
    prior: ReviewStatus,
    result: IntervalResult,
    quality: int,
    now: datetime,
) -> ReviewStatus:
    """
    Build the ReviewStatus that results from one review.

    Counters only ever grow; ``next_review_at`` is exactly ``now`` plus the
    new interval in days.
    """
    return replace(
        prior,
        status=result.status,
        easiness=result.easiness,
        interval=result.interval,
        repetition=result.repetition,
        review_count=prior.review_count + 1,
        correct_count=prior.correct_count + (1 if is_successful(quality) else 0),
        last_quality=quality,
        last_reviewed_at=now,
        next_review_at=now + timedelta(days=result.interval),
        version=prior.version + 1,
    )


class ReviewSubmissionService:
    """
    Application service for submitting reviews.

    Depends on the ReviewRepository and ItemCatalog abstractions, not on
    concrete adapters. Submissions for the same (learner, item) pair are
    serialized in-process; conflicts detected by the store at commit time
    are retried from a fresh read.
    """

    def __init__(
        self,
        repository: ReviewRepository,
        catalog: ItemCatalog,
        tracker: AggregateStatsTracker | None = None,
        max_conflict_retries: int = DEFAULT_CONFLICT_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        timeout: float | None = DEFAULT_OPERATION_TIMEOUT,
    ):
        """
        Args:
            repository: Persistence port holding both review entities.
            catalog: External item catalog.
            tracker: Aggregate stats tracker; uses the default mode if not provided.
            max_conflict_retries: Extra attempts after a ConflictError.
            retry_backoff: Seconds to wait before retry N, multiplied by N.
            timeout: Default per-call deadline in seconds; None disables it.
        """
        if max_conflict_retries < 0:
            raise ValueError("max_conflict_retries must be >= 0")
        self._repo = repository
        self._catalog = catalog
        self._tracker = tracker or AggregateStatsTracker()
        self._max_attempts = max_conflict_retries + 1
        self._retry_backoff = retry_backoff
        self._timeout = timeout
        self._locks = KeyedLock()

    async def submit_review(
        self,
        learner_id: str,
        item_id: str,
        quality: int,
        now: datetime | None = None,
        time_spent: timedelta | None = None,
        timeout: float | None = None,
    ) -> ReviewStatus:
        """
        Record one review and reschedule the item for the learner.

        Args:
            learner_id: Opaque learner identifier.
            item_id: Catalog item identifier.
            quality: Recall rating, 0-5.
            now: Review time; defaults to the current UTC time.
            time_spent: How long the learner took. Only logged.
            timeout: Deadline in seconds, overriding the service default.

        Returns:
            The persisted ReviewStatus.

        Raises:
            ValidationError: Bad quality, identifiers or time_spent.
            NotFoundError: The item is not in the catalog.
            ConflictError: Concurrent writes kept conflicting after all retries.
            StorageError: The store failed; nothing was written.
            OperationTimeoutError: The deadline passed before commit.
        """
        validate_identifier("learner_id", learner_id)
        validate_identifier("item_id", item_id)
        validate_quality(quality)
        if time_spent is not None and time_spent < timedelta(0):
            raise ValidationError("time_spent must not be negative")

        reviewed_at = normalize_datetime(now) if now is not None else utc_now()
        deadline = timeout if timeout is not None else self._timeout

        operation = self._submit_serialized(learner_id, item_id, quality, reviewed_at)
        if deadline is None:
            status = await operation
        else:
            try:
                status = await asyncio.wait_for(operation, deadline)
            except asyncio.TimeoutError as e:
                logger.error(
                    f"Review submission for {learner_id}/{item_id} timed out after {deadline}s"
                )
                raise OperationTimeoutError(
                    f"Review submission timed out after {deadline}s"
                ) from e

        spent = f" in {time_spent.total_seconds():.1f}s" if time_spent is not None else ""
        logger.info(
            f"Review {learner_id}/{item_id} q={quality}{spent}: "
            f"{status.status.value} interval={status.interval}d next={status.next_review_at.isoformat()}"
        )
        return status

    async def submit(self, request: SubmitReviewRequest, now: datetime | None = None) -> SubmitReviewResult:
        """Contract-shaped wrapper around submit_review."""
        status = await self.submit_review(
            request.learner_id,
            request.item_id,
            request.quality,
            now=now,
            time_spent=request.time_spent,
        )
        return SubmitReviewResult(status=status, next_review_at=status.next_review_at)

    async def _submit_serialized(
        self, learner_id: str, item_id: str, quality: int, now: datetime
    ) -> ReviewStatus:
        if await self._catalog.get(item_id) is None:
            raise NotFoundError(item_id)

        async with self._locks.hold((learner_id, item_id)):
            attempt = 0
            while True:
                attempt += 1
                try:
                    return await self._apply(learner_id, item_id, quality, now)
                except ConflictError as e:
                    if attempt >= self._max_attempts:
                        logger.error(
                            f"Giving up on {learner_id}/{item_id} after {attempt} conflicting attempts"
                        )
                        raise ConflictError(
                            f"Concurrent updates to {learner_id}/{item_id} did not settle "
                            f"after {attempt} attempts",
                            attempts=attempt,
                        ) from e
                    logger.warning(f"Conflict on {learner_id}/{item_id} (attempt {attempt}): {e}")
                    await asyncio.sleep(self._retry_backoff * attempt)

    async def _apply(self, learner_id: str, item_id: str, quality: int, now: datetime) -> ReviewStatus:
        async with self._repo.unit_of_work() as uow:
            prior = await uow.statuses.get(learner_id, item_id)
            if prior is None:
                prior = ReviewStatus(learner_id=learner_id, item_id=item_id)

            result = compute(quality, prior.easiness, prior.interval, prior.repetition)
            updated = apply_review(prior, result, quality, now)

            await uow.statuses.upsert(updated)
            await self._tracker.record_review(uow.item_stats, item_id, quality, now)
            await uow.commit()

        return updated
