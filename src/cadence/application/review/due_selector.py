"""
Due-item selector.

Read-only: ranks a learner's due items for presentation. Every call recomputes
from current state.
"""

import logging
from datetime import datetime, timezone

from cadence.domain.constants import DEFAULT_DUE_LIMIT
from cadence.domain.errors import ValidationError
from cadence.domain.review.models import DueItem, DueItemFilters, ReviewStatus
from cadence.domain.review.ports import ItemCatalog, ReviewRepository

from ..utils.clock import normalize_datetime, utc_now
from .contracts import GetDueItemsRequest, GetDueItemsResult
from .service import validate_identifier

logger = logging.getLogger(__name__)

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def urgency_key(status: ReviewStatus) -> tuple[int, datetime]:
    """NEW before LEARNING before REVIEW before MASTERED, then most overdue first."""
    return (status.status.rank, status.next_review_at or _NEVER)


def rank_due(statuses: list[ReviewStatus], now: datetime) -> list[ReviewStatus]:
    """Keep the statuses that are due at ``now`` and order them by urgency."""
    return sorted((s for s in statuses if s.is_due(now)), key=urgency_key)


class DueItemSelector:
    """
    Ranks a learner's items by urgency.

    The selector owns the due predicate and the ordering; item attributes
    used by the filters come from the catalog.
    """

    def __init__(
        self,
        repository: ReviewRepository,
        catalog: ItemCatalog,
        default_limit: int = DEFAULT_DUE_LIMIT,
    ):
        self._repo = repository
        self._catalog = catalog
        self._default_limit = default_limit

    async def due_items(
        self,
        learner_id: str,
        now: datetime | None = None,
        limit: int | None = None,
        filters: DueItemFilters | None = None,
    ) -> list[DueItem]:
        """
        Fetch the learner's due items, most urgent first.

        Args:
            learner_id: Opaque learner identifier.
            now: Reference time; defaults to the current UTC time.
            limit: Maximum number of items; defaults to the configured limit.
            filters: Catalog-side filters. Archived items are always excluded.

        Returns:
            Up to ``limit`` DueItems; empty when nothing is due.
        """
        validate_identifier("learner_id", learner_id)
        limit = self._default_limit if limit is None else limit
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValidationError(f"limit must be an integer, got {limit!r}")
        if limit < 1:
            raise ValidationError(f"limit must be at least 1, got {limit}")
        now = normalize_datetime(now) if now is not None else utc_now()
        filters = filters or DueItemFilters()

        async with self._repo.unit_of_work() as uow:
            candidates = await uow.statuses.find_due(learner_id, now)

        ranked = rank_due(candidates, now)
        if not ranked:
            return []

        items = await self._catalog.get_many(s.item_id for s in ranked)

        selected: list[DueItem] = []
        for status in ranked:
            item = items.get(status.item_id)
            if item is None:
                logger.debug(f"Skipping {status.item_id}: no longer in catalog")
                continue
            if not filters.matches(item):
                continue
            selected.append(DueItem(item=item, status=status))
            if len(selected) >= limit:
                break

        logger.debug(f"{len(selected)} due items for {learner_id} ({len(ranked)} candidates)")
        return selected

    async def get_due_items(
        self, request: GetDueItemsRequest, now: datetime | None = None
    ) -> GetDueItemsResult:
        """Contract-shaped wrapper around due_items."""
        items = await self.due_items(
            request.learner_id,
            now=now,
            limit=request.limit,
            filters=request.to_filters(),
        )
        return GetDueItemsResult(items=items)
