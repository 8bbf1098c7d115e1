"""
Per-item aggregate statistics across all learners.

``next_item_stats`` is the pure recurrence; ``AggregateStatsTracker`` applies
it against an ItemStatsStore inside the caller's unit of work.
"""

import logging
from datetime import datetime
from enum import Enum

from cadence.application.review.interval_engine import is_successful, validate_quality
from cadence.application.utils.rounding import percentage, round_half_up
from cadence.domain.review.models import ItemAggregateStats
from cadence.domain.review.ports import ItemStatsStore

logger = logging.getLogger(__name__)


class SuccessRateMode(str, Enum):
    """
    How the success rate is recomputed on each review.

    DERIVED re-derives the successful count from the stored, rounded
    percentage. Rounding drift accumulates over many reviews.
    EXACT uses the running ``successful_reviews`` counter instead.
    """

    DERIVED = "derived"
    EXACT = "exact"


def next_item_stats(
    prior: ItemAggregateStats | None,
    item_id: str,
    quality: int,
    now: datetime,
    mode: SuccessRateMode = SuccessRateMode.DERIVED,
) -> ItemAggregateStats:
    """
    Fold one review into an item's aggregate statistics.

    Args:
        prior: Current stats, or None if the item has never been reviewed.
        item_id: The reviewed item.
        quality: Recall rating, 0-5.
        now: Review time.
        mode: Success-rate recomputation strategy.

    Returns:
        New stats with ``version`` bumped by one.
    """
    validate_quality(quality)
    success = 1 if is_successful(quality) else 0

    if prior is None or prior.total_reviews == 0:
        return ItemAggregateStats(
            item_id=item_id,
            total_reviews=1,
            average_quality=float(quality),
            success_rate=100 * success,
            successful_reviews=success,
            last_reviewed_at=now,
            version=(prior.version if prior else 0) + 1,
        )

    n = prior.total_reviews
    total = n + 1
    average = (prior.average_quality * n + quality) / total
    successful_reviews = prior.successful_reviews + success

    if mode is SuccessRateMode.EXACT:
        success_rate = percentage(successful_reviews, total)
    else:
        derived_successful = round_half_up(prior.success_rate / 100 * n) + success
        success_rate = percentage(derived_successful, total)

    return ItemAggregateStats(
        item_id=item_id,
        total_reviews=total,
        average_quality=average,
        success_rate=success_rate,
        successful_reviews=successful_reviews,
        last_reviewed_at=now,
        version=prior.version + 1,
    )


class AggregateStatsTracker:
    """
    Maintains ItemAggregateStats through an ItemStatsStore.

    Stateless apart from the configured success-rate mode.
    """

    def __init__(self, mode: SuccessRateMode = SuccessRateMode.DERIVED):
        self.mode = mode

    async def record_review(
        self,
        store: ItemStatsStore,
        item_id: str,
        quality: int,
        now: datetime,
    ) -> ItemAggregateStats:
        """
        Read the item's stats, fold in ``quality`` and stage the write.

        The write only becomes visible when the owning unit of work commits.
        """
        prior = await store.get(item_id)
        updated = next_item_stats(prior, item_id, quality, now, self.mode)
        await store.upsert(updated)
        logger.debug(
            f"Item {item_id}: total={updated.total_reviews} "
            f"avg={updated.average_quality:.2f} success={updated.success_rate}%"
        )
        return updated
