"""
Domain models for review scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from cadence.domain.constants import DEFAULT_EASINESS, DEFAULT_INTERVAL, DEFAULT_REPETITION


class LearningStatus(str, Enum):
    """
    Lifecycle stage of a (learner, item) pair.

    Declaration order is the presentation order used by the due-item selector.
    """

    NEW = "NEW"
    LEARNING = "LEARNING"
    REVIEW = "REVIEW"
    MASTERED = "MASTERED"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK = {status: index for index, status in enumerate(LearningStatus)}


@dataclass(frozen=True)
class IntervalResult:
    """
    Output of one SM-2 step.

    Attributes:
        easiness: New easiness factor (>= 1.3).
        interval: Days until the next review (>= 1).
        repetition: Consecutive successful recalls since the last lapse.
        status: Lifecycle stage after this review.
    """

    easiness: float
    interval: int
    repetition: int
    status: LearningStatus


@dataclass(frozen=True)
class ReviewStatus:
    """
    Memory state of one learner for one item.

    ``version`` is the optimistic-concurrency token: 0 means the record has
    never been persisted, and every persisted write increments it by one.
    """

    learner_id: str
    item_id: str
    status: LearningStatus = LearningStatus.NEW
    easiness: float = DEFAULT_EASINESS
    interval: int = DEFAULT_INTERVAL
    repetition: int = DEFAULT_REPETITION
    review_count: int = 0
    correct_count: int = 0
    last_quality: int | None = None
    last_reviewed_at: datetime | None = None
    next_review_at: datetime | None = None
    version: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return (self.learner_id, self.item_id)

    def is_due(self, now: datetime) -> bool:
        """New items are always due; others once their scheduled time has passed."""
        if self.status is LearningStatus.NEW:
            return True
        return self.next_review_at is not None and self.next_review_at <= now


@dataclass(frozen=True)
class ItemAggregateStats:
    """
    Running review metrics for one item across all learners.

    Attributes:
        item_id: The item these stats describe.
        total_reviews: Number of reviews from any learner.
        average_quality: Weighted mean of all submitted qualities.
        success_rate: Integer percentage of reviews with quality >= 3.
        successful_reviews: Exact count of reviews with quality >= 3.
        last_reviewed_at: Time of the most recent review.
        version: Optimistic-concurrency token (0 = never persisted).
    """

    item_id: str
    total_reviews: int = 0
    average_quality: float = 0.0
    success_rate: int = 0
    successful_reviews: int = 0
    last_reviewed_at: datetime | None = None
    version: int = 0


@dataclass(frozen=True)
class CatalogItem:
    """
    Read-only view of an item as supplied by the external catalog.

    Only the attributes the due-item filters need are carried.
    """

    item_id: str
    front_language_id: str | None = None
    back_language_id: str | None = None
    difficulty: int | None = None
    deck_ids: frozenset[str] = field(default_factory=frozenset)
    is_archived: bool = False


@dataclass(frozen=True)
class DueItemFilters:
    """
    Catalog-side filters for the due-item selector.

    A filter left as None (or empty) is not applied.
    """

    languages: frozenset[str] = field(default_factory=frozenset)
    difficulty: int | None = None
    deck_id: str | None = None

    def matches(self, item: CatalogItem) -> bool:
        if item.is_archived:
            return False
        if self.languages and not (
            item.front_language_id in self.languages or item.back_language_id in self.languages
        ):
            return False
        if self.difficulty is not None and item.difficulty != self.difficulty:
            return False
        if self.deck_id is not None and self.deck_id not in item.deck_ids:
            return False
        return True


@dataclass(frozen=True)
class DueItem:
    """An item paired with the learner's status for it."""

    item: CatalogItem
    status: ReviewStatus


@dataclass
class ReviewSummary:
    """Per-learner review totals over a recent period."""

    learner_id: str
    period_days: int
    total_reviews: int
    correct_reviews: int
    accuracy: int  # percentage, 0 when there were no reviews
    status_counts: dict[LearningStatus, int] = field(default_factory=dict)


@dataclass
class LearnerProgress:
    """Snapshot of where a learner stands across all their items."""

    learner_id: str
    total_items: int
    due_items: int
    new_items: int
    learning_items: int
    review_items: int
    mastered_items: int
