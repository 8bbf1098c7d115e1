"""
Per-learner statistics derived from stored review statuses.
"""

from collections import Counter
from datetime import datetime, timedelta

from cadence.domain.constants import DEFAULT_SUMMARY_PERIOD_DAYS
from cadence.domain.errors import ValidationError
from cadence.domain.review.models import LearnerProgress, LearningStatus, ReviewSummary
from cadence.domain.review.ports import ReviewRepository

from ..utils.clock import normalize_datetime, utc_now
from ..utils.rounding import percentage
from .service import validate_identifier


class LearnerStatsService:
    """Read-only summaries over one learner's review statuses."""

    def __init__(self, repository: ReviewRepository):
        self._repo = repository

    async def review_summary(
        self,
        learner_id: str,
        period_days: int = DEFAULT_SUMMARY_PERIOD_DAYS,
        now: datetime | None = None,
    ) -> ReviewSummary:
        """
        Summarize reviews over the last ``period_days``.

        Review and correct counts are summed over items last reviewed inside
        the period. Status counts cover all of the learner's items.
        """
        validate_identifier("learner_id", learner_id)
        if period_days < 1:
            raise ValidationError(f"period_days must be at least 1, got {period_days}")
        now = normalize_datetime(now) if now is not None else utc_now()
        period_start = now - timedelta(days=period_days)

        async with self._repo.unit_of_work() as uow:
            statuses = await uow.statuses.list_for_learner(learner_id)

        recent = [
            s for s in statuses if s.last_reviewed_at is not None and s.last_reviewed_at >= period_start
        ]
        total = sum(s.review_count for s in recent)
        correct = sum(s.correct_count for s in recent)

        return ReviewSummary(
            learner_id=learner_id,
            period_days=period_days,
            total_reviews=total,
            correct_reviews=correct,
            accuracy=percentage(correct, total),
            status_counts=dict(Counter(s.status for s in statuses)),
        )

    async def progress(self, learner_id: str, now: datetime | None = None) -> LearnerProgress:
        validate_identifier("learner_id", learner_id)
        now = normalize_datetime(now) if now is not None else utc_now()

        async with self._repo.unit_of_work() as uow:
            statuses = await uow.statuses.list_for_learner(learner_id)

        counts = Counter(s.status for s in statuses)
        # Only scheduled items count as due here; unscheduled NEW items do not
        due = sum(1 for s in statuses if s.next_review_at is not None and s.next_review_at <= now)

        return LearnerProgress(
            learner_id=learner_id,
            total_items=len(statuses),
            due_items=due,
            new_items=counts[LearningStatus.NEW],
            learning_items=counts[LearningStatus.LEARNING],
            review_items=counts[LearningStatus.REVIEW],
            mastered_items=counts[LearningStatus.MASTERED],
        )
