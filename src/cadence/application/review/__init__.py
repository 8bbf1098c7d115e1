# Application Review Package
from .aggregate_tracker import AggregateStatsTracker, SuccessRateMode, next_item_stats
from .contracts import GetDueItemsRequest, GetDueItemsResult, SubmitReviewRequest, SubmitReviewResult
from .due_selector import DueItemSelector
from .interval_engine import compute
from .learner_stats import LearnerStatsService
from .service import ReviewSubmissionService

__all__ = [
    "AggregateStatsTracker",
    "SuccessRateMode",
    "next_item_stats",
    "GetDueItemsRequest",
    "GetDueItemsResult",
    "SubmitReviewRequest",
    "SubmitReviewResult",
    "DueItemSelector",
    "compute",
    "LearnerStatsService",
    "ReviewSubmissionService",
]
