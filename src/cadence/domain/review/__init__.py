# Domain Review Package
from .models import (
    CatalogItem,
    DueItem,
    DueItemFilters,
    IntervalResult,
    ItemAggregateStats,
    LearnerProgress,
    LearningStatus,
    ReviewStatus,
    ReviewSummary,
)
from .ports import ItemCatalog, ItemStatsStore, ReviewRepository, ReviewStatusStore, UnitOfWork

__all__ = [
    "CatalogItem",
    "DueItem",
    "DueItemFilters",
    "IntervalResult",
    "ItemAggregateStats",
    "LearnerProgress",
    "LearningStatus",
    "ReviewStatus",
    "ReviewSummary",
    "ItemCatalog",
    "ItemStatsStore",
    "ReviewRepository",
    "ReviewStatusStore",
    "UnitOfWork",
]
