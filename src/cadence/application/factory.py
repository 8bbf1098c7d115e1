"""
Service Factory
Centralizes adapter selection and wiring of the review services.
"""

import logging
from dataclasses import dataclass

from cadence.application.config import AppConfig, resolve_config
from cadence.application.review.aggregate_tracker import AggregateStatsTracker
from cadence.application.review.due_selector import DueItemSelector
from cadence.application.review.learner_stats import LearnerStatsService
from cadence.application.review.service import ReviewSubmissionService
from cadence.domain.review.ports import ItemCatalog, ReviewRepository
from cadence.infrastructure.adapters.catalog import InMemoryItemCatalog, load_yaml_catalog
from cadence.infrastructure.adapters.persistence import (
    InMemoryReviewRepository,
    SqliteReviewRepository,
)

logger = logging.getLogger(__name__)


def build_repository(config: AppConfig) -> ReviewRepository:
    """
    Returns the ReviewRepository implementation selected by config.
    """
    if config.backend == "sqlite":
        return SqliteReviewRepository(config.database_path)
    return InMemoryReviewRepository()


def build_catalog(config: AppConfig) -> ItemCatalog:
    """
    Returns a catalog read from ``config.catalog_path``, or an empty one.
    """
    if config.catalog_path is not None:
        return load_yaml_catalog(config.catalog_path)
    logger.warning("No catalog_path configured; starting with an empty item catalog")
    return InMemoryItemCatalog()


@dataclass
class ReviewServices:
    """Wired services sharing one repository. The caller owns its lifecycle."""

    repository: ReviewRepository
    catalog: ItemCatalog
    submissions: ReviewSubmissionService
    due_items: DueItemSelector
    learner_stats: LearnerStatsService

    async def close(self) -> None:
        await self.repository.close()


def build_review_services(
    config: AppConfig | None = None,
    repository: ReviewRepository | None = None,
    catalog: ItemCatalog | None = None,
) -> ReviewServices:
    """
    Wire the review services from config.

    Explicit ``repository`` / ``catalog`` arguments take precedence over the
    adapters config would select; embedding services pass their own catalog.
    """
    config = config or resolve_config()
    if repository is None:
        repository = build_repository(config)
    if catalog is None:
        catalog = build_catalog(config)

    submissions = ReviewSubmissionService(
        repository,
        catalog,
        tracker=AggregateStatsTracker(config.success_rate_mode),
        max_conflict_retries=config.max_conflict_retries,
        retry_backoff=config.conflict_retry_backoff,
        timeout=config.operation_timeout,
    )
    logger.debug(f"Review services ready (backend={config.backend})")
    return ReviewServices(
        repository=repository,
        catalog=catalog,
        submissions=submissions,
        due_items=DueItemSelector(repository, catalog, default_limit=config.due_items_limit),
        learner_stats=LearnerStatsService(repository),
    )
