from datetime import datetime, timezone

import pytest

from cadence.domain.review.models import CatalogItem, ReviewStatus
from cadence.infrastructure.adapters.catalog import InMemoryItemCatalog
from cadence.infrastructure.adapters.persistence import InMemoryReviewRepository


@pytest.fixture
def now():
    return datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def catalog():
    """A small catalog mimicking a Spanish/French deck setup."""
    return InMemoryItemCatalog(
        [
            CatalogItem("hola", "es", "en", difficulty=1, deck_ids=frozenset({"spanish"})),
            CatalogItem("gato", "es", "en", difficulty=2, deck_ids=frozenset({"spanish"})),
            CatalogItem("chat", "fr", "en", difficulty=2, deck_ids=frozenset({"french"})),
            CatalogItem("old", "es", "en", difficulty=1, is_archived=True),
        ]
    )


@pytest.fixture
def repository():
    return InMemoryReviewRepository()


@pytest.fixture
def seed():
    """Write ReviewStatus records straight into a repository, bypassing the service."""

    async def _seed(repo, *statuses: ReviewStatus) -> None:
        async with repo.unit_of_work() as uow:
            for status in statuses:
                await uow.statuses.upsert(status)
            await uow.commit()

    return _seed


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config files
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "CADENCE_BACKEND",
        "CADENCE_DATABASE_PATH",
        "CADENCE_CATALOG_PATH",
        "CADENCE_OPERATION_TIMEOUT",
        "CADENCE_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    return home
