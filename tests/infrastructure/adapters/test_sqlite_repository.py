from dataclasses import replace
from datetime import timedelta

import pytest
import pytest_asyncio

from cadence.application.review.service import ReviewSubmissionService
from cadence.domain.errors import ConflictError, StorageError
from cadence.domain.review.models import ItemAggregateStats, LearningStatus, ReviewStatus
from cadence.infrastructure.adapters.persistence import SqliteReviewRepository


@pytest_asyncio.fixture
async def sqlite_repo(tmp_path):
    repo = SqliteReviewRepository(tmp_path / "data" / "reviews.db")
    yield repo
    await repo.close()


@pytest.mark.asyncio
async def test_round_trip_preserves_fields(sqlite_repo, seed, now):
    status = ReviewStatus(
        "u1", "hola",
        status=LearningStatus.REVIEW, easiness=2.36, interval=15, repetition=3,
        review_count=4, correct_count=3, last_quality=3,
        last_reviewed_at=now, next_review_at=now + timedelta(days=15), version=1,
    )
    await seed(sqlite_repo, status)

    async with sqlite_repo.unit_of_work() as uow:
        assert await uow.statuses.get("u1", "hola") == status


@pytest.mark.asyncio
async def test_persists_across_connections(tmp_path, catalog, now):
    path = tmp_path / "reviews.db"
    repo = SqliteReviewRepository(path)
    await ReviewSubmissionService(repo, catalog).submit_review("u1", "hola", 5, now=now)
    await repo.close()

    reopened = SqliteReviewRepository(path)
    try:
        async with reopened.unit_of_work() as uow:
            status = await uow.statuses.get("u1", "hola")
            stats = await uow.item_stats.get("hola")
    finally:
        await reopened.close()

    assert status.review_count == 1
    assert status.next_review_at == now + timedelta(days=1)
    assert stats.total_reviews == 1
    assert stats.successful_reviews == 1


@pytest.mark.asyncio
async def test_find_due_filters_in_store(sqlite_repo, seed, now):
    await seed(
        sqlite_repo,
        ReviewStatus("u1", "new", version=1),
        ReviewStatus("u1", "past", status=LearningStatus.REVIEW, next_review_at=now - timedelta(days=1), version=1),
        ReviewStatus("u1", "edge", status=LearningStatus.REVIEW, next_review_at=now, version=1),
        ReviewStatus("u1", "later", status=LearningStatus.REVIEW, next_review_at=now + timedelta(days=1), version=1),
        ReviewStatus("u2", "past", status=LearningStatus.REVIEW, next_review_at=now - timedelta(days=1), version=1),
    )

    async with sqlite_repo.unit_of_work() as uow:
        due = await uow.statuses.find_due("u1", now)

    assert sorted(s.item_id for s in due) == ["edge", "new", "past"]


@pytest.mark.asyncio
async def test_stale_update_is_a_conflict(sqlite_repo, seed):
    await seed(sqlite_repo, ReviewStatus("u1", "hola", version=1))

    async with sqlite_repo.unit_of_work() as uow:
        prior = await uow.statuses.get("u1", "hola")
        await uow.statuses.upsert(replace(prior, review_count=1, version=2))
        await uow.item_stats.upsert(ItemAggregateStats("hola", total_reviews=1, version=1))

        async with sqlite_repo.unit_of_work() as other:
            await other.statuses.upsert(replace(prior, review_count=9, version=2))
            await other.commit()

        with pytest.raises(ConflictError):
            await uow.commit()

    async with sqlite_repo.unit_of_work() as uow:
        assert (await uow.statuses.get("u1", "hola")).review_count == 9
        # the stats insert was rolled back with the status update
        assert await uow.item_stats.get("hola") is None


@pytest.mark.asyncio
async def test_concurrent_insert_is_a_conflict(sqlite_repo):
    async with sqlite_repo.unit_of_work() as uow:
        await uow.statuses.upsert(ReviewStatus("u1", "hola", version=1))

        async with sqlite_repo.unit_of_work() as other:
            await other.statuses.upsert(ReviewStatus("u1", "hola", review_count=2, version=1))
            await other.commit()

        with pytest.raises(ConflictError):
            await uow.commit()


@pytest.mark.asyncio
async def test_service_against_sqlite(sqlite_repo, catalog, now):
    service = ReviewSubmissionService(sqlite_repo, catalog)

    for day, quality in enumerate((5, 5, 5)):
        status = await service.submit_review("u1", "gato", quality, now=now + timedelta(days=day))

    assert status.interval == 16
    assert status.version == 3

    async with sqlite_repo.unit_of_work() as uow:
        stats = await uow.item_stats.get("gato")
    assert stats.total_reviews == 3
    assert stats.average_quality == 5.0


@pytest.mark.asyncio
async def test_closed_repository(sqlite_repo):
    await sqlite_repo.close()

    with pytest.raises(StorageError):
        sqlite_repo.unit_of_work()


def test_unopenable_path(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")

    with pytest.raises(StorageError):
        SqliteReviewRepository(blocker / "nested" / "reviews.db")


@pytest.mark.asyncio
async def test_in_memory_database():
    repo = SqliteReviewRepository(":memory:")
    try:
        async with repo.unit_of_work() as uow:
            assert await uow.statuses.list_for_learner("u1") == []
    finally:
        await repo.close()
