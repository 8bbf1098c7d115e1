from datetime import timedelta

import pytest
import pytest_asyncio

from cadence.application.review.contracts import GetDueItemsRequest
from cadence.application.review.due_selector import DueItemSelector, rank_due
from cadence.application.review.service import ReviewSubmissionService
from cadence.domain.errors import ValidationError
from cadence.domain.review.models import DueItemFilters, LearningStatus, ReviewStatus


@pytest.fixture
def selector(repository, catalog):
    return DueItemSelector(repository, catalog)


def scheduled(item_id, status, next_review_at, learner_id="u1"):
    return ReviewStatus(learner_id, item_id, status=status, next_review_at=next_review_at, version=1)


def ids(due_items):
    return [d.item.item_id for d in due_items]


@pytest.mark.asyncio
async def test_nothing_due_is_empty(selector):
    assert await selector.due_items("u1") == []


@pytest.mark.asyncio
async def test_orders_by_status_then_overdue(selector, repository, seed, now):
    await seed(
        repository,
        scheduled("hola", LearningStatus.REVIEW, now - timedelta(days=3)),
        scheduled("gato", LearningStatus.LEARNING, now - timedelta(hours=1)),
        scheduled("chat", LearningStatus.LEARNING, now - timedelta(days=2)),
    )

    due = await selector.due_items("u1", now=now)

    assert ids(due) == ["chat", "gato", "hola"]
    assert due[0].status.status is LearningStatus.LEARNING


@pytest.mark.asyncio
async def test_new_items_come_first(selector, repository, seed, now):
    await seed(
        repository,
        scheduled("hola", LearningStatus.LEARNING, now - timedelta(days=5)),
        ReviewStatus("u1", "gato", version=1),
    )

    assert ids(await selector.due_items("u1", now=now)) == ["gato", "hola"]


@pytest.mark.asyncio
async def test_future_items_excluded(selector, repository, seed, now):
    await seed(
        repository,
        scheduled("hola", LearningStatus.REVIEW, now + timedelta(seconds=1)),
        scheduled("gato", LearningStatus.REVIEW, now),
    )

    assert ids(await selector.due_items("u1", now=now)) == ["gato"]


@pytest.mark.asyncio
async def test_other_learners_excluded(selector, repository, seed, now):
    await seed(repository, scheduled("hola", LearningStatus.REVIEW, now, learner_id="u2"))

    assert await selector.due_items("u1", now=now) == []


@pytest.mark.asyncio
async def test_limit(selector, repository, seed, now):
    await seed(
        repository,
        scheduled("hola", LearningStatus.REVIEW, now - timedelta(days=1)),
        scheduled("gato", LearningStatus.REVIEW, now - timedelta(days=2)),
        scheduled("chat", LearningStatus.REVIEW, now - timedelta(days=3)),
    )

    assert ids(await selector.due_items("u1", now=now, limit=2)) == ["chat", "gato"]


@pytest.mark.asyncio
async def test_default_limit_from_constructor(repository, catalog, seed, now):
    selector = DueItemSelector(repository, catalog, default_limit=1)
    await seed(
        repository,
        scheduled("hola", LearningStatus.REVIEW, now),
        scheduled("gato", LearningStatus.REVIEW, now),
    )

    assert len(await selector.due_items("u1", now=now)) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, -3, True, 2.5, "5"])
async def test_invalid_limit(selector, limit):
    with pytest.raises(ValidationError):
        await selector.due_items("u1", limit=limit)


@pytest.mark.asyncio
async def test_archived_and_unknown_items_skipped(selector, repository, seed, now):
    await seed(
        repository,
        scheduled("old", LearningStatus.REVIEW, now - timedelta(days=9)),
        scheduled("gone", LearningStatus.REVIEW, now - timedelta(days=8)),
        scheduled("hola", LearningStatus.REVIEW, now),
    )

    assert ids(await selector.due_items("u1", now=now)) == ["hola"]


@pytest.mark.asyncio
async def test_limit_applies_after_filtering(selector, repository, seed, now):
    await seed(
        repository,
        scheduled("old", LearningStatus.LEARNING, now),
        scheduled("hola", LearningStatus.REVIEW, now),
    )

    assert ids(await selector.due_items("u1", now=now, limit=1)) == ["hola"]


class TestFilters:
    @pytest_asyncio.fixture
    async def seeded(self, repository, seed, now):
        await seed(
            repository,
            scheduled("hola", LearningStatus.REVIEW, now),
            scheduled("gato", LearningStatus.REVIEW, now),
            scheduled("chat", LearningStatus.REVIEW, now),
        )

    @pytest.mark.asyncio
    async def test_language_matches_either_side(self, selector, seeded, now):
        due = await selector.due_items("u1", now=now, filters=DueItemFilters(languages=frozenset({"fr"})))
        assert ids(due) == ["chat"]

        due = await selector.due_items("u1", now=now, filters=DueItemFilters(languages=frozenset({"en"})))
        assert sorted(ids(due)) == ["chat", "gato", "hola"]

    @pytest.mark.asyncio
    async def test_difficulty(self, selector, seeded, now):
        due = await selector.due_items("u1", now=now, filters=DueItemFilters(difficulty=2))
        assert sorted(ids(due)) == ["chat", "gato"]

    @pytest.mark.asyncio
    async def test_deck(self, selector, seeded, now):
        due = await selector.due_items("u1", now=now, filters=DueItemFilters(deck_id="spanish"))
        assert sorted(ids(due)) == ["gato", "hola"]

    @pytest.mark.asyncio
    async def test_combined(self, selector, seeded, now):
        filters = DueItemFilters(languages=frozenset({"es"}), difficulty=2, deck_id="spanish")
        assert ids(await selector.due_items("u1", now=now, filters=filters)) == ["gato"]


@pytest.mark.asyncio
async def test_reviewed_item_leaves_due_list(selector, repository, catalog, now):
    service = ReviewSubmissionService(repository, catalog)
    await service.submit_review("u1", "hola", 5, now=now - timedelta(days=2))

    assert ids(await selector.due_items("u1", now=now)) == ["hola"]

    await service.submit_review("u1", "hola", 5, now=now)

    assert await selector.due_items("u1", now=now) == []


@pytest.mark.asyncio
async def test_get_due_items_contract(selector, repository, seed, now):
    await seed(
        repository,
        scheduled("hola", LearningStatus.REVIEW, now),
        scheduled("chat", LearningStatus.REVIEW, now),
    )
    request = GetDueItemsRequest.parse(learner_id="u1", limit=5, languages=["es"])

    result = await selector.get_due_items(request, now=now)

    assert result.count == 1
    assert result.items[0].item.item_id == "hola"


def test_rank_due_is_pure(now):
    statuses = [
        scheduled("a", LearningStatus.MASTERED, now - timedelta(days=30)),
        scheduled("b", LearningStatus.REVIEW, now - timedelta(days=1)),
        scheduled("c", LearningStatus.REVIEW, now + timedelta(days=1)),
    ]

    assert [s.item_id for s in rank_due(statuses, now)] == ["b", "a"]
