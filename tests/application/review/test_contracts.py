from datetime import timedelta

import pytest

from cadence.application.review.contracts import GetDueItemsRequest, SubmitReviewRequest
from cadence.domain.errors import ValidationError
from cadence.domain.review.models import DueItemFilters


def test_submit_request_valid():
    request = SubmitReviewRequest.parse(learner_id="u1", item_id="hola", quality=0)

    assert request.quality == 0
    assert request.time_spent is None


@pytest.mark.parametrize(
    "data",
    [
        {"learner_id": "u1", "item_id": "hola", "quality": 6},
        {"learner_id": "u1", "item_id": "hola", "quality": -1},
        {"learner_id": "u1", "item_id": "hola", "quality": "4"},
        {"learner_id": "u1", "item_id": "hola", "quality": 4.0},
        {"learner_id": "", "item_id": "hola", "quality": 4},
        {"learner_id": "u1", "item_id": "   ", "quality": 4},
        {"learner_id": "u1", "item_id": "hola"},
        {"learner_id": "u1", "item_id": "hola", "quality": 4, "time_spent": timedelta(seconds=-5)},
        {"learner_id": "u1", "item_id": "hola", "quality": 4, "deck": "x"},
    ],
)
def test_submit_request_rejects(data):
    with pytest.raises(ValidationError):
        SubmitReviewRequest.parse(**data)


def test_due_request_defaults():
    request = GetDueItemsRequest.parse(learner_id="u1")

    assert request.limit is None
    assert request.to_filters() == DueItemFilters()


def test_due_request_filters():
    request = GetDueItemsRequest.parse(learner_id="u1", languages=["es", "fr"], difficulty=3, deck_id="d")

    assert request.to_filters() == DueItemFilters(
        languages=frozenset({"es", "fr"}), difficulty=3, deck_id="d"
    )


@pytest.mark.parametrize("limit", [0, -1])
def test_due_request_rejects_limit(limit):
    with pytest.raises(ValidationError):
        GetDueItemsRequest.parse(learner_id="u1", limit=limit)
