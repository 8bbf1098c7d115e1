"""
Request/response shapes for the two public operations.

These are data-only contracts; no transport format is implied.
"""

from datetime import datetime, timedelta
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from cadence.domain.constants import MAX_QUALITY, MIN_QUALITY
from cadence.domain.errors import ValidationError
from cadence.domain.review.models import DueItem, DueItemFilters, ReviewStatus


def _parse(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(str(e)) from e


class SubmitReviewRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    learner_id: str = Field(min_length=1)
    item_id: str = Field(min_length=1)
    quality: int = Field(ge=MIN_QUALITY, le=MAX_QUALITY, strict=True)
    time_spent: timedelta | None = None

    @field_validator("learner_id", "item_id")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("identifier must not be blank")
        return v

    @field_validator("time_spent")
    @classmethod
    def reject_negative(cls, v: timedelta | None) -> timedelta | None:
        if v is not None and v < timedelta(0):
            raise ValueError("time_spent must not be negative")
        return v

    @classmethod
    def parse(cls, **data: Any) -> "SubmitReviewRequest":
        """Build a request, raising the domain ValidationError on bad input."""
        return _parse(cls, data)


class SubmitReviewResult(BaseModel):
    status: ReviewStatus
    next_review_at: datetime


class GetDueItemsRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    learner_id: str = Field(min_length=1)
    limit: int | None = Field(default=None, ge=1)
    languages: list[str] = Field(default_factory=list)
    difficulty: int | None = None
    deck_id: str | None = None

    @classmethod
    def parse(cls, **data: Any) -> "GetDueItemsRequest":
        return _parse(cls, data)

    def to_filters(self) -> DueItemFilters:
        return DueItemFilters(
            languages=frozenset(self.languages),
            difficulty=self.difficulty,
            deck_id=self.deck_id,
        )


class GetDueItemsResult(BaseModel):
    items: list[DueItem]

    @property
    def count(self) -> int:
        return len(self.items)
