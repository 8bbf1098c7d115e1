"""
SM-2 interval engine.

This is a pure computation module with no I/O: given a quality rating and the
prior memory state it returns the next scheduling parameters.
"""

from cadence.application.utils.rounding import round_half_up
from cadence.domain.constants import (
    DEFAULT_INTERVAL,
    FIRST_INTERVAL,
    MASTERY_MIN_INTERVAL,
    MASTERY_MIN_QUALITY,
    MAX_QUALITY,
    MIN_EASINESS,
    MIN_QUALITY,
    PASSING_QUALITY,
    SECOND_INTERVAL,
)
from cadence.domain.errors import ValidationError
from cadence.domain.review.models import IntervalResult, LearningStatus


def validate_quality(quality: object) -> int:
    """
    Check that ``quality`` is an integer rating on the 0-5 scale.

    Booleans are rejected even though they are ints.

    Raises:
        ValidationError: If the rating is not an int in [0, 5].
    """
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise ValidationError(f"Quality must be an integer, got {quality!r}")
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise ValidationError(
            f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality}"
        )
    return quality


def is_successful(quality: int) -> bool:
    return quality >= PASSING_QUALITY


def next_easiness(easiness: float, quality: int) -> float:
    """
    Apply the SM-2 easiness update, floored at 1.3.

    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    """
    miss = MAX_QUALITY - quality
    updated = easiness + (0.1 - miss * (0.08 + miss * 0.02))
    return max(MIN_EASINESS, updated)


def compute(
    quality: int,
    prior_easiness: float,
    prior_interval: int,
    prior_repetition: int,
) -> IntervalResult:
    """
    Compute the next scheduling parameters for one review.

    A successful recall (quality >= 3) advances the repetition count and grows
    the interval: 1 day, then 6 days, then prior_interval * prior_easiness.
    A failed recall resets repetition to 0 and the interval to 1 day, and
    leaves easiness untouched.

    Args:
        quality: Recall rating, 0-5.
        prior_easiness: Easiness factor before this review.
        prior_interval: Interval in days before this review.
        prior_repetition: Consecutive successes before this review.

    Returns:
        IntervalResult with the new easiness, interval, repetition and status.
    """
    validate_quality(quality)

    if not is_successful(quality):
        return IntervalResult(
            easiness=prior_easiness,
            interval=DEFAULT_INTERVAL,
            repetition=0,
            status=LearningStatus.LEARNING,
        )

    repetition = prior_repetition + 1
    if repetition == 1:
        interval = FIRST_INTERVAL
    elif repetition == 2:
        interval = SECOND_INTERVAL
    else:
        interval = max(DEFAULT_INTERVAL, round_half_up(prior_interval * prior_easiness))

    easiness = next_easiness(prior_easiness, quality)

    if quality >= MASTERY_MIN_QUALITY and interval > MASTERY_MIN_INTERVAL:
        status = LearningStatus.MASTERED
    elif repetition >= 2:
        status = LearningStatus.REVIEW
    else:
        status = LearningStatus.LEARNING

    return IntervalResult(easiness=easiness, interval=interval, repetition=repetition, status=status)
