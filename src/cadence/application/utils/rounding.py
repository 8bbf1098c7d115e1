import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, with halves going up.

    Python's built-in round() uses banker's rounding (round(2.5) == 2), which
    would shorten some intervals by a day.
    """
    return int(math.floor(value + 0.5))


def percentage(part: int, whole: int) -> int:
    """Integer percentage of ``part`` in ``whole``; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)
