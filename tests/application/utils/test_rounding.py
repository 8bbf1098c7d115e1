from datetime import datetime, timedelta, timezone

import pytest

from cadence.application.utils.clock import normalize_datetime
from cadence.application.utils.rounding import percentage, round_half_up


@pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (12.49, 12), (2.0, 2)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_percentage():
    assert percentage(1, 2) == 50
    assert percentage(2, 3) == 67
    assert percentage(1, 8) == 13
    assert percentage(0, 0) == 0


def test_normalize_datetime():
    naive = datetime(2024, 5, 1, 8, 0)
    offset = datetime(2024, 5, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))

    assert normalize_datetime(naive) == datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
    assert normalize_datetime(offset).tzinfo is timezone.utc
    assert normalize_datetime(offset).hour == 8
