from datetime import date

import numpy as np
import pytest

from evidence_fit import DataError, Dataset, Observation


def test_observation_validates_fields():
    Observation(2024, 1, 7, 1, 0)

    with pytest.raises(DataError, match="day_of_week"):
        Observation(2024, 1, 7, 0, 3)
    with pytest.raises(DataError, match="day_of_week"):
        Observation(2024, 1, 7, 8, 3)
    with pytest.raises(DataError, match=">= 0"):
        Observation(2024, 1, 7, 2, -1)
    with pytest.raises(DataError, match="integer"):
        Observation(2024, 1, 7, 2, 2.5)
    with pytest.raises(DataError, match="month"):
        Observation(2024, 13, 7, 2, 2)


def test_from_rows_builds_ordered_dataset():
    rows = [
        (2024, 1, 7, 1, 3),
        (2024, 1, 8, 2, 11),
        (2024, 1, 9, 3, 9),
    ]
    ds = Dataset.from_rows(rows)

    assert len(ds) == 3
    assert ds[1].count == 11
    assert np.array_equal(ds.counts, [3.0, 11.0, 9.0])
    assert np.array_equal(ds.weekend, [True, False, False])
    assert np.array_equal(ds.weekday, [False, True, True])

    with pytest.raises(DataError, match="expected 5"):
        Dataset.from_rows([(2024, 1, 7, 1)])


def test_from_counts_assigns_consecutive_days():
    # 2024-01-07 is a Sunday
    ds = Dataset.from_counts(range(9), start=date(2024, 1, 7))

    assert list(ds.day_of_week) == [1, 2, 3, 4, 5, 6, 7, 1, 2]
    assert ds[8].day_of_month == 15
    assert int(ds.weekend.sum()) == 3
    assert int(ds.weekday.sum()) == 6


def test_dataset_is_read_only():
    ds = Dataset.from_counts([1, 2, 3])

    with pytest.raises(ValueError):
        ds.counts[0] = 10.0
    with pytest.raises(AttributeError):
        ds.observations = ()


def test_time_index_uses_row_position():
    ds = Dataset.from_counts([5] * 5)
    t = ds.time_index()

    assert t[0] == 0.0
    assert t[-1] == pytest.approx(2.0 * np.pi)
    assert np.allclose(np.diff(t), 2.0 * np.pi / 4)

    single = Dataset.from_counts([5])
    assert np.isnan(single.time_index()[0])


def test_describe_groups():
    # Sunday..Saturday
    ds = Dataset.from_counts([2, 10, 10, 12, 8, 10, 4])
    stats = ds.describe()

    assert stats["all"]["n"] == 7
    assert stats["weekday"]["n"] == 5
    assert stats["weekday"]["mean"] == pytest.approx(10.0)
    assert stats["weekday"]["var"] == pytest.approx(1.6)
    assert stats["weekend"]["mean"] == pytest.approx(3.0)
    assert stats["weekend"]["min"] == 2.0
    assert stats["weekend"]["max"] == 4.0

    weekdays_only = Dataset.from_counts([1, 2], start=date(2024, 1, 8))
    assert weekdays_only.describe()["weekend"]["n"] == 0
