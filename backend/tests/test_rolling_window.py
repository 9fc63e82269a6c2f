import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rolling_window import RollingWindow, median, weighted_average


def test_window_never_exceeds_capacity():
    window = RollingWindow(3)
    for value in range(10):
        window.push(value)
        assert len(window) <= 3


def test_window_keeps_last_values_in_arrival_order():
    window = RollingWindow(4)
    for value in range(4 + 5):
        window.push(value)
    assert window.values() == [5, 6, 7, 8]


def test_window_partial_fill_and_clear():
    window = RollingWindow(5)
    window.push(1.5)
    window.push(2.5)
    assert window.values() == [1.5, 2.5]
    assert bool(window)

    window.clear()
    assert len(window) == 0
    assert not window


def test_window_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        RollingWindow(0)


def test_median_odd_and_even():
    assert median([3.0, 1.0, 2.0]) == 2.0
    assert median([4.0, 1.0, 3.0, 2.0]) == 2.5


def test_median_does_not_mutate_input():
    values = [3.0, 1.0, 2.0]
    median(values)
    assert values == [3.0, 1.0, 2.0]


def test_median_of_empty_is_zero():
    assert median([]) == 0.0


def test_weighted_average_favors_recent_values():
    # weights 1, 2, 3 -> (1*100 + 2*200 + 3*400) / 6
    assert weighted_average([100.0, 200.0, 400.0]) == pytest.approx(1700.0 / 6)
    assert weighted_average([100.0, 400.0]) > weighted_average([400.0, 100.0])


def test_weighted_average_of_empty_is_zero():
    assert weighted_average([]) == 0.0
