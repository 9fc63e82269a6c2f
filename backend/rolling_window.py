"""
Fixed-capacity history buffers and the small statistics computed over them.

Every history the transcriber keeps (pitch, spectral flux, inter-onset
intervals, emitted notes) is a RollingWindow: once full, pushing a new value
evicts the oldest one.
"""

from collections import deque
from typing import Deque, Generic, Iterator, List, Sequence, TypeVar

T = TypeVar("T")


class RollingWindow(Generic[T]):
    """
    Capacity-bounded FIFO history, oldest element first.

    Args:
        capacity: Maximum number of values kept. Must be positive.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._values: Deque[T] = deque(maxlen=capacity)

    def push(self, value: T) -> None:
        self._values.append(value)

    def values(self) -> List[T]:
        """Snapshot of the window contents in arrival order."""
        return list(self._values)

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._values))

    def __bool__(self) -> bool:
        return bool(self._values)

    def __repr__(self) -> str:
        return f"RollingWindow(capacity={self.capacity}, values={list(self._values)!r})"


def median(values: Sequence[float]) -> float:
    """
    Median of values; the two middle elements are averaged for even counts.

    Returns 0.0 for an empty sequence.
    """
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return float(ordered[mid])
    return (ordered[mid - 1] + ordered[mid]) / 2.0


def weighted_average(values: Sequence[float]) -> float:
    """
    Recency-weighted mean: the i-th value (oldest first) gets weight i + 1.

    Returns 0.0 for an empty sequence.
    """
    weight_sum = 0
    weighted_total = 0.0
    for i, value in enumerate(values):
        weight = i + 1
        weight_sum += weight
        weighted_total += value * weight
    if weight_sum == 0:
        return 0.0
    return weighted_total / weight_sum
