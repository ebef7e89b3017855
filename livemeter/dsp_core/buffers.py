"""Fixed-capacity FIFO buffer used for every rolling history."""
from __future__ import annotations

from collections import deque
from typing import Deque, Generic, List, TypeVar

import numpy as np

T = TypeVar("T")


class CircularBuffer(Generic[T]):
  """Push-with-eviction container; never holds more than ``capacity`` items."""

  def __init__(self, capacity: int) -> None:
    if capacity <= 0:
      raise ValueError(f"capacity must be positive, got {capacity}")
    self.capacity = int(capacity)
    self._items: Deque[T] = deque(maxlen=self.capacity)

  def push(self, value: T) -> None:
    self._items.append(value)

  def values(self) -> List[T]:
    return list(self._items)

  def as_array(self) -> np.ndarray:
    return np.asarray(self._items, dtype=np.float64)

  def mean(self) -> float:
    if not self._items:
      return 0.0
    return float(np.mean(self.as_array()))

  def variance(self) -> float:
    if len(self._items) < 2:
      return 0.0
    return float(np.var(self.as_array()))

  @property
  def is_full(self) -> bool:
    return len(self._items) == self.capacity

  def last(self) -> T:
    return self._items[-1]

  def clear(self) -> None:
    self._items.clear()

  def __len__(self) -> int:
    return len(self._items)

  def __iter__(self):
    return iter(list(self._items))
