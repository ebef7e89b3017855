"""A-weighting curve (IEC 61672-1) for RTA display."""
from __future__ import annotations

import math
from functools import lru_cache

import numpy as np

A_WEIGHT_FLOOR_DB = -100.0


def _ra(f: float) -> float:
  f2 = f * f
  f4 = f2 * f2
  return (12200.0 ** 2 * f4) / (
    (f2 + 20.6 ** 2)
    * math.sqrt((f2 + 107.7 ** 2) * (f2 + 737.9 ** 2))
    * (f2 + 12200.0 ** 2)
  )


_RA_1K = _ra(1000.0)


def a_weight_db(freq_hz: float) -> float:
  """Correction in dB, 0 dB at 1 kHz. Below 10 Hz the curve is clamped."""
  if freq_hz < 10.0:
    return A_WEIGHT_FLOOR_DB
  return 20.0 * math.log10(_ra(freq_hz) / _RA_1K)


@lru_cache(maxsize=32)
def _cached_table(sample_rate: int, fft_size: int) -> np.ndarray:
  bin_hz = sample_rate / fft_size
  table = np.array([a_weight_db(i * bin_hz) for i in range(fft_size // 2)], dtype=np.float64)
  table.setflags(write=False)
  return table


def a_weight_table(sample_rate: int, fft_size: int) -> np.ndarray:
  """Per-bin correction table; cached per (sample rate, FFT size)."""
  return _cached_table(int(sample_rate), int(fft_size))
