"""FFT window coefficients (symmetric, N-1 denominator forms)."""
from __future__ import annotations

from typing import Literal

import numpy as np
from scipy.signal import windows

from ..errors import ConfigurationError

WindowType = Literal["hann", "blackman", "flattop", "rectangular"]
WINDOW_TYPES: tuple[str, ...] = ("hann", "blackman", "flattop", "rectangular")


def build_window(window_type: str, n: int) -> np.ndarray:
  """Return ``n`` window coefficients.

  - hann:        0.5 * (1 - cos(2 pi n / (N-1)))
  - blackman:    0.42 - 0.5 cos(...) + 0.08 cos(2 ...)
  - flattop:     ISO 18431-2 five-term, best amplitude accuracy for level readings
  - rectangular: all ones
  """
  if n <= 0:
    raise ConfigurationError(f"Window length must be positive, got {n}")

  if window_type == "hann":
    w = windows.hann(n, sym=True)
  elif window_type == "blackman":
    w = windows.blackman(n, sym=True)
  elif window_type == "flattop":
    w = windows.flattop(n, sym=True)
  elif window_type == "rectangular":
    w = np.ones(n)
  else:
    raise ConfigurationError(f"Unsupported window type: {window_type}")

  return np.asarray(w, dtype=np.float64)
