"""Type-II DCT used by the cepstral extractor."""
from __future__ import annotations

import numpy as np
from scipy.fft import dct


def dct_ii(values) -> np.ndarray:
  """Unnormalised DCT-II: X[k] = sum_n x[n] * cos(pi / N * (n + 0.5) * k).

  scipy's ``norm=None`` variant carries an extra factor of 2, which is
  removed here so coefficients match the textbook definition.
  """
  x = np.asarray(values, dtype=np.float64)
  if x.size == 0:
    return x.copy()
  return 0.5 * dct(x, type=2, norm=None)
