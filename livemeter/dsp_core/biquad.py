"""Stateful biquad section and the BS.1770 K-weighting pair.

The section keeps its direct-form-I taps (x1, x2, y1, y2) between calls
so a stream can be filtered frame by frame without discontinuities.
Block processing goes through ``scipy.signal.lfilter``; its transposed
direct-form-II state is derived from the DF1 taps on the way in and the
taps are written back on the way out, so both paths produce identical
output.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from scipy.signal import lfilter

# ITU-R BS.1770 pre-filter (high shelf) and RLB weighting (high-pass).
SHELF_GAIN_DB = 3.99984385397
SHELF_FREQ_HZ = 1681.974450955533
SHELF_Q = 0.7071752369554196
HIGHPASS_FREQ_HZ = 38.13547087613982
HIGHPASS_Q = 0.5003270373238773


@dataclass
class Biquad:
  """Single second-order IIR section, coefficients normalised by a0."""

  b0: float
  b1: float
  b2: float
  a1: float
  a2: float
  x1: float = 0.0
  x2: float = 0.0
  y1: float = 0.0
  y2: float = 0.0

  def process_sample(self, x: float) -> float:
    y = self.b0 * x + self.b1 * self.x1 + self.b2 * self.x2 - self.a1 * self.y1 - self.a2 * self.y2
    self.x2 = self.x1
    self.x1 = x
    self.y2 = self.y1
    self.y1 = y
    return y

  def process_block(self, x: np.ndarray) -> np.ndarray:
    """Filter a block, continuing from and updating the stored taps."""
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0:
      return x.copy()

    zi = np.array([
      self.b1 * self.x1 + self.b2 * self.x2 - self.a1 * self.y1 - self.a2 * self.y2,
      self.b2 * self.x1 - self.a2 * self.y1,
    ])
    y, _ = lfilter([self.b0, self.b1, self.b2], [1.0, self.a1, self.a2], x, zi=zi)

    if x.size >= 2:
      self.x2, self.x1 = float(x[-2]), float(x[-1])
      self.y2, self.y1 = float(y[-2]), float(y[-1])
    else:
      self.x2, self.x1 = self.x1, float(x[0])
      self.y2, self.y1 = self.y1, float(y[0])
    return y

  def reset(self) -> None:
    self.x1 = self.x2 = self.y1 = self.y2 = 0.0


def design_high_shelf(sr: int) -> Biquad:
  vh = 10.0 ** (SHELF_GAIN_DB / 20.0)
  vb = vh ** 0.4845
  k = math.tan(math.pi * SHELF_FREQ_HZ / sr)
  a0 = 1.0 + k / SHELF_Q + k * k
  return Biquad(
    b0=(vh + vb * k / SHELF_Q + k * k) / a0,
    b1=2.0 * (k * k - vh) / a0,
    b2=(vh - vb * k / SHELF_Q + k * k) / a0,
    a1=2.0 * (k * k - 1.0) / a0,
    a2=(1.0 - k / SHELF_Q + k * k) / a0,
  )


def design_high_pass(sr: int) -> Biquad:
  k = math.tan(math.pi * HIGHPASS_FREQ_HZ / sr)
  a0 = 1.0 + k / HIGHPASS_Q + k * k
  return Biquad(
    b0=1.0 / a0,
    b1=-2.0 / a0,
    b2=1.0 / a0,
    a1=2.0 * (k * k - 1.0) / a0,
    a2=(1.0 - k / HIGHPASS_Q + k * k) / a0,
  )


def k_weighting_filters(sr: int) -> tuple[Biquad, Biquad]:
  """Fresh (shelf, high-pass) pair with zeroed state."""
  return design_high_shelf(sr), design_high_pass(sr)
