"""Numeric building blocks shared by the analyzers.

dB conversions, rolling buffers, DCT, mel scale, window functions,
A-weighting and the biquad section used for K-weighting.
"""
from .biquad import Biquad, k_weighting_filters
from .buffers import CircularBuffer
from .conversions import (
  NOTE_NAMES,
  NoteInfo,
  clamp,
  round_half_up,
  hz_to_mel,
  hz_to_note,
  mean,
  mel_to_hz,
  pearson,
  power_to_db,
  to_db,
  to_linear,
  variance,
)
from .dct import dct_ii
from .weighting import a_weight_db, a_weight_table
from .windows import WINDOW_TYPES, WindowType, build_window

__all__ = [
  "Biquad",
  "k_weighting_filters",
  "CircularBuffer",
  "NOTE_NAMES",
  "NoteInfo",
  "clamp",
  "round_half_up",
  "hz_to_mel",
  "hz_to_note",
  "mean",
  "mel_to_hz",
  "pearson",
  "power_to_db",
  "to_db",
  "to_linear",
  "variance",
  "dct_ii",
  "a_weight_db",
  "a_weight_table",
  "WINDOW_TYPES",
  "WindowType",
  "build_window",
]
