"""Scalar conversions shared by every analyzer.

dB/linear, simple statistics, mel scale and note naming. Everything here
is pure and side-effect free.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import librosa
import numpy as np

NOTE_NAMES: tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


def to_db(value: float) -> float:
  """20*log10 amplitude conversion; non-positive input maps to -inf."""
  value = float(value)
  if value <= 0.0:
    return float("-inf")
  return 20.0 * math.log10(value)


def to_linear(db: float) -> float:
  return float(10.0 ** (db / 20.0))


def power_to_db(power: float) -> float:
  """10*log10 for power quantities, -inf for non-positive input."""
  power = float(power)
  if power <= 0.0:
    return float("-inf")
  return 10.0 * math.log10(power)


def round_half_up(value: float) -> int:
  # builtin round() is banker's rounding; note and BPM display want .5 -> up
  return int(math.floor(value + 0.5))


def clamp(value: float, lo: float, hi: float) -> float:
  return max(lo, min(hi, value))


def mean(values: Iterable[float]) -> float:
  arr = np.fromiter(values, dtype=np.float64)
  if arr.size == 0:
    return 0.0
  return float(arr.mean())


def variance(values: Iterable[float]) -> float:
  """Population variance; fewer than two values gives 0."""
  arr = np.fromiter(values, dtype=np.float64)
  if arr.size < 2:
    return 0.0
  return float(arr.var())


def pearson(a: Sequence[float], b: Sequence[float]) -> float:
  """Pearson correlation, 0 when either side has no variance."""
  x = np.asarray(a, dtype=np.float64)
  y = np.asarray(b, dtype=np.float64)
  dx = x - x.mean()
  dy = y - y.mean()
  denom = math.sqrt(float(np.sum(dx * dx) * np.sum(dy * dy)))
  if denom == 0.0:
    return 0.0
  return float(np.sum(dx * dy) / denom)


def hz_to_mel(hz):
  # HTK formula: 2595 * log10(1 + f / 700)
  return librosa.hz_to_mel(hz, htk=True)


def mel_to_hz(mel):
  return librosa.mel_to_hz(mel, htk=True)


@dataclass(frozen=True)
class NoteInfo:
  note: str
  octave: int
  cents: int
  midi: int
  name: str


EMPTY_NOTE = NoteInfo(note="--", octave=0, cents=0, midi=0, name="--")


def hz_to_note(freq: float) -> NoteInfo:
  """Nearest equal-tempered note (A4 = 440 Hz) with cent offset."""
  if not math.isfinite(freq) or freq < 20.0:
    return EMPTY_NOTE
  midi = float(librosa.hz_to_midi(freq))
  rounded = round_half_up(midi)
  cents = round_half_up((midi - rounded) * 100.0)
  octave = rounded // 12 - 1
  note = NOTE_NAMES[rounded % 12]
  return NoteInfo(note=note, octave=octave, cents=cents, midi=rounded, name=f"{note}{octave}")
