"""YIN fundamental-frequency estimator.

de Cheveigne & Kawahara (2002): squared-difference function, cumulative
mean normalised difference (CMNDF), absolute threshold, parabolic
refinement. Stateless; one call per frame.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import signal

from ..dsp_core.conversions import EMPTY_NOTE, NoteInfo, clamp, hz_to_note

YIN_THRESHOLD = 0.15
MIN_CONFIDENCE = 0.5


@dataclass(frozen=True)
class PitchResult:
    frequency: float
    raw_frequency: float
    confidence: float
    note: NoteInfo


NO_PITCH = PitchResult(frequency=0.0, raw_frequency=0.0, confidence=0.0, note=EMPTY_NOTE)


def difference_function(x: np.ndarray, half: int) -> np.ndarray:
    """d[tau] = sum_{j<half} (x[j] - x[j+tau])^2 for tau in [0, half)."""

    energy = np.concatenate(([0.0], np.cumsum(x * x)))
    lags = np.arange(half)
    head = energy[half]
    shifted = energy[lags + half] - energy[lags]
    cross = signal.correlate(x, x[:half], mode="valid", method="fft")[:half]
    # fft correlation leaves tiny negative residue where the true value is 0
    return np.maximum(head + shifted - 2.0 * cross, 0.0)


def cmndf(diff: np.ndarray) -> np.ndarray:
    out = np.ones_like(diff)
    running = np.cumsum(diff[1:])
    taus = np.arange(1, diff.shape[0], dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        normalised = diff[1:] * taus / running
    out[1:] = np.where(running > 0.0, normalised, 1.0)
    return out


def _pick_lag(curve: np.ndarray, threshold: float) -> int:
    half = curve.shape[0]
    below = np.nonzero(curve[2:] < threshold)[0]
    if below.size:
        tau = int(below[0]) + 2
        while tau + 1 < half and curve[tau + 1] < curve[tau]:
            tau += 1
        return tau
    return int(np.argmin(curve[2:])) + 2


def detect_pitch(samples: np.ndarray, sample_rate: int, threshold: float = YIN_THRESHOLD) -> PitchResult:
    """Estimate the fundamental of one frame.

    ``frequency`` is 0 unless confidence exceeds 0.5; ``raw_frequency`` is
    always the refined estimate.
    """

    x = np.asarray(samples, dtype=np.float64)
    half = x.shape[0] // 2
    if half < 4 or not np.any(x):
        return NO_PITCH

    curve = cmndf(difference_function(x, half))
    tau = _pick_lag(curve, threshold)

    refined = float(tau)
    if 0 < tau < half - 1:
        s0, s1, s2 = curve[tau - 1], curve[tau], curve[tau + 1]
        denom = 2.0 * (2.0 * s1 - s2 - s0)
        if denom != 0.0:
            refined = tau + (s2 - s0) / denom

    raw = sample_rate / refined if refined > 0 else 0.0
    confidence = clamp(1.0 - float(curve[tau]), 0.0, 1.0)
    return PitchResult(
        frequency=raw if confidence > MIN_CONFIDENCE else 0.0,
        raw_frequency=float(raw),
        confidence=confidence,
        note=hz_to_note(raw),
    )
