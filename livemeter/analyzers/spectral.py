"""Stateless analyzers over a single magnitude spectrum.

- 1/3-octave real-time analyzer (ISO 266 centre frequencies)
- spectral centroid / flatness / rolloff / bandwidth
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..dsp_core.conversions import clamp

ISO_THIRD_OCTAVE_CENTERS: Tuple[float, ...] = (
    20, 25, 31.5, 40, 50, 63, 80, 100, 125, 160,
    200, 250, 315, 400, 500, 630, 800, 1000, 1250, 1600,
    2000, 2500, 3150, 4000, 5000, 6300, 8000, 10000, 12500, 16000, 20000,
)

_HALF_THIRD_OCTAVE = 2.0 ** (1.0 / 6.0)


@dataclass(frozen=True)
class RtaBand:
    center: float
    db: float
    normalized: float


@dataclass(frozen=True)
class RtaResult:
    bands: Tuple[RtaBand, ...]
    a_weighted: bool


@dataclass(frozen=True)
class SpectralResult:
    centroid: float
    flatness: float
    rolloff: float
    bandwidth: float
    total_energy: float


def analyze_rta(
    magnitude_db: np.ndarray,
    sample_rate: int,
    fft_size: int,
    a_weight_table: Optional[np.ndarray] = None,
    min_db: float = -100.0,
    max_db: float = 0.0,
) -> RtaResult:
    """Average power per 1/3-octave band, optionally A-weighted.

    ``normalized`` maps the band level onto [min_db, max_db] and is always
    clamped to [0, 1].
    """

    bin_hz = sample_rate / fft_size
    db = np.asarray(magnitude_db, dtype=np.float64)
    if a_weight_table is not None:
        db = db + a_weight_table[: db.shape[0]]
    with np.errstate(over="ignore"):
        power = 10.0 ** (db / 10.0)
    last = db.shape[0] - 1
    span = max_db - min_db

    bands = []
    for center in ISO_THIRD_OCTAVE_CENTERS:
        lo = max(0, int(np.floor(center / _HALF_THIRD_OCTAVE / bin_hz)))
        hi = min(last, int(np.ceil(center * _HALF_THIRD_OCTAVE / bin_hz)))
        if hi >= lo:
            avg = float(np.mean(power[lo : hi + 1]))
            band_db = 10.0 * np.log10(max(avg, 1e-30))
        else:
            # band lies above Nyquist
            band_db = min_db
        normalized = clamp((band_db - min_db) / span, 0.0, 1.0)
        bands.append(RtaBand(center=float(center), db=float(band_db), normalized=float(normalized)))

    return RtaResult(bands=tuple(bands), a_weighted=a_weight_table is not None)


def analyze_spectral_features(magnitude_db: np.ndarray, sample_rate: int, fft_size: int) -> SpectralResult:
    """Centroid, flatness (Wiener entropy), 85% rolloff and bandwidth. DC is skipped."""

    bin_hz = sample_rate / fft_size
    db = np.asarray(magnitude_db, dtype=np.float64)
    n = db.shape[0]
    if n < 2:
        return SpectralResult(centroid=0.0, flatness=0.0, rolloff=0.0, bandwidth=0.0, total_energy=0.0)

    power = 10.0 ** (db[1:] / 10.0)
    freqs = np.arange(1, n) * bin_hz
    total = float(np.sum(power))
    if total <= 0.0:
        return SpectralResult(centroid=0.0, flatness=0.0, rolloff=0.0, bandwidth=0.0, total_energy=0.0)

    centroid = float(np.sum(freqs * power) / total)

    geometric = float(np.exp(np.mean(np.log(np.maximum(power, 1e-10)))))
    flatness = clamp(geometric / (total / (n - 1)), 0.0, 1.0)

    cumulative = np.cumsum(power)
    idx = int(np.searchsorted(cumulative, 0.85 * total, side="left"))
    rolloff = float(freqs[min(idx, n - 2)])

    bandwidth = float(np.sqrt(np.sum((freqs - centroid) ** 2 * power) / total))

    return SpectralResult(
        centroid=centroid,
        flatness=flatness,
        rolloff=rolloff,
        bandwidth=bandwidth,
        total_energy=total,
    )
