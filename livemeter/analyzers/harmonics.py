"""Harmonic analyzers driven by an externally supplied fundamental.

Both take ``fundamental_hz`` as an explicit argument (normally the pitch
tracker's output for the same frame). ``None`` or anything below 20 Hz
yields a neutral result flagged as not applicable.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..dsp_core.conversions import clamp, to_db

MIN_FUNDAMENTAL_HZ = 20.0
THD_MAX_HARMONIC = 8
THD_HALF_WIDTH_BINS = 2
INHARMONIC_MAX_HARMONIC = 10
INHARMONIC_SEARCH = 0.05
INHARMONIC_FLOOR_DB = -60.0


@dataclass(frozen=True)
class Harmonic:
    harmonic: int
    freq: float
    power: float
    db: float


@dataclass(frozen=True)
class ThdResult:
    thd: float
    thd_string: str
    harmonics: Tuple[Harmonic, ...]
    fundamental_power: float
    applicable: bool


NO_THD = ThdResult(thd=0.0, thd_string="0.00%", harmonics=(), fundamental_power=0.0, applicable=False)


def _has_fundamental(fundamental_hz: Optional[float]) -> bool:
    return fundamental_hz is not None and math.isfinite(fundamental_hz) and fundamental_hz >= MIN_FUNDAMENTAL_HZ


def _band_power(power: np.ndarray, freq_hz: float, bin_hz: float) -> float:
    center = int(math.floor(freq_hz / bin_hz + 0.5))
    if center < 0 or center >= power.shape[0]:
        return 0.0
    lo = max(0, center - THD_HALF_WIDTH_BINS)
    hi = min(power.shape[0] - 1, center + THD_HALF_WIDTH_BINS)
    return float(np.sum(power[lo : hi + 1]))


def measure_thd(
    magnitude_db: np.ndarray,
    sample_rate: int,
    fft_size: int,
    fundamental_hz: Optional[float],
) -> ThdResult:
    """THD% = 100 * sqrt(sum of harmonic power / fundamental power)."""

    if not _has_fundamental(fundamental_hz):
        return NO_THD

    bin_hz = sample_rate / fft_size
    power = 10.0 ** (np.asarray(magnitude_db, dtype=np.float64) / 10.0)
    fundamental_power = _band_power(power, fundamental_hz, bin_hz)

    harmonics = []
    harmonic_sum = 0.0
    for n in range(2, THD_MAX_HARMONIC + 1):
        freq = fundamental_hz * n
        if freq > sample_rate / 2.0:
            break
        p = _band_power(power, freq, bin_hz)
        harmonic_sum += p
        harmonics.append(Harmonic(harmonic=n, freq=freq, power=p, db=to_db(math.sqrt(p))))

    thd = 100.0 * math.sqrt(harmonic_sum / fundamental_power) if fundamental_power > 0.0 else 0.0
    return ThdResult(
        thd=clamp(thd, 0.0, 100.0),
        thd_string=f"{thd:.2f}%",
        harmonics=tuple(harmonics),
        fundamental_power=fundamental_power,
        applicable=True,
    )


@dataclass(frozen=True)
class HarmonicDeviation:
    n: int
    ideal_hz: float
    actual_hz: float
    deviation: float
    db: float


@dataclass(frozen=True)
class InharmonicityResult:
    inharmonicity: float
    harmonics_found: Tuple[HarmonicDeviation, ...]
    inharmonicity_score: str


NO_INHARMONICITY = InharmonicityResult(inharmonicity=0.0, harmonics_found=(), inharmonicity_score="N/A")


def _score(deviation: float) -> str:
    if deviation < 0.5:
        return "Very Clean"
    if deviation < 2.0:
        return "Normal"
    if deviation < 5.0:
        return "Stretched"
    return "High"


def measure_inharmonicity(
    magnitude_db: np.ndarray,
    sample_rate: int,
    fft_size: int,
    fundamental_hz: Optional[float],
) -> InharmonicityResult:
    """Mean absolute deviation (%) of partials 2-10 from integer multiples."""

    if not _has_fundamental(fundamental_hz):
        return NO_INHARMONICITY

    bin_hz = sample_rate / fft_size
    db = np.asarray(magnitude_db, dtype=np.float64)
    found = []
    for n in range(2, INHARMONIC_MAX_HARMONIC + 1):
        ideal = fundamental_hz * n
        if ideal > sample_rate / 2.0:
            break
        lo = int(math.floor(ideal * (1.0 - INHARMONIC_SEARCH) / bin_hz))
        hi = min(int(math.ceil(ideal * (1.0 + INHARMONIC_SEARCH) / bin_hz)), db.shape[0] - 1)
        if hi < lo:
            continue
        peak_bin = lo + int(np.argmax(db[lo : hi + 1]))
        peak_db = float(db[peak_bin])
        if peak_db > INHARMONIC_FLOOR_DB:
            actual = peak_bin * bin_hz
            found.append(HarmonicDeviation(
                n=n,
                ideal_hz=ideal,
                actual_hz=actual,
                deviation=100.0 * (actual - ideal) / ideal,
                db=peak_db,
            ))

    mean_dev = float(np.mean([abs(h.deviation) for h in found])) if found else 0.0
    return InharmonicityResult(
        inharmonicity=mean_dev,
        harmonics_found=tuple(found),
        inharmonicity_score=_score(mean_dev),
    )
