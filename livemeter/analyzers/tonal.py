"""Tonal descriptors from the magnitude spectrum.

- chromagram + Krumhansl-Schmuckler key estimate
- mel-frequency cepstral coefficients
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal, Tuple

import numpy as np

from ..dsp_core.conversions import NOTE_NAMES, clamp, hz_to_mel, mel_to_hz, pearson
from ..dsp_core.dct import dct_ii

KeyMode = Literal["major", "minor"]

# Krumhansl-Kessler probe-tone profiles, index 0 = tonic.
MAJOR_PROFILE: Tuple[float, ...] = (6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88)
MINOR_PROFILE: Tuple[float, ...] = (6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17)

CHROMA_MIN_HZ = 20.0
CHROMA_MAX_HZ = 20000.0

MFCC_FILTERS = 26
MFCC_COEFFS = 13
MFCC_MIN_HZ = 20.0
MFCC_MAX_HZ = 8000.0


@dataclass(frozen=True)
class ChromaResult:
    chroma: Tuple[float, ...]
    key: str
    mode: KeyMode
    key_string: str
    confidence: float


@dataclass(frozen=True)
class MfccResult:
    coefficients: Tuple[float, ...]
    num_coeffs: int


def compute_chroma(magnitude_db: np.ndarray, sample_rate: int, fft_size: int) -> np.ndarray:
    """12-bin pitch-class energy, normalised so the strongest class is 1."""

    db = np.asarray(magnitude_db, dtype=np.float64)
    freqs = np.arange(db.shape[0]) * (sample_rate / fft_size)
    mask = (freqs >= CHROMA_MIN_HZ) & (freqs <= CHROMA_MAX_HZ)
    mask[0] = False
    if not np.any(mask):
        return np.zeros(12)

    energy = 10.0 ** (db[mask] / 10.0)
    midi = 12.0 * np.log2(freqs[mask] / 440.0) + 69.0
    pitch_class = np.mod(np.floor(midi + 0.5).astype(np.int64), 12)
    chroma = np.bincount(pitch_class, weights=energy, minlength=12)

    peak = float(chroma.max())
    if peak > 0.0:
        chroma = chroma / peak
    return chroma


def estimate_key(magnitude_db: np.ndarray, sample_rate: int, fft_size: int) -> ChromaResult:
    chroma = compute_chroma(magnitude_db, sample_rate, fft_size)

    best_root = 0
    best_mode: KeyMode = "major"
    best_corr = -np.inf
    for root in range(12):
        rotated = np.roll(chroma, -root)
        major = pearson(rotated, MAJOR_PROFILE)
        minor = pearson(rotated, MINOR_PROFILE)
        if major > best_corr:
            best_corr, best_root, best_mode = major, root, "major"
        if minor > best_corr:
            best_corr, best_root, best_mode = minor, root, "minor"

    key = NOTE_NAMES[best_root]
    return ChromaResult(
        chroma=tuple(float(c) for c in chroma),
        key=key,
        mode=best_mode,
        key_string=f"{key} {best_mode}",
        confidence=clamp(float(best_corr), 0.0, 1.0),
    )


@lru_cache(maxsize=16)
def mel_filterbank(
    sample_rate: int,
    fft_size: int,
    n_filters: int = MFCC_FILTERS,
    fmin: float = MFCC_MIN_HZ,
    fmax: float = MFCC_MAX_HZ,
) -> np.ndarray:
    """Triangular filters on mel-spaced FFT-bin boundaries, shape (n_filters, fft_size // 2)."""

    n_bins = fft_size // 2
    mel_points = np.linspace(hz_to_mel(fmin), hz_to_mel(fmax), n_filters + 2)
    edges = np.floor((fft_size + 1) * mel_to_hz(mel_points) / sample_rate).astype(np.int64)

    k = np.arange(n_bins, dtype=np.float64)
    bank = np.zeros((n_filters, n_bins), dtype=np.float64)
    for m in range(1, n_filters + 1):
        left, center, right = edges[m - 1], edges[m], edges[m + 1]
        rising = (k >= left) & (k <= center)
        falling = (k > center) & (k <= right)
        if center > left:
            bank[m - 1, rising] = (k[rising] - left) / (center - left)
        else:
            bank[m - 1, rising] = 1.0
        if right > center:
            bank[m - 1, falling] = (right - k[falling]) / (right - center)

    bank.setflags(write=False)
    return bank


def extract_mfcc(
    magnitude_db: np.ndarray,
    sample_rate: int,
    fft_size: int,
    num_coeffs: int = MFCC_COEFFS,
) -> MfccResult:
    db = np.asarray(magnitude_db, dtype=np.float64)
    bank = mel_filterbank(int(sample_rate), int(fft_size))
    power = 10.0 ** (db / 10.0)
    energies = bank[:, : power.shape[0]] @ power[: bank.shape[1]]
    log_energies = np.log(np.maximum(energies, 1e-10))
    coeffs = dct_ii(log_energies)[:num_coeffs]
    return MfccResult(coefficients=tuple(float(c) for c in coeffs), num_coeffs=num_coeffs)
