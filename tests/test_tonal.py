import numpy as np
import pytest

from livemeter.analyzers.tonal import (
    MAJOR_PROFILE,
    MINOR_PROFILE,
    estimate_key,
    extract_mfcc,
    mel_filterbank,
)

SR = 48000
FFT = 8192


def _profile_spectrum(profile, root):
    """Spectrum whose pitch-class energies follow ``profile`` rotated to ``root``."""

    bin_hz = SR / FFT
    db = np.full(FFT // 2, -100.0)
    for pc in range(12):
        freq = 440.0 * 2.0 ** ((72 + pc - 69) / 12.0)
        db[int(round(freq / bin_hz))] = 10.0 * np.log10(profile[(pc - root) % 12])
    return db


def test_g_major_profile_is_recognised():
    result = estimate_key(_profile_spectrum(MAJOR_PROFILE, 7), SR, FFT)
    assert result.key == "G"
    assert result.mode == "major"
    assert result.key_string == "G major"
    assert result.confidence > 0.99


def test_a_minor_profile_is_recognised():
    result = estimate_key(_profile_spectrum(MINOR_PROFILE, 9), SR, FFT)
    assert (result.key, result.mode) == ("A", "minor")


def test_chroma_is_normalised_to_strongest_class():
    result = estimate_key(_profile_spectrum(MAJOR_PROFILE, 0), SR, FFT)
    assert len(result.chroma) == 12
    assert max(result.chroma) == pytest.approx(1.0)
    assert result.chroma[0] == pytest.approx(1.0)
    assert 0.0 <= result.confidence <= 1.0


def test_mfcc_shape_and_finiteness(rng):
    db = np.clip(rng.normal(-60.0, 10.0, size=2048), -100.0, 0.0)
    result = extract_mfcc(db, 48000, 4096)
    assert result.num_coeffs == 13
    assert len(result.coefficients) == 13
    assert np.all(np.isfinite(result.coefficients))


def test_mel_filterbank_is_cached_and_bounded():
    bank = mel_filterbank(48000, 4096)
    assert bank is mel_filterbank(48000, 4096)
    assert bank.shape == (26, 2048)
    assert bank.min() >= 0.0
    assert bank.max() <= 1.0
    assert np.all(bank.sum(axis=1) > 0.0)


def test_mfcc_on_tiny_fft_does_not_divide_by_zero():
    result = extract_mfcc(np.full(16, -100.0), 48000, 32)
    assert np.all(np.isfinite(result.coefficients))
