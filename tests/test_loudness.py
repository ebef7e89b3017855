import math

import numpy as np
import pytest

from livemeter.analyzers.loudness import LoudnessMeter, loudness_from_ms

SR = 48000
FFT = 4096


def _frames(signal, n=FFT):
    for start in range(0, signal.shape[0] - n + 1, n):
        yield signal[start : start + n]


def test_silence_is_negative_infinity_not_nan():
    meter = LoudnessMeter(SR)
    for _ in range(50):
        result = meter.process(np.zeros(FFT))
        assert result.momentary == float("-inf")
        assert result.short_term == float("-inf")
        assert result.integrated == float("-inf")
        assert result.lra == 0.0


def test_loudness_from_ms_guards_non_positive():
    assert loudness_from_ms(0.0) == float("-inf")
    assert loudness_from_ms(1.0) == pytest.approx(-0.691)


def test_1khz_sine_reads_about_minus_23_lufs():
    # A 1 kHz sine at -20 dBFS peak sits at about -23 LUFS after K-weighting.
    t = np.arange(FFT * 40) / SR
    signal = 0.1 * np.sin(2.0 * np.pi * 1000.0 * t)
    meter = LoudnessMeter(SR)
    for block in _frames(signal):
        result = meter.process(block)

    assert result.momentary == pytest.approx(-23.0, abs=0.3)
    assert result.short_term == pytest.approx(-23.0, abs=0.3)
    assert result.integrated == pytest.approx(-23.0, abs=0.3)
    assert result.lra < 0.5


def test_relative_gate_ignores_quiet_passages():
    t = np.arange(FFT * 60) / SR
    loud = 0.1 * np.sin(2.0 * np.pi * 1000.0 * t[: FFT * 30])
    # 40 dB quieter: above the absolute gate, below the relative gate
    quiet = 0.001 * np.sin(2.0 * np.pi * 1000.0 * t[FFT * 30 :])
    meter = LoudnessMeter(SR)
    results = [meter.process(b) for b in _frames(np.concatenate([loud, quiet]))]

    assert results[-1].integrated == pytest.approx(-23.0, abs=0.5)
    assert results[-1].momentary < -55.0


def test_values_never_nan_on_mixed_content(rng):
    meter = LoudnessMeter(SR)
    blocks = [np.zeros(FFT), rng.normal(scale=0.5, size=FFT), np.zeros(FFT), np.full(FFT, 1e-12)]
    for _ in range(20):
        for block in blocks:
            result = meter.process(block)
            for value in (result.momentary, result.short_term, result.integrated, result.lra):
                assert not math.isnan(value)


def test_integrated_is_the_power_mean_of_gated_blocks():
    t = np.arange(FFT * 60) / SR
    gain = 10.0 ** (-7.0 / 20.0)
    signal = 0.1 * np.sin(2.0 * np.pi * 1000.0 * t)
    signal[FFT * 30 :] *= gain
    meter = LoudnessMeter(SR)
    for block in _frames(signal):
        result = meter.process(block)

    # -23 and -30 LUFS halves, both above the relative gate
    expected = -23.0 + 10.0 * np.log10((1.0 + gain**2) / 2.0)
    assert result.integrated == pytest.approx(expected, abs=0.3)


def test_gating_state_stays_bounded_over_long_sessions():
    t = np.arange(FFT) / SR
    block = 0.1 * np.sin(2.0 * np.pi * 1000.0 * t)
    meter = LoudnessMeter(SR)
    bins = meter.gate_counts.shape

    for _ in range(500):
        result = meter.process(block)

    assert meter.gate_counts.shape == bins
    assert meter.gate_energy.shape == bins
    assert meter.gated_block_count == 500
    assert result.integrated == pytest.approx(-23.0, abs=0.3)
