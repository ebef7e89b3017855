"""Shared fixtures: synthetic signals and frame construction."""

import numpy as np
import pytest

from livemeter.frames import AnalysisFrame

SR = 48000
FFT = 4096


def sine(freq, n=FFT, sr=SR, amp=0.5, phase=0.1, start=0):
    t = (np.arange(n) + start) / sr
    return amp * np.sin(2.0 * np.pi * freq * t + phase)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def make_frame():
    """Factory for frames matching the default 48 kHz / 4096 configuration."""

    def _make(samples=None, magnitude_db=None, index=0, timestamp=None, sr=SR, fft=FFT, channels=None):
        if samples is None:
            samples = np.zeros(fft)
        if magnitude_db is None:
            magnitude_db = np.full(fft // 2, -100.0)
        return AnalysisFrame(
            time_samples=samples,
            magnitude_db=magnitude_db,
            sample_rate=sr,
            fft_size=fft,
            frame_index=index,
            timestamp=index * fft / sr if timestamp is None else timestamp,
            channels=channels,
        )

    return _make


@pytest.fixture
def tone():
    return sine
