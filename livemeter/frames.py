"""Per-frame input contract and a buffer → frame adapter.

``AnalysisFrame`` is what the capture/transform side hands to the engine:
one block of time samples plus the matching magnitude spectrum in dBFS.

``SpectrumTransform`` and ``frames_from_buffer`` are a thin stand-in for
that capture side so recorded audio can be pushed through the engine
offline. They mirror an analyser node: window, real FFT, |X| / N,
exponential smoothing across frames, then dB clamped to the configured
range.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from .config import EngineConfig
from .dsp_core.windows import build_window


def _readonly(values, dtype=np.float64) -> np.ndarray:
    arr = np.array(values, dtype=dtype, copy=True)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class AnalysisFrame:
    """Immutable input for one processing cycle.

    ``channels`` optionally carries the (left, right) pair with shape
    (2, fft_size) for stereo sources; ``time_samples`` is then the mono
    downmix.
    """

    time_samples: np.ndarray
    magnitude_db: np.ndarray
    sample_rate: int
    fft_size: int
    frame_index: int
    timestamp: float
    channels: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "time_samples", _readonly(self.time_samples))
        object.__setattr__(self, "magnitude_db", _readonly(self.magnitude_db))
        if self.channels is not None:
            object.__setattr__(self, "channels", _readonly(self.channels))

    @property
    def bin_hz(self) -> float:
        return self.sample_rate / self.fft_size

    @property
    def is_stereo(self) -> bool:
        return self.channels is not None


class SpectrumTransform:
    """Windowed, smoothed magnitude spectrum in dBFS."""

    def __init__(self, config: EngineConfig) -> None:
        self.config = config
        self.window = build_window(config.window_type, config.fft_size)
        self._smoothed = np.zeros(config.n_bins, dtype=np.float64)

    def magnitude_db(self, samples: np.ndarray) -> np.ndarray:
        cfg = self.config
        spectrum = np.fft.rfft(np.asarray(samples, dtype=np.float64) * self.window)[: cfg.n_bins]
        magnitude = np.abs(spectrum) / cfg.fft_size

        tau = cfg.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1.0 - tau) * magnitude

        with np.errstate(divide="ignore"):
            db = 20.0 * np.log10(self._smoothed)
        return np.clip(db, cfg.min_db, cfg.max_db)

    def reset(self) -> None:
        self._smoothed[:] = 0.0


def split_channels(samples: np.ndarray) -> tuple[np.ndarray, Optional[np.ndarray]]:
    """Return (mono, channels) where channels is (2, N) or None."""

    audio = np.asarray(samples, dtype=np.float64)
    if audio.ndim == 1:
        return audio, None
    if audio.ndim == 2:
        # soundfile returns (frames, channels); also accept (channels, frames)
        if audio.shape[0] in (1, 2) and audio.shape[1] > 2:
            audio = audio.T
        if audio.shape[1] == 1:
            return audio[:, 0], None
        stereo = audio[:, :2].T
        return stereo.mean(axis=0), stereo
    raise ValueError(f"Expected mono [N] or multi-channel [N, C] audio, got shape {audio.shape}")


def frames_from_buffer(
    samples: np.ndarray,
    sample_rate: int,
    config: EngineConfig,
    transform: Optional[SpectrumTransform] = None,
) -> Iterator[AnalysisFrame]:
    """Cut a recording into consecutive, non-overlapping analysis frames.

    A trailing partial block shorter than the FFT size is dropped.
    """

    mono, stereo = split_channels(samples)
    transform = transform or SpectrumTransform(config)
    n = config.fft_size

    for index, start in enumerate(range(0, mono.shape[0] - n + 1, n)):
        block = mono[start : start + n]
        yield AnalysisFrame(
            time_samples=block,
            magnitude_db=transform.magnitude_db(block),
            sample_rate=sample_rate,
            fft_size=n,
            frame_index=index,
            timestamp=start / float(sample_rate),
            channels=None if stereo is None else stereo[:, start : start + n],
        )
