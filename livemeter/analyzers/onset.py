"""Spectral-flux onset detector with a smoothed tempo estimate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..dsp_core.buffers import CircularBuffer
from ..dsp_core.conversions import clamp, round_half_up

logger = logging.getLogger("livemeter.analyzers.onset")

FLUX_HISTORY = 20
FLUX_RATIO = 1.5
MIN_GAP_SECONDS = 0.25
ONSET_HISTORY = 16
BPM_HISTORY = 8
MIN_ONSETS_FOR_TEMPO = 4
MIN_BEAT_MS = 200.0
MAX_BEAT_MS = 2000.0


@dataclass(frozen=True)
class OnsetResult:
    flux: float
    is_onset: bool
    bpm: int
    bpm_raw: float
    confidence: float


class OnsetDetector:
    """Fires when positive spectral flux jumps above 1.5x its recent mean.

    Onsets closer than ~250 ms (counted in frames) are suppressed. Tempo is
    derived from the mean spacing of the last 16 onset timestamps.
    """

    def __init__(self, sample_rate: int, fft_size: int) -> None:
        self.min_gap_frames = round_half_up(MIN_GAP_SECONDS * sample_rate / fft_size)
        self.previous: Optional[np.ndarray] = None
        self.flux_history: CircularBuffer[float] = CircularBuffer(FLUX_HISTORY)
        self.onset_times: CircularBuffer[float] = CircularBuffer(ONSET_HISTORY)
        self.bpm_history: CircularBuffer[float] = CircularBuffer(BPM_HISTORY)
        self.frame_count = 0
        self.last_onset_frame = 0
        self.bpm = 0.0

    def _update_tempo(self) -> None:
        times = self.onset_times.as_array()
        if times.shape[0] < MIN_ONSETS_FOR_TEMPO:
            return
        interval_ms = float(np.mean(np.diff(times))) * 1000.0
        if MIN_BEAT_MS < interval_ms < MAX_BEAT_MS:
            self.bpm_history.push(60000.0 / interval_ms)
            self.bpm = self.bpm_history.mean()
            logger.debug("[ONSET] Mean interval %.1f ms -> %.1f BPM", interval_ms, self.bpm)

    def process(self, magnitude_db: np.ndarray, timestamp: float) -> OnsetResult:
        current = np.asarray(magnitude_db, dtype=np.float64)
        if self.previous is None or self.previous.shape != current.shape:
            flux = 0.0
        else:
            flux = float(np.sum(np.maximum(current - self.previous, 0.0)))
        self.previous = current.copy()
        self.frame_count += 1

        self.flux_history.push(flux)
        gap = max(self.frame_count - self.last_onset_frame, 1)
        onset = flux > self.flux_history.mean() * FLUX_RATIO and gap > self.min_gap_frames
        if onset:
            self.last_onset_frame = self.frame_count
            self.onset_times.push(float(timestamp))
            self._update_tempo()

        confidence = 0.0
        if len(self.onset_times) >= MIN_ONSETS_FOR_TEMPO:
            confidence = clamp(1.0 - self.bpm_history.variance() / 100.0, 0.0, 1.0)

        return OnsetResult(
            flux=flux,
            is_onset=onset,
            bpm=round_half_up(self.bpm),
            bpm_raw=self.bpm,
            confidence=confidence,
        )
