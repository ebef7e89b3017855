"""Acoustic feedback (ringing) detector.

Tracks the dominant spectral peak over time. A loud peak that sits on the
same frequency for most of a 25-frame window is treated as a feedback
risk, and a notch at that frequency is suggested.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..dsp_core.buffers import CircularBuffer
from ..dsp_core.conversions import NoteInfo, hz_to_note

logger = logging.getLogger("livemeter.analyzers.feedback")

SEARCH_FLOOR_HZ = 100.0
MIN_RINGING_HZ = 250.0
MIN_RINGING_DB = -20.0
HISTORY_FRAMES = 25
MIN_RINGING_FRAMES = 20
MAX_SPREAD_HZ = 20.0
HOLD_FRAMES = 50


@dataclass(frozen=True)
class NotchSuggestion:
    frequency: float
    note: NoteInfo
    bandwidth: str = "1/3 octave"
    suggested_cut: str = "-6 to -12 dB"


@dataclass(frozen=True)
class FeedbackResult:
    is_feedback_risk: bool
    ringing_frequency: float
    notch_suggestion: Optional[NotchSuggestion]
    dominant_frequency: float
    dominant_db: float
    new_event: bool


class FeedbackDetector:
    def __init__(self, sample_rate: int, fft_size: int) -> None:
        self.bin_hz = sample_rate / fft_size
        self.first_bin = int(math.floor(SEARCH_FLOOR_HZ / self.bin_hz))
        self.history: CircularBuffer[float] = CircularBuffer(HISTORY_FRAMES)
        self.hold = 0
        self.ringing_frequency = 0.0
        self._was_risk = False

    def process(self, magnitude_db: np.ndarray) -> FeedbackResult:
        db = np.asarray(magnitude_db, dtype=np.float64)
        if self.first_bin < db.shape[0]:
            peak_bin = self.first_bin + int(np.argmax(db[self.first_bin :]))
            peak_db = float(db[peak_bin])
        else:
            peak_bin, peak_db = 0, float("-inf")
        dominant_hz = peak_bin * self.bin_hz

        if peak_db > MIN_RINGING_DB and dominant_hz > MIN_RINGING_HZ:
            self.history.push(dominant_hz)
        else:
            self.history.push(0.0)

        suggestion = None
        if self.history.is_full:
            ringing = self.history.as_array()
            ringing = ringing[ringing > 0.0]
            if ringing.shape[0] >= MIN_RINGING_FRAMES and float(np.std(ringing)) < MAX_SPREAD_HZ:
                self.hold = HOLD_FRAMES
                self.ringing_frequency = float(ringing.mean())
                suggestion = NotchSuggestion(frequency=self.ringing_frequency, note=hz_to_note(self.ringing_frequency))

        risk = False
        if self.hold > 0:
            risk = True
            self.hold -= 1

        new_event = risk and not self._was_risk
        self._was_risk = risk
        if new_event:
            logger.debug("[FEEDBACK] Ringing at %.1f Hz", self.ringing_frequency)

        return FeedbackResult(
            is_feedback_risk=risk,
            ringing_frequency=self.ringing_frequency,
            notch_suggestion=suggestion,
            dominant_frequency=dominant_hz,
            dominant_db=peak_db,
            new_event=new_event,
        )
