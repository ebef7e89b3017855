"""Session-level summary folded from per-frame results.

Not an analyzer: it only reads ``AnalysisResult`` values. Time is taken
from frame timestamps, so offline runs report the duration of the audio
rather than of the wall clock.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .engine import AnalysisResult


@dataclass
class SessionAggregate:
    started: bool = False
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    peak_dbfs: float = float("-inf")
    true_peak_dbtp: float = float("-inf")
    total_clip_events: int = 0
    total_feedback_events: int = 0
    dominant_key: Optional[str] = None
    dominant_bpm: Optional[int] = None
    frames: int = 0
    _lufs_sum: float = field(default=0.0, repr=False)
    _lufs_count: int = field(default=0, repr=False)
    _was_clipping: bool = field(default=False, repr=False)
    _was_feedback: bool = field(default=False, repr=False)

    def reset(self) -> None:
        self.__init__()

    def start(self) -> None:
        self.reset()
        self.started = True

    def stop(self) -> None:
        self.started = False

    def update(self, result: AnalysisResult) -> None:
        if not self.started:
            return
        if self.start_time is None:
            self.start_time = result.timestamp
        self.end_time = result.timestamp
        self.frames += 1

        if result.clipping is not None:
            self.peak_dbfs = max(self.peak_dbfs, result.clipping.peak_db)
            # rising edges as seen by this session, not by the detector
            if result.clipping.is_clipping and not self._was_clipping:
                self.total_clip_events += 1
            self._was_clipping = result.clipping.is_clipping
        if result.true_peak is not None:
            self.true_peak_dbtp = max(self.true_peak_dbtp, result.true_peak.true_peak)
        if result.loudness is not None and math.isfinite(result.loudness.momentary):
            self._lufs_sum += result.loudness.momentary
            self._lufs_count += 1
        if result.feedback is not None:
            if result.feedback.is_feedback_risk and not self._was_feedback:
                self.total_feedback_events += 1
            self._was_feedback = result.feedback.is_feedback_risk
        if result.chroma is not None and result.chroma.key:
            self.dominant_key = result.chroma.key_string
        if result.onset is not None and result.onset.bpm > 0:
            self.dominant_bpm = result.onset.bpm

    @property
    def duration_seconds(self) -> float:
        if self.start_time is None or self.end_time is None:
            return 0.0
        return self.end_time - self.start_time

    @property
    def average_lufs(self) -> float:
        if self._lufs_count == 0:
            return float("-inf")
        return self._lufs_sum / self._lufs_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration_seconds": self.duration_seconds,
            "frames": self.frames,
            "peak_dbfs": self.peak_dbfs,
            "true_peak_dbtp": self.true_peak_dbtp,
            "average_lufs": self.average_lufs,
            "total_clip_events": self.total_clip_events,
            "total_feedback_events": self.total_feedback_events,
            "dominant_key": self.dominant_key,
            "dominant_bpm": self.dominant_bpm,
        }
