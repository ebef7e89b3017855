"""Room acoustics: RT60 decay timing and low-frequency standing waves."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..dsp_core.buffers import CircularBuffer
from ..dsp_core.conversions import to_db

logger = logging.getLogger("livemeter.analyzers.room")

RT60_HISTORY = 500
RT60_MIN_HISTORY = 50
RT60_WINDOW = 10
DECAY_START_FLOOR_DB = -20.0
DECAY_TRIGGER_DB = 15.0
DECAY_SPAN_DB = 60.0

MODE_MIN_HZ = 20.0
MODE_MAX_HZ = 300.0
MODE_HISTORY = 30
MODE_MIN_SNAPSHOTS = 10
MODE_THRESHOLD_DB = 8.0
MAX_MODES = 5


@dataclass(frozen=True)
class Rt60Result:
    rt60: Optional[float]
    is_decaying: bool
    current_rms_db: float

    @property
    def rt60_string(self) -> str:
        return f"{self.rt60:.2f}s" if self.rt60 else "Measuring..."


class Rt60Estimator:
    """Interrupted-noise RT60.

    A decay starts when the last 10 frames sit at least 15 dB under frames
    40-50 back while those were above -20 dBFS. RT60 is the time from the
    start of that older window until the level is 60 dB down.
    """

    def __init__(self) -> None:
        self.levels: CircularBuffer[float] = CircularBuffer(RT60_HISTORY)
        self.times: CircularBuffer[float] = CircularBuffer(RT60_HISTORY)
        self.decaying = False
        self.decay_start_db = 0.0
        self.decay_start_time = 0.0
        self.rt60: Optional[float] = None

    def process(self, samples: np.ndarray, timestamp: float) -> Rt60Result:
        x = np.asarray(samples, dtype=np.float64)
        level = to_db(float(np.sqrt(np.mean(x * x)))) if x.size else float("-inf")
        self.levels.push(level)
        self.times.push(float(timestamp))

        if len(self.levels) > RT60_MIN_HISTORY:
            levels = self.levels.as_array()
            recent = float(np.mean(levels[-RT60_WINDOW:]))
            older = float(np.mean(levels[-RT60_MIN_HISTORY : -RT60_MIN_HISTORY + RT60_WINDOW]))
            if not self.decaying and older > DECAY_START_FLOOR_DB and recent < older - DECAY_TRIGGER_DB:
                self.decaying = True
                self.decay_start_db = older
                self.decay_start_time = self.times.values()[-RT60_MIN_HISTORY]
                logger.debug("[RT60] Decay detected from %.1f dB", older)
            if self.decaying and level < self.decay_start_db - DECAY_SPAN_DB:
                self.rt60 = float(timestamp) - self.decay_start_time
                self.decaying = False
                logger.debug("[RT60] Measured %.2f s", self.rt60)

        return Rt60Result(rt60=self.rt60, is_decaying=self.decaying, current_rms_db=level)


@dataclass(frozen=True)
class RoomMode:
    freq: float
    db: float


@dataclass(frozen=True)
class StandingWaveResult:
    modes: Tuple[RoomMode, ...]
    detected: bool

    @property
    def worst_mode(self) -> Optional[RoomMode]:
        return self.modes[0] if self.modes else None


NO_MODES = StandingWaveResult(modes=(), detected=False)


class StandingWaveDetector:
    """Averages 20-300 Hz levels over 30 frames and flags resonant buckets."""

    def __init__(self, sample_rate: int, fft_size: int) -> None:
        self.bin_hz = sample_rate / fft_size
        self.first_bin = int(math.floor(MODE_MIN_HZ / self.bin_hz))
        self.last_bin = int(math.ceil(MODE_MAX_HZ / self.bin_hz))
        self.snapshots: CircularBuffer[Tuple[np.ndarray, np.ndarray]] = CircularBuffer(MODE_HISTORY)

    def process(self, magnitude_db: np.ndarray) -> StandingWaveResult:
        db = np.asarray(magnitude_db, dtype=np.float64)
        hi = min(self.last_bin, db.shape[0] - 1)
        bins = np.arange(self.first_bin, hi + 1)
        self.snapshots.push((bins * self.bin_hz, db[self.first_bin : hi + 1].copy()))
        if len(self.snapshots) < MODE_MIN_SNAPSHOTS:
            return NO_MODES

        buckets: Dict[int, List[float]] = defaultdict(list)
        for freqs, levels in self.snapshots:
            for freq, level in zip(freqs, levels):
                buckets[int(math.floor(freq + 0.5))].append(float(level))
        if not buckets:
            return NO_MODES

        averaged = [RoomMode(freq=float(f), db=float(np.mean(v))) for f, v in buckets.items()]
        overall = float(np.mean([m.db for m in averaged]))
        modes = sorted((m for m in averaged if m.db > overall + MODE_THRESHOLD_DB), key=lambda m: m.db, reverse=True)
        modes = tuple(modes[:MAX_MODES])
        return StandingWaveResult(modes=modes, detected=bool(modes))
