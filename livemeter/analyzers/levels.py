"""Time-domain level and integrity analyzers.

- true peak (4x linear-interpolated, all-time hold)
- dynamics (RMS / peak / crest, rolling DR score)
- zero-crossing rate, DC offset
- clipping detector with LED hold
- stereo phase correlation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

import numpy as np

from ..dsp_core.buffers import CircularBuffer
from ..dsp_core.conversions import clamp, to_db

TRUE_PEAK_CEILING_DBTP = -1.0
DYNAMICS_HISTORY = 300
DR_MIN_HISTORY = 10
DR_REFERENCE_DB = 20.0
CLIP_SAMPLE_LEVEL = 0.9999
CLIP_THRESHOLD_DBFS = -0.5
CLIP_HOLD_FRAMES = 60
DC_WARNING = 0.005
DC_CRITICAL = 0.02
ZCR_MIXED_HZ = 1000.0
ZCR_NOISY_HZ = 3000.0

ZcrType = Literal["tonal", "mixed", "noisy"]
DcSeverity = Literal["ok", "warning", "critical"]

# Interpolation weights of b for each consecutive pair (a, b). Each end point
# is the next pair's start, except the frame's last sample.
_TRUE_PEAK_FRACTIONS = np.array([0.0, 0.25, 0.5, 0.75])


@dataclass(frozen=True)
class TruePeakResult:
    true_peak: float
    true_peak_hold: float
    is_over: bool


class TruePeakMeter:
    """Inter-sample peak estimate with a monotonic hold.

    Linear interpolation under-reads a band-limited reconstruction; the
    figure is an approximation of the BS.1770 true-peak measurement.
    """

    def __init__(self) -> None:
        self.hold = float("-inf")

    def process(self, samples: np.ndarray) -> TruePeakResult:
        x = np.asarray(samples, dtype=np.float64)
        if x.size >= 2:
            a = x[:-1, None]
            b = x[1:, None]
            peak = float(np.max(np.abs(a + (b - a) * _TRUE_PEAK_FRACTIONS)))
            peak = max(peak, abs(float(x[-1])))
        elif x.size == 1:
            peak = abs(float(x[0]))
        else:
            peak = 0.0
        db = to_db(peak)
        if db > self.hold:
            self.hold = db
        return TruePeakResult(true_peak=db, true_peak_hold=self.hold, is_over=self.hold > TRUE_PEAK_CEILING_DBTP)


@dataclass(frozen=True)
class DynamicsResult:
    rms_db: float
    peak_db: float
    crest_factor: float
    dynamic_range: float
    compression_amount: float


class DynamicsMeter:
    def __init__(self) -> None:
        self.rms_history: CircularBuffer[float] = CircularBuffer(DYNAMICS_HISTORY)
        self.peak_history: CircularBuffer[float] = CircularBuffer(DYNAMICS_HISTORY)

    def _dynamic_range(self) -> float:
        if len(self.rms_history) <= DR_MIN_HISTORY:
            return 0.0
        rms = self.rms_history.as_array()
        peak = self.peak_history.as_array()
        # silent frames are -inf in both histories; leave them out
        rms = rms[np.isfinite(rms)]
        peak = peak[np.isfinite(peak)]
        if rms.size == 0 or peak.size == 0:
            return 0.0
        return float(peak.mean() - rms.mean())

    def process(self, samples: np.ndarray) -> DynamicsResult:
        x = np.asarray(samples, dtype=np.float64)
        rms = float(np.sqrt(np.mean(x * x))) if x.size else 0.0
        peak = float(np.max(np.abs(x))) if x.size else 0.0
        rms_db = to_db(rms)
        peak_db = to_db(peak)
        crest = abs(peak_db - rms_db) if rms > 0.0 else 0.0

        self.rms_history.push(rms_db)
        self.peak_history.push(peak_db)
        dr = abs(self._dynamic_range())

        return DynamicsResult(
            rms_db=rms_db,
            peak_db=peak_db,
            crest_factor=crest,
            dynamic_range=dr,
            compression_amount=clamp(1.0 - dr / DR_REFERENCE_DB, 0.0, 1.0),
        )


@dataclass(frozen=True)
class ZcrResult:
    zcr: float
    type: ZcrType


def measure_zcr(samples: np.ndarray, sample_rate: int) -> ZcrResult:
    """Sign changes per second halved, so a pure tone reads as its frequency."""

    x = np.asarray(samples, dtype=np.float64)
    if x.size < 2:
        return ZcrResult(zcr=0.0, type="tonal")
    positive = x >= 0.0
    crossings = int(np.count_nonzero(positive[1:] != positive[:-1]))
    zcr = crossings / (2.0 * (x.size / float(sample_rate)))
    if zcr > ZCR_NOISY_HZ:
        kind: ZcrType = "noisy"
    elif zcr > ZCR_MIXED_HZ:
        kind = "mixed"
    else:
        kind = "tonal"
    return ZcrResult(zcr=zcr, type=kind)


@dataclass(frozen=True)
class DcOffsetResult:
    dc_offset: float
    dc_offset_db: float
    has_issue: bool
    severity: DcSeverity


def measure_dc_offset(samples: np.ndarray) -> DcOffsetResult:
    x = np.asarray(samples, dtype=np.float64)
    offset = float(x.mean()) if x.size else 0.0
    level = abs(offset)
    if level >= DC_CRITICAL:
        severity: DcSeverity = "critical"
    elif level >= DC_WARNING:
        severity = "warning"
    else:
        severity = "ok"
    return DcOffsetResult(
        dc_offset=offset,
        dc_offset_db=to_db(level),
        has_issue=level >= DC_WARNING,
        severity=severity,
    )


@dataclass(frozen=True)
class ClippingResult:
    peak_db: float
    all_time_peak: float
    is_clipping: bool
    clip_led_active: bool
    clipped_samples: int
    clip_ratio: float
    total_clip_events: int
    new_event: bool


class ClippingDetector:
    """Per-frame clip flag, 60-frame LED hold and a lifetime event counter.

    A run of consecutive clipping frames counts as one event.
    """

    def __init__(self) -> None:
        self.hold = 0
        self.all_time_peak = float("-inf")
        self.total_events = 0
        self._was_clipping = False

    def process(self, samples: np.ndarray) -> ClippingResult:
        x = np.abs(np.asarray(samples, dtype=np.float64))
        peak = float(x.max()) if x.size else 0.0
        clipped = int(np.count_nonzero(x >= CLIP_SAMPLE_LEVEL))
        peak_db = to_db(peak)
        if peak_db > self.all_time_peak:
            self.all_time_peak = peak_db

        clipping = peak_db > CLIP_THRESHOLD_DBFS
        new_event = clipping and not self._was_clipping
        if clipping:
            self.hold = CLIP_HOLD_FRAMES
            if new_event:
                self.total_events += 1
        elif self.hold > 0:
            self.hold -= 1
        self._was_clipping = clipping

        return ClippingResult(
            peak_db=peak_db,
            all_time_peak=self.all_time_peak,
            is_clipping=clipping,
            clip_led_active=self.hold > 0,
            clipped_samples=clipped,
            clip_ratio=clipped / x.size if x.size else 0.0,
            total_clip_events=self.total_events,
            new_event=new_event,
        )


@dataclass(frozen=True)
class PhaseResult:
    correlation: float
    mono_compatible: bool
    phase_string: str
    width: float


MONO_PHASE = PhaseResult(correlation=1.0, mono_compatible=True, phase_string="Mono", width=0.0)


def measure_phase(left: np.ndarray, right: Optional[np.ndarray] = None) -> PhaseResult:
    """Zero-lag normalised cross-correlation of the two channels."""

    if right is None:
        return MONO_PHASE
    l = np.asarray(left, dtype=np.float64)
    r = np.asarray(right, dtype=np.float64)
    denom = float(np.sqrt(np.dot(l, l) * np.dot(r, r)))
    corr = clamp(float(np.dot(l, r)) / denom, -1.0, 1.0) if denom > 0.0 else 0.0
    if corr > 0.8:
        label = "Mono-ish"
    elif corr > 0.0:
        label = "Wide"
    else:
        label = "Out-of-Phase!"
    return PhaseResult(
        correlation=corr,
        mono_compatible=corr > -0.5,
        phase_string=label,
        width=clamp(1.0 - corr, 0.0, 2.0),
    )
