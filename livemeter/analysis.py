"""Offline entry points over a whole recording.

- ``analyze_buffer``: static whole-buffer measurements plus BS.1770
  integrated loudness from pyloudnorm
- ``analyze_stream``: pushes the recording through the frame engine the
  way a live capture loop would and returns the session summary
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pyloudnorm as pyln

from .analyzers import (
    ClippingDetector,
    ClippingResult,
    DcOffsetResult,
    DynamicsMeter,
    DynamicsResult,
    ZcrResult,
    measure_dc_offset,
    measure_zcr,
)
from .config import EngineConfig
from .engine import AnalysisEngine, AnalysisResult, EngineEvent, to_plain
from .errors import ConfigurationError
from .frames import split_channels
from .session import SessionAggregate

logger = logging.getLogger("livemeter.analysis")


@lru_cache(maxsize=64)
def _meter_for_sr(sr: int) -> pyln.Meter:
    return pyln.Meter(sr)


def integrated_loudness(mono: np.ndarray, sr: int) -> float:
    """BS.1770-4 gated loudness of a whole clip; -inf when it cannot be measured."""

    meter = _meter_for_sr(int(sr))
    try:
        with np.errstate(divide="ignore"):
            return float(meter.integrated_loudness(np.asarray(mono, dtype=np.float64)))
    except ValueError as exc:
        # pyloudnorm refuses clips shorter than one 400 ms gating block
        logger.warning("[ANALYSIS] Integrated loudness unavailable: %s", exc)
        return float("-inf")


@dataclass(frozen=True)
class BufferAnalysis:
    sample_rate: int
    duration: float
    integrated_lufs: float
    dynamics: DynamicsResult
    zcr: ZcrResult
    dc_offset: DcOffsetResult
    clipping: ClippingResult

    def as_dict(self, json_safe: bool = False) -> Dict[str, Any]:
        return to_plain(self, json_safe=json_safe)


def analyze_buffer(samples: np.ndarray, sr: int) -> BufferAnalysis:
    """Treat the whole recording as a single frame.

    Stereo input is downmixed to mono first.
    """

    if sr <= 0:
        raise ConfigurationError(f"sample rate must be positive, got {sr}")
    mono, _ = split_channels(samples)

    result = BufferAnalysis(
        sample_rate=int(sr),
        duration=mono.shape[0] / float(sr),
        integrated_lufs=integrated_loudness(mono, sr),
        dynamics=DynamicsMeter().process(mono),
        zcr=measure_zcr(mono, sr),
        dc_offset=measure_dc_offset(mono),
        clipping=ClippingDetector().process(mono),
    )
    logger.info(
        "[ANALYSIS] Buffer %.2fs @ %d Hz: LUFS=%.1f peak=%.1f dBFS",
        result.duration,
        sr,
        result.integrated_lufs,
        result.dynamics.peak_db,
    )
    return result


@dataclass(frozen=True)
class StreamAnalysis:
    summary: Dict[str, Any]
    last_result: Optional[AnalysisResult]
    events: List[EngineEvent]
    frames: int

    def as_dict(self, json_safe: bool = False) -> Dict[str, Any]:
        return {
            "summary": to_plain(self.summary, json_safe=json_safe),
            "last_result": self.last_result.as_dict(json_safe=json_safe) if self.last_result else None,
            "events": [
                {
                    "kind": e.kind.value,
                    "frame_index": e.frame_index,
                    "timestamp": e.timestamp,
                    "payload": to_plain(e.payload, json_safe=json_safe),
                }
                for e in self.events
            ],
            "frames": self.frames,
        }


def analyze_stream(
    samples: np.ndarray,
    sr: int,
    config: Optional[EngineConfig] = None,
    modules: Optional[Iterable[str]] = None,
) -> StreamAnalysis:
    """Run the engine frame by frame over a recording."""

    config = (config or EngineConfig()).replace(sample_rate=int(sr))
    engine = AnalysisEngine(config)
    if modules is not None:
        engine.use(*modules)

    session = SessionAggregate()
    session.start()
    events: List[EngineEvent] = []
    last: Optional[AnalysisResult] = None
    for frame in engine.frames(samples):
        last = engine.process_frame(frame)
        session.update(last)
        events.extend(engine.drain_events())
    session.stop()

    if last is None:
        logger.warning("[ANALYSIS] Recording shorter than one %d-sample frame; nothing analysed", config.fft_size)
    else:
        logger.info(
            "[ANALYSIS] Streamed %d frames: %d clip / %d onset / %d feedback events",
            engine.frames_processed,
            sum(e.kind.value == "clip" for e in events),
            sum(e.kind.value == "onset" for e in events),
            sum(e.kind.value == "feedback" for e in events),
        )
    return StreamAnalysis(summary=session.to_dict(), last_result=last, events=events, frames=engine.frames_processed)
