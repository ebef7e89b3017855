"""Frame-synchronous analysis engine.

``AnalysisEngine`` owns the configuration, every stateful analyzer and the
active-module selection. One ``process_frame`` call runs each enabled
module once, in catalog order, and returns an immutable ``AnalysisResult``.
Clip, onset and feedback detections are queued as ``EngineEvent`` values
and handed to subscribers once the frame is complete.
"""
from __future__ import annotations

import dataclasses
import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, Iterable, Iterator, List, Optional, Set, Tuple

import numpy as np

from .analyzers import (
    ChromaResult,
    ClippingDetector,
    ClippingResult,
    DcOffsetResult,
    DynamicsMeter,
    DynamicsResult,
    FeedbackDetector,
    FeedbackResult,
    InharmonicityResult,
    LoudnessMeter,
    LoudnessResult,
    MfccResult,
    OnsetDetector,
    OnsetResult,
    PhaseResult,
    PitchResult,
    Rt60Estimator,
    Rt60Result,
    RtaResult,
    SnrEstimator,
    SnrResult,
    SpectralResult,
    StandingWaveDetector,
    StandingWaveResult,
    ThdResult,
    TruePeakMeter,
    TruePeakResult,
    ZcrResult,
    analyze_rta,
    analyze_spectral_features,
    detect_pitch,
    estimate_key,
    extract_mfcc,
    measure_dc_offset,
    measure_inharmonicity,
    measure_phase,
    measure_thd,
    measure_zcr,
)
from .catalog import PROCESSING_ORDER, ModuleName, parse_modules
from .config import EngineConfig
from .dsp_core.weighting import a_weight_table
from .errors import ConfigurationError, FrameContractError
from .frames import AnalysisFrame, SpectrumTransform, frames_from_buffer

logger = logging.getLogger("livemeter.engine")

MAX_PENDING_EVENTS = 4096


class EventKind(str, Enum):
    CLIP = "clip"
    ONSET = "onset"
    FEEDBACK = "feedback"


@dataclass(frozen=True)
class EngineEvent:
    kind: EventKind
    frame_index: int
    timestamp: float
    payload: Any


EventObserver = Callable[[EngineEvent], None]


@dataclass(frozen=True)
class AnalysisResult:
    """Merged output of one frame. Disabled modules are ``None``."""

    frame_index: int
    timestamp: float
    sample_rate: int
    fft_size: int
    processing_ms: float = 0.0
    rta: Optional[RtaResult] = None
    spectral: Optional[SpectralResult] = None
    loudness: Optional[LoudnessResult] = None
    true_peak: Optional[TruePeakResult] = None
    dynamics: Optional[DynamicsResult] = None
    pitch: Optional[PitchResult] = None
    chroma: Optional[ChromaResult] = None
    mfcc: Optional[MfccResult] = None
    onset: Optional[OnsetResult] = None
    thd: Optional[ThdResult] = None
    snr: Optional[SnrResult] = None
    zcr: Optional[ZcrResult] = None
    dc_offset: Optional[DcOffsetResult] = None
    clipping: Optional[ClippingResult] = None
    feedback: Optional[FeedbackResult] = None
    phase: Optional[PhaseResult] = None
    rt60: Optional[Rt60Result] = None
    inharmonicity: Optional[InharmonicityResult] = None
    standing_waves: Optional[StandingWaveResult] = None

    def get(self, module: ModuleName | str) -> Any:
        return getattr(self, ModuleName(module).value)

    @property
    def modules(self) -> Tuple[ModuleName, ...]:
        return tuple(m for m in PROCESSING_ORDER if self.get(m) is not None)

    def as_dict(self, json_safe: bool = False) -> Dict[str, Any]:
        """Plain-dict view holding only the modules that ran.

        With ``json_safe`` non-finite floats (e.g. -inf LUFS on silence)
        become ``None``.
        """
        out: Dict[str, Any] = {
            "frame_index": self.frame_index,
            "timestamp": self.timestamp,
            "sample_rate": self.sample_rate,
            "fft_size": self.fft_size,
            "processing_ms": self.processing_ms,
        }
        for module in self.modules:
            out[module.value] = self.get(module)
        return to_plain(out, json_safe=json_safe)


def to_plain(value: Any, json_safe: bool = False) -> Any:
    """Recursively turn result dataclasses, tuples and numpy scalars into plain Python."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name), json_safe) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(k.value if isinstance(k, Enum) else k): to_plain(v, json_safe) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v, json_safe) for v in value]
    if isinstance(value, np.ndarray):
        return [to_plain(v, json_safe) for v in value.tolist()]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        value = float(value)
        if json_safe and not math.isfinite(value):
            return None
        return value
    return value


@dataclass
class ModuleStates:
    """Every piece of per-session analyzer state, built in one place."""

    loudness: LoudnessMeter
    true_peak: TruePeakMeter
    dynamics: DynamicsMeter
    onset: OnsetDetector
    snr: SnrEstimator
    clipping: ClippingDetector
    feedback: FeedbackDetector
    rt60: Rt60Estimator
    standing_waves: StandingWaveDetector

    @classmethod
    def build(cls, config: EngineConfig) -> "ModuleStates":
        sr, fft = config.sample_rate, config.fft_size
        return cls(
            loudness=LoudnessMeter(sr),
            true_peak=TruePeakMeter(),
            dynamics=DynamicsMeter(),
            onset=OnsetDetector(sr, fft),
            snr=SnrEstimator(),
            clipping=ClippingDetector(),
            feedback=FeedbackDetector(sr, fft),
            rt60=Rt60Estimator(),
            standing_waves=StandingWaveDetector(sr, fft),
        )


class AnalysisEngine:
    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()
        self.transform = SpectrumTransform(self.config)
        self._a_weight: Optional[np.ndarray] = None
        if self.config.use_a_weighting:
            self._a_weight = a_weight_table(self.config.sample_rate, self.config.fft_size)
        self.states = ModuleStates.build(self.config)
        self.frames_processed = 0
        self._pending: Deque[EngineEvent] = deque(maxlen=MAX_PENDING_EVENTS)
        self._observers: List[Tuple[EventObserver, Optional[Set[EventKind]]]] = []
        logger.info(
            "[ENGINE] Configured sr=%d fft=%d window=%s a_weighting=%s modules=%d",
            self.config.sample_rate,
            self.config.fft_size,
            self.config.window_type,
            self.config.use_a_weighting,
            len(self.config.active_modules),
        )

    # ------------------------------------------------------------------
    # Configuration

    @property
    def active_modules(self) -> frozenset[ModuleName]:
        return self.config.active_modules

    def _set_modules(self, modules: Iterable[ModuleName]) -> "AnalysisEngine":
        self.config = self.config.replace(active_modules=frozenset(modules))
        logger.debug("[ENGINE] Active modules: %s", sorted(m.value for m in self.config.active_modules))
        return self

    @staticmethod
    def _parse(names: Iterable[str | ModuleName]) -> frozenset[ModuleName]:
        try:
            return parse_modules(names)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown analysis module: {exc}") from exc

    def use(self, *names: str | ModuleName) -> "AnalysisEngine":
        """Replace the active set."""
        return self._set_modules(self._parse(names))

    def enable(self, *names: str | ModuleName) -> "AnalysisEngine":
        return self._set_modules(self.active_modules | self._parse(names))

    def disable(self, *names: str | ModuleName) -> "AnalysisEngine":
        """Skip modules from the next frame on. Their history is kept."""
        return self._set_modules(self.active_modules - self._parse(names))

    def is_enabled(self, module: ModuleName | str) -> bool:
        return ModuleName(module) in self.active_modules

    def set_window(self, window_type: str) -> "AnalysisEngine":
        """Swap the analysis window used by ``frames``; spectral smoothing restarts."""
        self.config = self.config.replace(window_type=window_type)
        self.transform = SpectrumTransform(self.config)
        logger.info("[ENGINE] Window set to %s", window_type)
        return self

    def set_a_weighting(self, enabled: bool) -> "AnalysisEngine":
        self.config = self.config.replace(use_a_weighting=bool(enabled))
        self._a_weight = a_weight_table(self.config.sample_rate, self.config.fft_size) if enabled else None
        logger.info("[ENGINE] A-weighting %s", "on" if enabled else "off")
        return self

    def reset(self) -> None:
        """Start a new session: all analyzer history and pending events are dropped."""
        self.states = ModuleStates.build(self.config)
        self.transform.reset()
        self.frames_processed = 0
        self._pending.clear()
        logger.info("[ENGINE] Session state reset")

    def frames(self, samples: np.ndarray) -> Iterator[AnalysisFrame]:
        """Cut a recording into frames through the engine's own window and smoothing."""
        return frames_from_buffer(samples, self.config.sample_rate, self.config, self.transform)

    # ------------------------------------------------------------------
    # Events

    def subscribe(self, observer: EventObserver, *kinds: EventKind | str) -> Callable[[], None]:
        """Register ``observer`` for ``kinds`` (all kinds when empty).

        Returns a callable that removes the subscription.
        """
        wanted = {EventKind(k) for k in kinds} or None
        entry = (observer, wanted)
        self._observers.append(entry)

        def unsubscribe() -> None:
            if entry in self._observers:
                self._observers.remove(entry)

        return unsubscribe

    def drain_events(self) -> List[EngineEvent]:
        events = list(self._pending)
        self._pending.clear()
        return events

    def _deliver(self, events: List[EngineEvent]) -> None:
        for event in events:
            self._pending.append(event)
            for observer, wanted in list(self._observers):
                if wanted is not None and event.kind not in wanted:
                    continue
                try:
                    observer(event)
                except Exception:
                    logger.exception("[ENGINE] Event observer failed on %s event", event.kind.value)

    @staticmethod
    def _collect_events(frame: AnalysisFrame, outputs: Dict[ModuleName, Any]) -> List[EngineEvent]:
        events: List[EngineEvent] = []
        clipping = outputs.get(ModuleName.CLIPPING)
        if clipping is not None and clipping.new_event:
            events.append(EngineEvent(EventKind.CLIP, frame.frame_index, frame.timestamp, clipping))
        onset = outputs.get(ModuleName.ONSET)
        if onset is not None and onset.is_onset:
            events.append(EngineEvent(EventKind.ONSET, frame.frame_index, frame.timestamp, onset))
        feedback = outputs.get(ModuleName.FEEDBACK)
        if feedback is not None and feedback.new_event:
            events.append(EngineEvent(EventKind.FEEDBACK, frame.frame_index, frame.timestamp, feedback))
        return events

    # ------------------------------------------------------------------
    # Processing

    def _validate(self, frame: AnalysisFrame) -> None:
        cfg = self.config
        if frame.sample_rate != cfg.sample_rate:
            raise FrameContractError(
                f"Frame sample rate {frame.sample_rate} does not match configured {cfg.sample_rate}"
            )
        if frame.fft_size != cfg.fft_size:
            raise FrameContractError(f"Frame FFT size {frame.fft_size} does not match configured {cfg.fft_size}")
        if frame.time_samples.shape != (cfg.fft_size,):
            raise FrameContractError(
                f"Expected {cfg.fft_size} time samples, got shape {frame.time_samples.shape}"
            )
        if frame.magnitude_db.shape != (cfg.n_bins,):
            raise FrameContractError(
                f"Expected {cfg.n_bins} magnitude bins, got shape {frame.magnitude_db.shape}"
            )
        if frame.channels is not None and frame.channels.shape != (2, cfg.fft_size):
            raise FrameContractError(
                f"Expected stereo channels of shape (2, {cfg.fft_size}), got {frame.channels.shape}"
            )

    def process_frame(self, frame: AnalysisFrame) -> AnalysisResult:
        """Run every enabled module on ``frame`` and merge their outputs.

        Raises FrameContractError when the frame does not match the
        configured sample rate / FFT size.
        """
        self._validate(frame)
        started = time.perf_counter()

        outputs: Dict[ModuleName, Any] = {}
        active = self.active_modules
        for module in PROCESSING_ORDER:
            if module in active:
                outputs[module] = _RUNNERS[module](self, frame, outputs)

        self.frames_processed += 1
        result = AnalysisResult(
            frame_index=frame.frame_index,
            timestamp=frame.timestamp,
            sample_rate=frame.sample_rate,
            fft_size=frame.fft_size,
            processing_ms=(time.perf_counter() - started) * 1000.0,
            **{m.value: r for m, r in outputs.items()},
        )

        events = self._collect_events(frame, outputs)
        if events:
            for event in events:
                logger.debug("[ENGINE] %s event at frame %d", event.kind.value, event.frame_index)
            self._deliver(events)
        return result


def _fundamental(outputs: Dict[ModuleName, Any]) -> Optional[float]:
    pitch = outputs.get(ModuleName.PITCH)
    return pitch.frequency if pitch is not None else None


_Runner = Callable[[AnalysisEngine, AnalysisFrame, Dict[ModuleName, Any]], Any]

_RUNNERS: Dict[ModuleName, _Runner] = {
    ModuleName.CLIPPING: lambda e, f, o: e.states.clipping.process(f.time_samples),
    ModuleName.DC_OFFSET: lambda e, f, o: measure_dc_offset(f.time_samples),
    ModuleName.ZCR: lambda e, f, o: measure_zcr(f.time_samples, f.sample_rate),
    ModuleName.DYNAMICS: lambda e, f, o: e.states.dynamics.process(f.time_samples),
    ModuleName.TRUE_PEAK: lambda e, f, o: e.states.true_peak.process(f.time_samples),
    ModuleName.LOUDNESS: lambda e, f, o: e.states.loudness.process(f.time_samples),
    ModuleName.RTA: lambda e, f, o: analyze_rta(
        f.magnitude_db, f.sample_rate, f.fft_size, e._a_weight, e.config.min_db, e.config.max_db
    ),
    ModuleName.SPECTRAL: lambda e, f, o: analyze_spectral_features(f.magnitude_db, f.sample_rate, f.fft_size),
    ModuleName.PITCH: lambda e, f, o: detect_pitch(f.time_samples, f.sample_rate),
    ModuleName.CHROMA: lambda e, f, o: estimate_key(f.magnitude_db, f.sample_rate, f.fft_size),
    ModuleName.MFCC: lambda e, f, o: extract_mfcc(f.magnitude_db, f.sample_rate, f.fft_size),
    ModuleName.ONSET: lambda e, f, o: e.states.onset.process(f.magnitude_db, f.timestamp),
    ModuleName.THD: lambda e, f, o: measure_thd(f.magnitude_db, f.sample_rate, f.fft_size, _fundamental(o)),
    ModuleName.SNR: lambda e, f, o: e.states.snr.process(f.magnitude_db),
    ModuleName.FEEDBACK: lambda e, f, o: e.states.feedback.process(f.magnitude_db),
    ModuleName.PHASE: lambda e, f, o: measure_phase(
        f.time_samples if f.channels is None else f.channels[0],
        None if f.channels is None else f.channels[1],
    ),
    ModuleName.RT60: lambda e, f, o: e.states.rt60.process(f.time_samples, f.timestamp),
    ModuleName.INHARMONICITY: lambda e, f, o: measure_inharmonicity(
        f.magnitude_db, f.sample_rate, f.fft_size, _fundamental(o)
    ),
    ModuleName.STANDING_WAVES: lambda e, f, o: e.states.standing_waves.process(f.magnitude_db),
}

_missing = set(ModuleName) - set(_RUNNERS)
if _missing or set(PROCESSING_ORDER) != set(ModuleName):
    raise RuntimeError(f"Engine dispatch does not cover the module catalog: {sorted(m.value for m in _missing)}")
