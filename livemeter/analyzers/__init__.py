"""The 19 analyzers behind the engine catalog.

Stateless analyzers are plain functions over one frame; analyzers that keep
history are classes with a ``process`` method and no other side effects.
"""

from .feedback import FeedbackDetector, FeedbackResult, NotchSuggestion
from .harmonics import InharmonicityResult, ThdResult, measure_inharmonicity, measure_thd
from .levels import (
    ClippingDetector,
    ClippingResult,
    DcOffsetResult,
    DynamicsMeter,
    DynamicsResult,
    PhaseResult,
    TruePeakMeter,
    TruePeakResult,
    ZcrResult,
    measure_dc_offset,
    measure_phase,
    measure_zcr,
)
from .loudness import LoudnessMeter, LoudnessResult
from .noise import SnrEstimator, SnrResult
from .onset import OnsetDetector, OnsetResult
from .pitch import PitchResult, detect_pitch
from .room import Rt60Estimator, Rt60Result, StandingWaveDetector, StandingWaveResult
from .spectral import RtaResult, SpectralResult, analyze_rta, analyze_spectral_features
from .tonal import ChromaResult, MfccResult, estimate_key, extract_mfcc

__all__ = [
    "FeedbackDetector",
    "FeedbackResult",
    "NotchSuggestion",
    "InharmonicityResult",
    "ThdResult",
    "measure_inharmonicity",
    "measure_thd",
    "ClippingDetector",
    "ClippingResult",
    "DcOffsetResult",
    "DynamicsMeter",
    "DynamicsResult",
    "PhaseResult",
    "TruePeakMeter",
    "TruePeakResult",
    "ZcrResult",
    "measure_dc_offset",
    "measure_phase",
    "measure_zcr",
    "LoudnessMeter",
    "LoudnessResult",
    "SnrEstimator",
    "SnrResult",
    "OnsetDetector",
    "OnsetResult",
    "PitchResult",
    "detect_pitch",
    "Rt60Estimator",
    "Rt60Result",
    "StandingWaveDetector",
    "StandingWaveResult",
    "RtaResult",
    "SpectralResult",
    "analyze_rta",
    "analyze_spectral_features",
    "ChromaResult",
    "MfccResult",
    "estimate_key",
    "extract_mfcc",
]
