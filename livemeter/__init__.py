"""Real-time audio measurement engine.

Feed ``AnalysisFrame`` values (time samples plus their dBFS magnitude
spectrum) to an ``AnalysisEngine`` and read back one ``AnalysisResult`` per
frame: loudness, pitch, key, timbre, distortion, room acoustics and signal
integrity.
"""
from .analysis import analyze_buffer, analyze_stream
from .catalog import ALL_MODULES, PROCESSING_ORDER, ModuleName
from .config import EngineConfig
from .engine import AnalysisEngine, AnalysisResult, EngineEvent, EventKind
from .errors import ConfigurationError, FrameContractError, LivemeterError
from .frames import AnalysisFrame, SpectrumTransform, frames_from_buffer
from .session import SessionAggregate

__version__ = "0.1.0"

__all__ = [
    "analyze_buffer",
    "analyze_stream",
    "ALL_MODULES",
    "PROCESSING_ORDER",
    "ModuleName",
    "EngineConfig",
    "AnalysisEngine",
    "AnalysisResult",
    "EngineEvent",
    "EventKind",
    "ConfigurationError",
    "FrameContractError",
    "LivemeterError",
    "AnalysisFrame",
    "SpectrumTransform",
    "frames_from_buffer",
    "SessionAggregate",
]
