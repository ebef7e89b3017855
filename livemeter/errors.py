"""Exception types raised by the engine.

Analyzers never raise on degenerate audio; these cover configuration
mistakes and frame-contract violations, both of which are programming
errors that should stop a session rather than be retried.
"""


class LivemeterError(Exception):
    """Base class for engine errors."""


class ConfigurationError(LivemeterError, ValueError):
    """Invalid FFT size, window type, dB range or module name."""


class FrameContractError(LivemeterError, ValueError):
    """A frame does not match the configured sample rate / FFT size."""
