"""Engine configuration.

A single validated, immutable settings object. Every value the analyzers
depend on (sample rate, FFT size, dB range) is fixed here for the length
of a session; invalid settings are rejected once, at construction time,
with a ``ConfigurationError``.
"""
from __future__ import annotations

import os
from typing import Any, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .catalog import ALL_MODULES, ModuleName
from .dsp_core.windows import WindowType
from .errors import ConfigurationError

MIN_FFT_SIZE = 32
MAX_FFT_SIZE = 32768


class EngineConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    sample_rate: int = 48000
    fft_size: int = 4096
    # Applied by the transform adapter only; the analyzers never read it.
    smoothing_time_constant: float = 0.8
    min_db: float = -100.0
    max_db: float = 0.0
    window_type: WindowType = "hann"
    use_a_weighting: bool = False
    active_modules: FrozenSet[ModuleName] = Field(default_factory=lambda: ALL_MODULES)

    def __init__(self, **values: Any) -> None:
        try:
            super().__init__(**values)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc

    @field_validator("sample_rate")
    @classmethod
    def _positive_rate(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"sample_rate must be positive, got {value}")
        return value

    @field_validator("fft_size")
    @classmethod
    def _power_of_two(cls, value: int) -> int:
        if value < MIN_FFT_SIZE or value > MAX_FFT_SIZE or value & (value - 1):
            raise ValueError(
                f"fft_size must be a power of two between {MIN_FFT_SIZE} and {MAX_FFT_SIZE}, got {value}"
            )
        return value

    @field_validator("smoothing_time_constant")
    @classmethod
    def _smoothing_range(cls, value: float) -> float:
        if not 0.0 <= value < 1.0:
            raise ValueError(f"smoothing_time_constant must be in [0, 1), got {value}")
        return value

    @model_validator(mode="after")
    def _db_range(self) -> "EngineConfig":
        if self.min_db >= self.max_db:
            raise ValueError(f"min_db ({self.min_db}) must be below max_db ({self.max_db})")
        return self

    @classmethod
    def create(cls, **values: Any) -> "EngineConfig":
        """Keyword constructor; invalid values raise ConfigurationError."""
        return cls(**values)

    @classmethod
    def from_env(cls, sample_rate: Optional[int] = None, **overrides: Any) -> "EngineConfig":
        """Defaults from LIVEMETER_* environment variables, then ``overrides``."""
        values: dict[str, Any] = {}
        if sample_rate is not None:
            values["sample_rate"] = sample_rate

        fft_size = os.getenv("LIVEMETER_FFT_SIZE")
        if fft_size:
            values["fft_size"] = fft_size
        window = os.getenv("LIVEMETER_WINDOW")
        if window:
            values["window_type"] = window.strip().lower()
        a_weighting = os.getenv("LIVEMETER_A_WEIGHTING")
        if a_weighting:
            values["use_a_weighting"] = a_weighting.strip().lower() in {"1", "true", "yes", "on"}
        min_db = os.getenv("LIVEMETER_MIN_DB")
        if min_db:
            values["min_db"] = min_db
        max_db = os.getenv("LIVEMETER_MAX_DB")
        if max_db:
            values["max_db"] = max_db

        values.update(overrides)
        return cls.create(**values)

    def replace(self, **changes: Any) -> "EngineConfig":
        return EngineConfig.create(**{**self.model_dump(), **changes})

    @property
    def n_bins(self) -> int:
        return self.fft_size // 2

    @property
    def bin_hz(self) -> float:
        return self.sample_rate / self.fft_size
