"""Signal-to-noise estimate against a calibrated noise floor."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..dsp_core.conversions import power_to_db

logger = logging.getLogger("livemeter.analyzers.noise")

CALIBRATION_FRAMES = 30


@dataclass(frozen=True)
class SnrResult:
    snr: Optional[float]
    calibrating: bool
    noise_floor: Optional[float]
    signal_level: Optional[float]

    @property
    def snr_string(self) -> str:
        return "Calibrating..." if self.snr is None else f"{self.snr:.1f} dB"


CALIBRATING = SnrResult(snr=None, calibrating=True, noise_floor=None, signal_level=None)


class SnrEstimator:
    """The first 30 frames (about a second of room tone) set the floor."""

    def __init__(self, calibration_frames: int = CALIBRATION_FRAMES) -> None:
        self.calibration_frames = calibration_frames
        self._calibration: List[float] = []
        self.noise_power: Optional[float] = None

    @property
    def calibrating(self) -> bool:
        return self.noise_power is None

    def process(self, magnitude_db: np.ndarray) -> SnrResult:
        power = float(np.mean(10.0 ** (np.asarray(magnitude_db, dtype=np.float64) / 10.0)))

        if self.noise_power is None:
            if len(self._calibration) < self.calibration_frames:
                self._calibration.append(power)
                return CALIBRATING
            self.noise_power = float(np.mean(self._calibration))
            logger.info("[SNR] Calibrated noise floor at %.1f dB", power_to_db(self.noise_power))

        ratio = power / self.noise_power if self.noise_power > 0.0 else 1.0
        snr = 10.0 * math.log10(max(ratio, 1.0))
        return SnrResult(
            snr=snr,
            calibrating=False,
            noise_floor=power_to_db(self.noise_power),
            signal_level=power_to_db(power),
        )
