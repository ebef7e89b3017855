"""The fixed catalog of analysis modules.

The engine dispatches over this enum only; adding a module means adding
a member here and a runner in ``engine.py`` (checked at import time).
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable, Tuple


class ModuleName(str, Enum):
    RTA = "rta"
    SPECTRAL = "spectral"
    LOUDNESS = "loudness"
    TRUE_PEAK = "true_peak"
    DYNAMICS = "dynamics"
    PITCH = "pitch"
    CHROMA = "chroma"
    MFCC = "mfcc"
    ONSET = "onset"
    THD = "thd"
    SNR = "snr"
    ZCR = "zcr"
    DC_OFFSET = "dc_offset"
    CLIPPING = "clipping"
    FEEDBACK = "feedback"
    PHASE = "phase"
    RT60 = "rt60"
    INHARMONICITY = "inharmonicity"
    STANDING_WAVES = "standing_waves"


# Processing order. Pitch precedes the harmonic analyzers that consume it.
PROCESSING_ORDER: Tuple[ModuleName, ...] = (
    ModuleName.CLIPPING,
    ModuleName.DC_OFFSET,
    ModuleName.ZCR,
    ModuleName.DYNAMICS,
    ModuleName.TRUE_PEAK,
    ModuleName.LOUDNESS,
    ModuleName.RTA,
    ModuleName.SPECTRAL,
    ModuleName.PITCH,
    ModuleName.CHROMA,
    ModuleName.MFCC,
    ModuleName.ONSET,
    ModuleName.THD,
    ModuleName.SNR,
    ModuleName.FEEDBACK,
    ModuleName.PHASE,
    ModuleName.RT60,
    ModuleName.INHARMONICITY,
    ModuleName.STANDING_WAVES,
)

ALL_MODULES: frozenset[ModuleName] = frozenset(ModuleName)


def parse_modules(names: Iterable[str | ModuleName]) -> frozenset[ModuleName]:
    """Map names (enum members or their string values) onto the catalog.

    Raises ValueError for names outside the catalog.
    """
    return frozenset(ModuleName(n) for n in names)
