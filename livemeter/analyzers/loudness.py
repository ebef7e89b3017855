"""Streaming K-weighted loudness meter (ITU-R BS.1770 / EBU R128 style).

Every frame is one measurement block. Momentary loudness averages the last
4 blocks, short-term the last 30. Integrated loudness counts every block
whose momentary loudness passes the absolute gate into a fixed 0.1 LU
histogram (count and energy per bin) and applies the relative gate over
the bins, so cost and memory stay constant however long the session
runs. LRA is the 10th-95th percentile spread of the short-term window.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from ..dsp_core.biquad import k_weighting_filters
from ..dsp_core.buffers import CircularBuffer

logger = logging.getLogger("livemeter.analyzers.loudness")

MOMENTARY_BLOCKS = 4
SHORT_TERM_BLOCKS = 30
ABSOLUTE_GATE_LUFS = -70.0
RELATIVE_GATE_LU = 10.0
LRA_LOW_PERCENTILE = 0.10
LRA_HIGH_PERCENTILE = 0.95
HISTOGRAM_FLOOR_LUFS = -130.0
HISTOGRAM_CEILING_LUFS = 10.0
HISTOGRAM_STEP_LU = 0.1
_HISTOGRAM_BINS = int(round((HISTOGRAM_CEILING_LUFS - HISTOGRAM_FLOOR_LUFS) / HISTOGRAM_STEP_LU))


def loudness_from_ms(mean_square: float) -> float:
    """-0.691 + 10*log10(ms); non-positive energy is -inf."""
    if not mean_square > 0.0:
        return float("-inf")
    return -0.691 + 10.0 * math.log10(mean_square)


@dataclass(frozen=True)
class LoudnessResult:
    momentary: float
    short_term: float
    integrated: float
    lra: float


class LoudnessMeter:
    def __init__(self, sample_rate: int) -> None:
        self.sample_rate = int(sample_rate)
        self.shelf, self.highpass = k_weighting_filters(self.sample_rate)
        self.momentary_blocks: CircularBuffer[float] = CircularBuffer(MOMENTARY_BLOCKS)
        self.short_term_blocks: CircularBuffer[float] = CircularBuffer(SHORT_TERM_BLOCKS)
        # bin 0 takes blocks below the floor, silent ones included
        self.gate_counts = np.zeros(_HISTOGRAM_BINS + 1, dtype=np.int64)
        self.gate_energy = np.zeros(_HISTOGRAM_BINS + 1, dtype=np.float64)
        self.integrated = float("-inf")

    def _block_mean_square(self, samples: np.ndarray) -> float:
        x = np.asarray(samples, dtype=np.float64)
        if x.size == 0:
            return 0.0
        weighted = self.highpass.process_block(self.shelf.process_block(x))
        return float(np.mean(weighted * weighted))

    @property
    def gated_block_count(self) -> int:
        return int(self.gate_counts.sum())

    def _add_gated_block(self, ms: float) -> None:
        level = loudness_from_ms(ms)
        if level < HISTOGRAM_FLOOR_LUFS:
            index = 0
        else:
            index = min(_HISTOGRAM_BINS, 1 + int((level - HISTOGRAM_FLOOR_LUFS) / HISTOGRAM_STEP_LU))
        self.gate_counts[index] += 1
        self.gate_energy[index] += ms

    def _update_integrated(self) -> None:
        counts = self.gate_counts
        relative_gate = loudness_from_ms(float(self.gate_energy.sum() / counts.sum())) - RELATIVE_GATE_LU
        filled = counts > 0
        bin_ms = np.zeros_like(self.gate_energy)
        bin_ms[filled] = self.gate_energy[filled] / counts[filled]
        with np.errstate(divide="ignore"):
            bin_levels = -0.691 + 10.0 * np.log10(bin_ms)
        kept = filled & (bin_ms > 0.0) & (bin_levels > relative_gate)
        if kept.any():
            self.integrated = loudness_from_ms(float(self.gate_energy[kept].sum() / counts[kept].sum()))

    def _loudness_range(self) -> float:
        blocks = self.short_term_blocks.as_array()
        blocks = blocks[blocks > 0.0]
        if blocks.size == 0:
            return 0.0
        levels = np.sort(-0.691 + 10.0 * np.log10(blocks))
        levels = levels[levels > ABSOLUTE_GATE_LUFS]
        n = levels.shape[0]
        if n <= 1:
            return 0.0
        return float(levels[int(math.floor(n * LRA_HIGH_PERCENTILE))] - levels[int(math.floor(n * LRA_LOW_PERCENTILE))])

    def process(self, samples: np.ndarray) -> LoudnessResult:
        ms = self._block_mean_square(samples)
        self.momentary_blocks.push(ms)
        self.short_term_blocks.push(ms)

        momentary = loudness_from_ms(self.momentary_blocks.mean())
        short_term = loudness_from_ms(self.short_term_blocks.mean())

        if momentary > ABSOLUTE_GATE_LUFS:
            if not self.gated_block_count:
                logger.debug("[LOUDNESS] Absolute gate opened (momentary %.1f LUFS)", momentary)
            self._add_gated_block(ms)
        if self.gated_block_count:
            self._update_integrated()

        return LoudnessResult(
            momentary=momentary,
            short_term=short_term,
            integrated=self.integrated,
            lra=self._loudness_range(),
        )
