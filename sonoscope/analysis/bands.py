from __future__ import annotations
import math
from typing import Sequence
import numpy as np
from sonoscope.types import AnalysisConfig, BandRange

MIN_BAND_HZ = 20.0
MAX_BAND_HZ = 20000.0


def band_frequencies(num_bands: int, sample_rate: float) -> list[tuple[float, float]]:
    """Return logarithmically spaced (low, high) edges from 20 Hz to min(20 kHz, Nyquist)."""
    nyquist = max(MIN_BAND_HZ, sample_rate / 2.0)
    f_max = max(MIN_BAND_HZ, min(MAX_BAND_HZ, nyquist))
    ratio = f_max / MIN_BAND_HZ
    return [
        (
            MIN_BAND_HZ * ratio ** (i / num_bands),
            MIN_BAND_HZ * ratio ** ((i + 1) / num_bands),
        )
        for i in range(num_bands)
    ]


def band_bin_ranges(
    edges: list[tuple[float, float]],
    sample_rate: float,
    fft_size: int,
) -> list[tuple[int, int]]:
    """Map band edges to inclusive FFT bin ranges clamped to [0, fft_size/2)."""
    num_bins = fft_size // 2
    bin_width = sample_rate / fft_size
    ranges = []
    for low, high in edges:
        low_bin = min(max(int(math.floor(low / bin_width)), 0), num_bins - 1)
        high_bin = min(max(int(math.floor(high / bin_width)), low_bin), num_bins - 1)
        ranges.append((low_bin, high_bin))
    return ranges


def build_bands(config: AnalysisConfig) -> list[BandRange]:
    """Compute the band table once for a run."""
    edges = band_frequencies(config.num_bands, config.sample_rate)
    ranges = band_bin_ranges(edges, config.sample_rate, config.fft_size)
    return [
        BandRange(index=i, f_low=lo, f_high=hi, low_bin=lb, high_bin=hb)
        for i, ((lo, hi), (lb, hb)) in enumerate(zip(edges, ranges))
    ]


def band_index_arrays(bands: Sequence[BandRange]) -> tuple[np.ndarray, np.ndarray]:
    """Return (low_bin, high_bin) int arrays for vectorized aggregation."""
    low = np.array([b.low_bin for b in bands], dtype=np.int64)
    high = np.array([b.high_bin for b in bands], dtype=np.int64)
    return low, high


def band_containing(bands: Sequence[BandRange], freq_hz: float) -> BandRange | None:
    for b in bands:
        if b.contains(freq_hz):
            return b
    return None
