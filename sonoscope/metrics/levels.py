"""Hop-resolution RMS envelopes and whole-track level statistics."""
from __future__ import annotations

import numpy as np

from sonoscope.dsp.framing import hop_blocks
from sonoscope.types import EPSILON


def _block_rms(blocks: np.ndarray, counts: np.ndarray) -> np.ndarray:
    sum_sq = np.sum(blocks ** 2, axis=1)
    return np.sqrt(sum_sq / np.maximum(counts, 1))


def rms_envelope(samples: np.ndarray, num_frames: int, hop_size: int) -> np.ndarray:
    """RMS of raw samples per hop window; frames starting past the end are 0."""
    blocks, counts = hop_blocks(samples, num_frames, hop_size)
    return _block_rms(blocks, counts).astype(np.float32)


def difference_rms_envelope(
    left: np.ndarray,
    right: np.ndarray,
    num_frames: int,
    hop_size: int,
) -> np.ndarray:
    """RMS of the L-R difference signal per hop window."""
    diff = np.asarray(left, dtype=np.float64) - np.asarray(right, dtype=np.float64)
    blocks, counts = hop_blocks(diff, num_frames, hop_size)
    return _block_rms(blocks, counts).astype(np.float32)


def dc_offset(left: np.ndarray, right: np.ndarray) -> float:
    """Mean of the per-sample channel average over the whole signal."""
    mid = 0.5 * (np.asarray(left, dtype=np.float64) + np.asarray(right, dtype=np.float64))
    if mid.size == 0:
        return 0.0
    return float(np.mean(mid))


def stereo_peak_and_rms(left: np.ndarray, right: np.ndarray) -> tuple[float, float]:
    """Whole-track sample peak over both channels and channel-averaged RMS."""
    l = np.asarray(left, dtype=np.float64)
    r = np.asarray(right, dtype=np.float64)
    if l.size == 0:
        return 0.0, 0.0
    peak = float(max(np.max(np.abs(l)), np.max(np.abs(r))))
    rms = float(np.sqrt(np.mean(0.5 * (l ** 2 + r ** 2))))
    return peak, rms


def crest_factor_db(peak: float, rms: float) -> float:
    """Peak-to-RMS ratio in dB; 0 for a silent track."""
    if peak <= EPSILON:
        return 0.0
    return float(20.0 * np.log10(peak / max(rms, EPSILON)))
