"""Stereo phase correlation on the hop grid."""
from __future__ import annotations

import numpy as np

from sonoscope.dsp.framing import hop_blocks
from sonoscope.types import EPSILON


def phase_correlation(
    left: np.ndarray,
    right: np.ndarray,
    num_frames: int,
    hop_size: int,
) -> np.ndarray:
    """
    Normalized (uncentered) cross-correlation of L and R per hop window.

    Args:
        left: Left channel samples.
        right: Right channel samples.
        num_frames: Number of hop windows to evaluate.
        hop_size: Window length and stride in samples.

    Returns:
        float32 array of length num_frames in [-1, 1]; windows whose
        denominator is at or below epsilon, or that start past the end, are 0.
    """
    lb, _ = hop_blocks(left, num_frames, hop_size)
    rb, _ = hop_blocks(right, num_frames, hop_size)
    numerator = np.sum(lb * rb, axis=1)
    denom = np.sqrt(np.sum(lb ** 2, axis=1) * np.sum(rb ** 2, axis=1))
    corr = np.divide(
        numerator,
        denom,
        out=np.zeros_like(numerator, dtype=np.float64),
        where=denom > EPSILON,
    )
    return np.clip(corr, -1.0, 1.0).astype(np.float32)
