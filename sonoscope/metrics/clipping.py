"""Sample-level clipping runs across a stereo pair."""
from __future__ import annotations

import numpy as np

from sonoscope.metrics.runs import collect_runs

CLIP_LEVEL = 0.99


def clipped_sample_runs(
    left: np.ndarray,
    right: np.ndarray,
    *,
    level: float = CLIP_LEVEL,
    min_samples: int = 2,
) -> list[tuple[int, int]]:
    """Inclusive sample runs where |L| >= level or |R| >= level."""
    l = np.abs(np.asarray(left, dtype=np.float64))
    r = np.abs(np.asarray(right, dtype=np.float64))
    if l.shape != r.shape:
        raise ValueError("Channels must have matching lengths.")
    return collect_runs((l >= level) | (r >= level), min_samples)
