"""Run extraction over per-frame boolean predicates."""
from __future__ import annotations

import math

import numpy as np


def collect_runs(mask: np.ndarray, min_length: int) -> list[tuple[int, int]]:
    """
    Return maximal runs of True as inclusive (start, end) pairs.

    Runs shorter than min_length are dropped; a run still open at the end of
    the array is flushed.
    """
    m = np.asarray(mask, dtype=bool)
    if m.ndim != 1:
        raise ValueError("collect_runs expects a 1D mask.")
    if m.size == 0:
        return []
    edges = np.diff(np.concatenate(([0], m.astype(np.int8), [0])))
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1) - 1
    lengths = ends - starts + 1
    keep = lengths >= max(1, int(min_length))
    return [(int(s), int(e)) for s, e in zip(starts[keep], ends[keep])]


def min_frames(seconds: float, sample_rate: float, hop_size: int) -> int:
    """Minimum run length in frames for a duration, never below one."""
    return max(1, math.ceil(seconds * sample_rate / hop_size))


def frames_to_seconds(frame_count: int, hop_size: int, sample_rate: float) -> float:
    return frame_count * hop_size / sample_rate
