"""Spectral flux, running median and onset peak picking."""
from __future__ import annotations

import numpy as np

ONSET_FACTOR = 4.0
MEDIAN_FLOOR = 1e-6
MEDIAN_RADIUS = 10


class FluxTracker:
    """
    Positive spectral flux of the channel-mixed magnitude spectrum.

    Keeps two owned buffers (previous / current mixed magnitudes) and swaps
    them after every frame instead of reallocating.
    """

    def __init__(self, num_bins: int, num_frames: int) -> None:
        self.num_bins = int(num_bins)
        self.flux = np.zeros(num_frames, dtype=np.float32)
        self._prev = np.zeros(self.num_bins, dtype=np.float64)
        self._curr = np.zeros(self.num_bins, dtype=np.float64)
        self._scratch = np.zeros(self.num_bins, dtype=np.float64)

    def push(self, frame: int, mag_left: np.ndarray, mag_right: np.ndarray) -> float:
        np.add(mag_left, mag_right, out=self._curr)
        self._curr *= 0.5
        value = 0.0
        if frame > 0:
            np.subtract(self._curr, self._prev, out=self._scratch)
            np.maximum(self._scratch, 0.0, out=self._scratch)
            value = float(np.sum(self._scratch)) / self.num_bins
        self.flux[frame] = value
        self._prev, self._curr = self._curr, self._prev
        return value


def running_median(values: np.ndarray, radius: int = MEDIAN_RADIUS) -> np.ndarray:
    """
    Centered running median over [i-radius, i+radius], clipped at the edges.

    The sorted window's element at len//2 is used, so even-length edge
    windows take the upper median.
    """
    x = np.asarray(values, dtype=np.float64)
    n = x.size
    out = np.zeros(n, dtype=np.float32)
    if n == 0:
        return out
    width = 2 * radius + 1
    if n >= width:
        windows = np.lib.stride_tricks.sliding_window_view(x, width)
        out[radius:n - radius] = np.sort(windows, axis=1)[:, radius]
        edge = list(range(radius)) + list(range(n - radius, n))
    else:
        edge = range(n)
    for i in edge:
        win = np.sort(x[max(0, i - radius):min(n - 1, i + radius) + 1])
        out[i] = win[win.size // 2]
    return out


def onset_threshold(
    median: np.ndarray,
    factor: float = ONSET_FACTOR,
    floor: float = MEDIAN_FLOOR,
) -> np.ndarray:
    return factor * np.maximum(np.asarray(median, dtype=np.float64), floor)


def detect_onsets(
    flux: np.ndarray,
    median: np.ndarray,
    *,
    factor: float = ONSET_FACTOR,
    floor: float = MEDIAN_FLOOR,
) -> np.ndarray:
    """
    Peak-pick onsets: flux above threshold and >= both neighbours.

    Frame 0 is never an onset; the neighbour after the last frame counts as 0.
    """
    f = np.asarray(flux, dtype=np.float64)
    if f.size < 2:
        return np.zeros(0, dtype=np.int64)
    above = f > onset_threshold(median, factor, floor)
    prev = np.concatenate(([0.0], f[:-1]))
    nxt = np.concatenate((f[1:], [0.0]))
    peak = (f >= prev) & (f >= nxt)
    mask = above & peak
    mask[0] = False
    return np.flatnonzero(mask).astype(np.int64)
