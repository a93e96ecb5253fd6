"""Min/max level-of-detail summaries for full-track waveform rendering."""
from __future__ import annotations

import numpy as np

from sonoscope.types import WAVEFORM_SCALES


def _bucket_min_max(x: np.ndarray, scale: int) -> np.ndarray:
    n_buckets = -(-x.size // scale)
    padded = np.full(n_buckets * scale, np.nan, dtype=np.float64)
    padded[:x.size] = x
    padded[~np.isfinite(padded)] = np.nan
    buckets = padded.reshape(n_buckets, scale)
    empty = np.all(np.isnan(buckets), axis=1)
    filled = np.where(empty[:, None], 0.0, buckets)
    lo = np.nanmin(filled, axis=1)
    hi = np.nanmax(filled, axis=1)
    out = np.empty(n_buckets * 2, dtype=np.float32)
    out[0::2] = lo
    out[1::2] = hi
    return out


def waveform_lods(
    samples: np.ndarray,
    scales: tuple[int, ...] = WAVEFORM_SCALES,
) -> list[np.ndarray]:
    """
    Build one interleaved (min, max) float32 array per decimation scale.

    Buckets run to the end of the buffer, so the last one may be shorter.
    Non-finite samples are ignored; a bucket with no finite values is (0, 0).
    """
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError("waveform_lods expects a 1D channel buffer.")
    lods = []
    for scale in scales:
        scale = int(scale)
        if scale <= 0:
            raise ValueError("LOD scales must be positive.")
        if x.size == 0:
            lods.append(np.zeros(0, dtype=np.float32))
            continue
        lods.append(_bucket_min_max(x, scale))
    return lods
