"""Frame grid helpers shared by the spectral and hop-resolution stages."""
from __future__ import annotations

import numpy as np


def frame_count(num_samples: int, fft_size: int, hop_size: int) -> int:
    """Number of analysis frames; a signal shorter than fft_size still gets one."""
    return max(1, (int(num_samples) - int(fft_size)) // int(hop_size) + 1)


def fill_windowed_frame(
    out: np.ndarray,
    samples: np.ndarray,
    start: int,
    window: np.ndarray,
) -> np.ndarray:
    """Write samples[start:start+N] * window into out, zero padding past the end."""
    n = out.shape[0]
    avail = max(0, min(n, samples.shape[0] - start))
    if avail:
        np.multiply(samples[start:start + avail], window[:avail], out=out[:avail])
    out[avail:] = 0.0
    return out


def windowed_frames(
    samples: np.ndarray,
    first_frame: int,
    count: int,
    hop_size: int,
    window: np.ndarray,
) -> np.ndarray:
    """
    Build a (count, N) block of consecutive windowed frames.

    Row k holds frame first_frame + k, i.e. samples starting at
    (first_frame + k) * hop_size. Indices past the buffer end read as zero.
    """
    x = np.asarray(samples)
    n = window.shape[0]
    start = first_frame * hop_size
    stop = (first_frame + count - 1) * hop_size + n
    seg = np.zeros(stop - start, dtype=np.float64)
    avail = max(0, min(x.shape[0], stop) - start)
    if avail:
        seg[:avail] = x[start:start + avail]
    frames = np.lib.stride_tricks.sliding_window_view(seg, n)[::hop_size][:count]
    return frames * window


def hop_blocks(x: np.ndarray, num_frames: int, hop_size: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Split x into num_frames hop-sized blocks on the hop grid.

    Block f covers [f*hop, min(len, f*hop + hop)); missing samples are zero.
    Returns (blocks shaped (num_frames, hop), valid sample count per block).
    """
    x = np.asarray(x, dtype=np.float64)
    total = num_frames * hop_size
    padded = np.zeros(total, dtype=np.float64)
    take = min(total, x.shape[0])
    padded[:take] = x[:take]
    starts = np.arange(num_frames, dtype=np.int64) * hop_size
    counts = np.clip(x.shape[0] - starts, 0, hop_size)
    return padded.reshape(num_frames, hop_size), counts
