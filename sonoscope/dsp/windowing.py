"""Windowing functions for DSP operations."""
import numpy as np


def hann(n: int) -> np.ndarray:
    """Generate a symmetric Hann window of length n: 0.5 * (1 - cos(2*pi*i/(n-1)))."""
    return np.hanning(n).astype(np.float64)
