"""In-place radix-2 Cooley-Tukey FFT with cached twiddle tables."""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from sonoscope.types import InputError


def is_power_of_two(n: int) -> bool:
    return isinstance(n, (int, np.integer)) and n > 1 and (int(n) & (int(n) - 1)) == 0


@dataclass(frozen=True)
class Twiddles:
    cos: np.ndarray
    sin: np.ndarray
    bitrev: np.ndarray


def _bit_reversal_permutation(size: int) -> np.ndarray:
    bits = size.bit_length() - 1
    idx = np.arange(size, dtype=np.int64)
    rev = np.zeros(size, dtype=np.int64)
    for _ in range(bits):
        rev = (rev << 1) | (idx & 1)
        idx >>= 1
    return rev


def build_twiddles(size: int, inverse: bool) -> Twiddles:
    """Build cos/sin tables of length size/2; the sine sign is +1 for inverse."""
    half = size >> 1
    sign = 1.0 if inverse else -1.0
    angle = 2.0 * np.pi * np.arange(half, dtype=np.float64) / size
    return Twiddles(
        cos=np.cos(angle),
        sin=sign * np.sin(angle),
        bitrev=_bit_reversal_permutation(size),
    )


class TwiddleCache:
    """Memo table keyed by (size, direction). Entries are never evicted."""

    def __init__(self) -> None:
        self._tables: dict[tuple[int, bool], Twiddles] = {}
        self.builds = 0

    def get(self, size: int, inverse: bool) -> Twiddles:
        key = (int(size), bool(inverse))
        tables = self._tables.get(key)
        if tables is None:
            tables = build_twiddles(int(size), bool(inverse))
            self._tables[key] = tables
            self.builds += 1
        return tables

    def __len__(self) -> int:
        return len(self._tables)

    def __contains__(self, key: tuple[int, bool]) -> bool:
        return (int(key[0]), bool(key[1])) in self._tables


class TransformEngine:
    """
    Discrete Fourier transform over the last axis of float64 arrays.

    Leading axes hold independent transforms, so a block of frames shaped
    (frames, n) is transformed with one call. Both arrays are modified in place.
    """

    def __init__(self, cache: TwiddleCache | None = None) -> None:
        self.cache = cache if cache is not None else TwiddleCache()

    def transform(self, real: np.ndarray, imag: np.ndarray, inverse: bool = False) -> None:
        _check_buffers(real, imag)
        size = real.shape[-1]
        tw = self.cache.get(size, inverse)

        real[...] = real[..., tw.bitrev]
        imag[...] = imag[..., tw.bitrev]

        lead = real.shape[:-1]
        step = 2
        while step <= size:
            half = step >> 1
            stride = size // step
            wr = tw.cos[: half * stride: stride]
            wi = tw.sin[: half * stride: stride]

            re = real.reshape(*lead, size // step, step)
            im = imag.reshape(*lead, size // step, step)
            even_re = re[..., :half]
            even_im = im[..., :half]
            odd_re = re[..., half:]
            odd_im = im[..., half:]

            tr = wr * odd_re - wi * odd_im
            ti = wr * odd_im + wi * odd_re
            odd_re[...] = even_re - tr
            odd_im[...] = even_im - ti
            even_re += tr
            even_im += ti
            step <<= 1

        if inverse:
            scale = 1.0 / size
            real *= scale
            imag *= scale

    def forward(self, x: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Transform a real signal, returning new (real, imag) arrays."""
        re = np.array(x, dtype=np.float64, copy=True)
        im = np.zeros_like(re)
        self.transform(re, im, inverse=False)
        return re, im

    def inverse(self, real: np.ndarray, imag: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        re = np.array(real, dtype=np.float64, copy=True)
        im = np.array(imag, dtype=np.float64, copy=True)
        self.transform(re, im, inverse=True)
        return re, im


def _check_buffers(real: np.ndarray, imag: np.ndarray) -> None:
    if not isinstance(real, np.ndarray) or not isinstance(imag, np.ndarray):
        raise InputError("FFT buffers must be numpy arrays.")
    if real.shape != imag.shape:
        raise InputError("FFT arrays must have matching shapes.")
    if real.ndim == 0 or not is_power_of_two(real.shape[-1]):
        raise InputError("FFT length must be a power of two.")
    if real.dtype != np.float64 or imag.dtype != np.float64:
        raise InputError("FFT buffers must be float64.")
    if not (real.flags.c_contiguous and imag.flags.c_contiguous):
        raise InputError("FFT buffers must be C-contiguous.")
    if not (real.flags.writeable and imag.flags.writeable):
        raise InputError("FFT buffers must be writable.")
