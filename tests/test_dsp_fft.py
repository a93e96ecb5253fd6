from __future__ import annotations

import numpy as np
import pytest

from sonoscope.dsp.fft import TransformEngine, TwiddleCache, is_power_of_two
from sonoscope.types import InputError


@pytest.mark.parametrize("n", [2, 4, 8, 64, 1024, 2048])
def test_forward_matches_numpy(n):
    x = np.random.default_rng(n).standard_normal(n)
    re, im = TransformEngine().forward(x)
    ref = np.fft.fft(x)
    assert np.allclose(re, ref.real, atol=1e-9)
    assert np.allclose(im, ref.imag, atol=1e-9)


@pytest.mark.parametrize("n", [2, 16, 512, 4096])
def test_inverse_of_forward_round_trips(n):
    rng = np.random.default_rng(7)
    x = rng.standard_normal(n)
    engine = TransformEngine()
    re, im = engine.forward(x)
    back_re, back_im = engine.inverse(re, im)
    assert np.allclose(back_re, x, atol=1e-9)
    assert np.allclose(back_im, 0.0, atol=1e-9)


def test_transform_is_in_place_over_leading_axes():
    rng = np.random.default_rng(1)
    block = rng.standard_normal((5, 256))
    re = block.copy()
    im = np.zeros_like(re)
    TransformEngine().transform(re, im)
    ref = np.fft.fft(block, axis=-1)
    assert np.allclose(re, ref.real, atol=1e-9)
    assert np.allclose(im, ref.imag, atol=1e-9)


def test_rejects_non_power_of_two_length():
    re = np.zeros(100)
    im = np.zeros(100)
    with pytest.raises(InputError, match="power of two"):
        TransformEngine().transform(re, im)


def test_rejects_mismatched_buffers():
    with pytest.raises(InputError):
        TransformEngine().transform(np.zeros(8), np.zeros(16))


def test_twiddle_cache_builds_once_per_direction():
    cache = TwiddleCache()
    engine = TransformEngine(cache)
    for _ in range(3):
        engine.forward(np.ones(64))
    assert cache.builds == 1
    engine.inverse(np.ones(64), np.zeros(64))
    assert cache.builds == 2
    assert (64, False) in cache and (64, True) in cache
    assert len(cache) == 2


def test_is_power_of_two():
    assert is_power_of_two(2)
    assert is_power_of_two(2048)
    assert not is_power_of_two(1)
    assert not is_power_of_two(0)
    assert not is_power_of_two(1000)
    assert not is_power_of_two(2048.0)
