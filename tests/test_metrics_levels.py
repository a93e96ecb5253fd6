from __future__ import annotations

import numpy as np

from sonoscope.metrics.levels import (
    crest_factor_db,
    dc_offset,
    difference_rms_envelope,
    rms_envelope,
    stereo_peak_and_rms,
)
from tests.conftest import sine


def test_rms_envelope_uses_hop_grid_and_zero_past_end():
    x = np.array([1.0, -1.0, 2.0, 2.0, 3.0], dtype=np.float32)
    rms = rms_envelope(x, 4, 2)
    assert rms.dtype == np.float32
    assert np.allclose(rms, [1.0, 2.0, 3.0, 0.0])


def test_rms_of_full_scale_sine():
    x = sine(1000.0, 1.0)
    rms = rms_envelope(x, 83, 512)
    assert np.allclose(rms, np.sqrt(0.5), rtol=0.01)


def test_difference_rms_zero_for_identical_channels():
    x = sine(440.0, 0.1)
    assert np.all(difference_rms_envelope(x, x, 8, 512) == 0.0)


def test_dc_offset_mean_of_channel_average():
    assert np.isclose(dc_offset(np.full(10, 0.2), np.full(10, 0.0)), 0.1)


def test_crest_factor_sine_and_silence():
    x = sine(1000.0, 1.0)
    peak, rms = stereo_peak_and_rms(x, x)
    assert np.isclose(crest_factor_db(peak, rms), 20 * np.log10(np.sqrt(2)), atol=0.05)
    assert crest_factor_db(0.0, 0.0) == 0.0
