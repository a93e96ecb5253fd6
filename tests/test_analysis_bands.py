from __future__ import annotations

import pytest

from sonoscope.analysis.bands import (
    band_bin_ranges,
    band_containing,
    band_frequencies,
    build_bands,
)
from sonoscope.types import AnalysisConfig


@pytest.mark.parametrize("fs", [8000.0, 22050.0, 44100.0, 48000.0, 96000.0])
@pytest.mark.parametrize("fft_size", [256, 2048, 4096])
@pytest.mark.parametrize("num_bands", [1, 10, 40, 80])
def test_bin_ranges_stay_inside_spectrum(fs, fft_size, num_bands):
    cfg = AnalysisConfig(sample_rate=fs, fft_size=fft_size, num_bands=num_bands)
    bands = build_bands(cfg)
    assert len(bands) == num_bands
    for b in bands:
        assert 0 <= b.low_bin <= b.high_bin < cfg.num_bins
    for lower, upper in zip(bands, bands[1:]):
        assert upper.low_bin <= lower.high_bin + 1


def test_edges_are_contiguous_and_log_spaced():
    edges = band_frequencies(40, 44100.0)
    assert edges[0][0] == pytest.approx(20.0)
    assert edges[-1][1] == pytest.approx(20000.0)
    for (lo, hi), (next_lo, _) in zip(edges, edges[1:]):
        assert hi == pytest.approx(next_lo)
    ratios = [hi / lo for lo, hi in edges]
    assert max(ratios) == pytest.approx(min(ratios))


def test_top_edge_limited_by_nyquist():
    edges = band_frequencies(12, 8000.0)
    assert edges[-1][1] == pytest.approx(4000.0)


def test_bin_mapping_floors_and_clamps():
    ranges = band_bin_ranges([(20.0, 50.0), (15000.0, 30000.0)], 44100.0, 2048)
    assert ranges[0] == (0, 2)
    assert ranges[1] == (696, 1023)


def test_band_containing_1khz():
    bands = build_bands(AnalysisConfig(sample_rate=44100.0))
    band = band_containing(bands, 1000.0)
    assert band is not None
    assert band.f_low <= 1000.0 < band.f_high
    assert band.low_bin <= 46 <= band.high_bin
    assert band_containing(bands, 5.0) is None
