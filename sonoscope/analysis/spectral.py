"""Short-time spectral analysis: band energies, spectrogram tiles and flux."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np

from sonoscope.analysis.bands import band_index_arrays
from sonoscope.dsp.fft import TransformEngine
from sonoscope.dsp.framing import windowed_frames
from sonoscope.dsp.windowing import hann
from sonoscope.metrics.onsets import FluxTracker
from sonoscope.types import EPSILON, TILE_SIZE, AnalysisConfig, BandRange

logger = logging.getLogger(__name__)

SPECTROGRAM_MIN_DB = -100.0
BLOCK_FRAMES = 64


@dataclass(frozen=True)
class SpectralResult:
    bands_left: np.ndarray
    bands_right: np.ndarray
    tiles_left: list[np.ndarray]
    tiles_right: list[np.ndarray]
    flux: np.ndarray


def _round_u8(x: np.ndarray) -> np.ndarray:
    return np.clip(np.floor(x + 0.5), 0, 255).astype(np.uint8)


def magnitudes(real: np.ndarray, imag: np.ndarray, num_bins: int) -> tuple[np.ndarray, np.ndarray]:
    """Per-bin magnitudes of the first num_bins bins and the per-frame peak."""
    mags = np.hypot(real[..., :num_bins], imag[..., :num_bins])
    return mags, np.max(mags, axis=-1)


def band_energy_rows(
    mags: np.ndarray,
    peaks: np.ndarray,
    low_bins: np.ndarray,
    high_bins: np.ndarray,
) -> np.ndarray:
    """
    Quantize band energies to 8 bits.

    Mean magnitude over each band's inclusive bin range, normalized by the
    frame peak, square-root compressed and scaled to [0, 255]. Frames whose
    peak is at or below epsilon are all zero.
    """
    mags = np.atleast_2d(mags)
    peaks = np.atleast_1d(peaks)
    cs = np.zeros((mags.shape[0], mags.shape[1] + 1), dtype=np.float64)
    np.cumsum(mags, axis=1, out=cs[:, 1:])
    sums = cs[:, high_bins + 1] - cs[:, low_bins]
    avg = sums / (high_bins - low_bins + 1)
    live = peaks > EPSILON
    ratio = np.divide(
        avg,
        peaks[:, None],
        out=np.zeros_like(avg),
        where=live[:, None],
    )
    out = _round_u8(np.sqrt(np.minimum(ratio, 1.0)) * 255.0)
    out[~live] = 0
    return out


def spectrogram_rows(mags: np.ndarray, peaks: np.ndarray) -> np.ndarray:
    """Map magnitude/peak to dB, floor at -100 dB and quantize [-100, 0] to [0, 255]."""
    mags = np.atleast_2d(mags)
    peaks = np.atleast_1d(peaks)
    live = peaks > EPSILON
    ratio = np.divide(
        mags,
        peaks[:, None],
        out=np.zeros_like(mags),
        where=live[:, None],
    )
    db = 20.0 * np.log10(np.maximum(ratio, EPSILON))
    normalized = (db - SPECTROGRAM_MIN_DB) / -SPECTROGRAM_MIN_DB
    out = _round_u8(normalized * 255.0)
    out[~live] = 0
    return out


def create_spectrogram_tiles(num_frames: int, num_bins: int, tile_size: int = TILE_SIZE) -> list[np.ndarray]:
    """Allocate uint8 tiles of tile_size frames; the last tile may be shorter."""
    tile_count = max(1, -(-num_frames // tile_size))
    tiles = []
    for tile in range(tile_count):
        frames_in_tile = min(tile_size, num_frames - tile * tile_size)
        tiles.append(np.zeros((frames_in_tile, num_bins), dtype=np.uint8))
    return tiles


def write_tile_rows(tiles: list[np.ndarray], first_frame: int, rows: np.ndarray, tile_size: int) -> None:
    """Copy consecutive frame rows into the tiles they fall in."""
    frame = first_frame
    k = 0
    while k < rows.shape[0]:
        tile = tiles[frame // tile_size]
        offset = frame % tile_size
        n = min(rows.shape[0] - k, tile.shape[0] - offset)
        tile[offset:offset + n] = rows[k:k + n]
        frame += n
        k += n


class SpectralAnalyzer:
    """
    Runs the transform once per frame per channel.

    Frames are windowed and transformed in blocks through the engine, then
    consumed in frame order so the flux tracker only ever sees the previous
    frame's mixed spectrum.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        bands: list[BandRange],
        num_frames: int,
        *,
        engine: TransformEngine | None = None,
        tile_size: int = TILE_SIZE,
        block_frames: int = BLOCK_FRAMES,
    ) -> None:
        self.config = config
        self.num_frames = int(num_frames)
        self.num_bins = config.num_bins
        self.tile_size = int(tile_size)
        self.block_frames = max(1, int(block_frames))
        self.engine = engine if engine is not None else TransformEngine()
        self.engine.cache.get(config.fft_size, False)
        self.window = hann(config.fft_size)
        self._low_bins, self._high_bins = band_index_arrays(bands)

    def run(
        self,
        left: np.ndarray,
        right: np.ndarray,
        on_block: Callable[[int, int], None] | None = None,
    ) -> SpectralResult:
        cfg = self.config
        n_bands = self._low_bins.size
        bands_left = np.zeros((self.num_frames, n_bands), dtype=np.uint8)
        bands_right = np.zeros((self.num_frames, n_bands), dtype=np.uint8)
        tiles_left = create_spectrogram_tiles(self.num_frames, self.num_bins, self.tile_size)
        tiles_right = create_spectrogram_tiles(self.num_frames, self.num_bins, self.tile_size)
        tracker = FluxTracker(self.num_bins, self.num_frames)

        re_buf = np.zeros((self.block_frames, cfg.fft_size), dtype=np.float64)
        im_buf = np.zeros_like(re_buf)

        for first in range(0, self.num_frames, self.block_frames):
            count = min(self.block_frames, self.num_frames - first)
            mags_per_channel = []
            for samples, bands_out, tiles in (
                (left, bands_left, tiles_left),
                (right, bands_right, tiles_right),
            ):
                re = re_buf[:count]
                im = im_buf[:count]
                re[...] = windowed_frames(samples, first, count, cfg.hop_size, self.window)
                im.fill(0.0)
                self.engine.transform(re, im, inverse=False)
                mags, peaks = magnitudes(re, im, self.num_bins)
                bands_out[first:first + count] = band_energy_rows(
                    mags, peaks, self._low_bins, self._high_bins
                )
                write_tile_rows(tiles, first, spectrogram_rows(mags, peaks), self.tile_size)
                mags_per_channel.append(mags)

            mags_left, mags_right = mags_per_channel
            for k in range(count):
                tracker.push(first + k, mags_left[k], mags_right[k])

            if on_block is not None:
                on_block(first + count, self.num_frames)

        logger.debug(
            "Spectral analysis done: %d frames, %d bins, %d tiles per channel",
            self.num_frames, self.num_bins, len(tiles_left),
        )
        return SpectralResult(
            bands_left=bands_left,
            bands_right=bands_right,
            tiles_left=tiles_left,
            tiles_right=tiles_right,
            flux=tracker.flux,
        )
