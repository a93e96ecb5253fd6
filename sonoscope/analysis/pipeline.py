"""Offline analysis pipeline: PCM in, immutable ResultBundle out."""
from __future__ import annotations

import logging
import math
import time
from typing import Callable

import numpy as np

from sonoscope.analysis.bands import build_bands
from sonoscope.analysis.spectral import SpectralAnalyzer
from sonoscope.dsp.fft import TransformEngine, is_power_of_two
from sonoscope.dsp.framing import frame_count
from sonoscope.metrics.correlation import phase_correlation
from sonoscope.metrics.levels import rms_envelope
from sonoscope.metrics.onsets import detect_onsets, running_median
from sonoscope.metrics.waveform import waveform_lods
from sonoscope.thresholds.faults import FaultSignals, build_fault_config, detect_faults
from sonoscope.types import (
    DEFAULT_FFT_SIZE,
    DEFAULT_HOP_SIZE,
    DEFAULT_NUM_BANDS,
    TILE_SIZE,
    WAVEFORM_SCALES,
    AnalysisConfig,
    AudioBuffer,
    InputError,
    Progress,
    ResultBundle,
    Severity,
    WaveformLODs,
)

logger = logging.getLogger(__name__)

ProgressSink = Callable[[Progress], None]

SPECTRAL_PROGRESS_START = 20.0
SPECTRAL_PROGRESS_SPAN = 50.0


class ProgressReporter:
    """Clamp, round and forward progress, dropping any value that would go backwards."""

    def __init__(self, sink: ProgressSink | None = None) -> None:
        self.sink = sink
        self.last = 0

    def report(self, percent: float, stage: str) -> None:
        value = max(0, min(100, int(math.floor(percent + 0.5))))
        if value < self.last:
            return
        self.last = value
        logger.debug("progress %3d%% %s", value, stage)
        if self.sink is not None:
            self.sink(Progress(percent=value, stage=stage))


def validate_grid(
    fft_size: int = DEFAULT_FFT_SIZE,
    hop_size: int = DEFAULT_HOP_SIZE,
    num_bands: int = DEFAULT_NUM_BANDS,
) -> None:
    """Check the frame grid and band count; they do not depend on the sample rate."""
    if isinstance(fft_size, bool) or not is_power_of_two(fft_size):
        raise InputError(f"fft_size must be a power of two >= 2, got {fft_size!r}.")
    if isinstance(hop_size, bool) or not isinstance(hop_size, (int, np.integer)) or hop_size < 1:
        raise InputError(f"hop_size must be an integer >= 1, got {hop_size!r}.")
    if isinstance(num_bands, bool) or not isinstance(num_bands, (int, np.integer)) or num_bands < 1:
        raise InputError(f"num_bands must be an integer >= 1, got {num_bands!r}.")


def validate_config(
    sample_rate: float,
    fft_size: int = DEFAULT_FFT_SIZE,
    hop_size: int = DEFAULT_HOP_SIZE,
    num_bands: int = DEFAULT_NUM_BANDS,
) -> AnalysisConfig:
    """Check analysis parameters and return the run configuration."""
    try:
        sr = float(sample_rate)
    except (TypeError, ValueError) as exc:
        raise InputError(f"Sample rate must be a number, got {sample_rate!r}.") from exc
    if not math.isfinite(sr) or sr <= 0:
        raise InputError(f"Sample rate must be positive and finite, got {sample_rate!r}.")
    validate_grid(fft_size, hop_size, num_bands)
    return AnalysisConfig(
        sample_rate=sr,
        fft_size=int(fft_size),
        hop_size=int(hop_size),
        num_bands=int(num_bands),
    )


def validate_channels(left, right) -> tuple[np.ndarray, np.ndarray]:
    """Coerce channels to float32 and reject empty or mismatched buffers."""
    channels = []
    for name, data in (("left", left), ("right", right)):
        if data is None:
            raise InputError(f"Missing {name} channel buffer.")
        try:
            x = np.asarray(data, dtype=np.float32)
        except (TypeError, ValueError) as exc:
            raise InputError(f"{name} channel is not numeric sample data.") from exc
        if x.ndim != 1:
            raise InputError(f"{name} channel must be a 1D buffer, got shape {x.shape}.")
        if x.size == 0:
            raise InputError("Audio payload has no samples.")
        channels.append(x)
    l, r = channels
    if l.size != r.size:
        raise InputError(
            f"Channel lengths differ: left={l.size}, right={r.size}."
        )
    return l, r


def _freeze(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


def analyze(
    left,
    right,
    sample_rate: float,
    *,
    fft_size: int = DEFAULT_FFT_SIZE,
    hop_size: int = DEFAULT_HOP_SIZE,
    num_bands: int = DEFAULT_NUM_BANDS,
    fault_config: dict | None = None,
    on_progress: ProgressSink | None = None,
    engine: TransformEngine | None = None,
) -> ResultBundle:
    """
    Run every analysis stage over a stereo signal.

    Input is validated before any stage runs; an InputError aborts the run
    and no partial bundle is produced. Channel buffers are only read.
    """
    config = validate_config(sample_rate, fft_size, hop_size, num_bands)
    fault_cfg = build_fault_config(fault_config)
    left, right = validate_channels(left, right)
    return _run(left, right, config, fault_cfg, ProgressReporter(on_progress), engine)


def analyze_buffer(
    audio: AudioBuffer,
    config: AnalysisConfig | None = None,
    *,
    fault_config: dict | None = None,
    on_progress: ProgressSink | None = None,
    engine: TransformEngine | None = None,
) -> ResultBundle:
    """Analyze a decoded AudioBuffer; config defaults to the standard grid at its rate."""
    cfg = config or AnalysisConfig(sample_rate=audio.fs)
    if cfg.sample_rate != audio.fs:
        raise InputError(
            f"Config sample rate {cfg.sample_rate} does not match audio rate {audio.fs}."
        )
    return analyze(
        audio.left,
        audio.right,
        audio.fs,
        fft_size=cfg.fft_size,
        hop_size=cfg.hop_size,
        num_bands=cfg.num_bands,
        fault_config=fault_config,
        on_progress=on_progress,
        engine=engine,
    )


def _run(
    left: np.ndarray,
    right: np.ndarray,
    config: AnalysisConfig,
    fault_cfg: dict,
    progress: ProgressReporter,
    engine: TransformEngine | None,
) -> ResultBundle:
    t0 = time.perf_counter()
    num_samples = int(left.size)
    hop = config.hop_size
    num_frames = frame_count(num_samples, config.fft_size, hop)
    bands = build_bands(config)
    logger.info(
        "Analyzing %d samples @ %.0f Hz: %d frames (fft=%d, hop=%d, bands=%d)",
        num_samples, config.sample_rate, num_frames,
        config.fft_size, hop, config.num_bands,
    )
    progress.report(2, "Initializing analysis")

    lods = WaveformLODs(
        scales=tuple(WAVEFORM_SCALES),
        left=tuple(_freeze(a) for a in waveform_lods(left, WAVEFORM_SCALES)),
        right=tuple(_freeze(a) for a in waveform_lods(right, WAVEFORM_SCALES)),
    )
    progress.report(10, "Downsampled waveform LODs")

    rms_left = rms_envelope(left, num_frames, hop)
    rms_right = rms_envelope(right, num_frames, hop)
    progress.report(20, "Computed RMS envelope")

    def on_block(done: int, total: int) -> None:
        progress.report(
            SPECTRAL_PROGRESS_START + done / total * SPECTRAL_PROGRESS_SPAN,
            "Running STFT",
        )

    analyzer = SpectralAnalyzer(config, bands, num_frames, engine=engine, tile_size=TILE_SIZE)
    spectral = analyzer.run(left, right, on_block=on_block)
    progress.report(75, "Computed logarithmic bands")

    flux_median = running_median(spectral.flux)
    onsets = detect_onsets(spectral.flux, flux_median)
    progress.report(80, "Computed spectral flux and onsets")

    correlation = phase_correlation(left, right, num_frames, hop)
    progress.report(85, "Computed phase correlation")

    faults = detect_faults(
        FaultSignals(
            left=left,
            right=right,
            sample_rate=config.sample_rate,
            hop_size=hop,
            num_frames=num_frames,
            rms_left=rms_left,
            rms_right=rms_right,
            spectral_flux=spectral.flux,
            flux_median=flux_median,
            phase_correlation=correlation,
        ),
        config=fault_cfg,
    )
    progress.report(95, "Detected signal faults")

    bundle = ResultBundle(
        sample_rate=config.sample_rate,
        num_samples=num_samples,
        num_frames=num_frames,
        duration=num_samples / config.sample_rate,
        fft_size=config.fft_size,
        hop_size=hop,
        num_bands=config.num_bands,
        tile_size=TILE_SIZE,
        bands=tuple(bands),
        waveform_lods=lods,
        rms_left=_freeze(rms_left),
        rms_right=_freeze(rms_right),
        bands_left=_freeze(spectral.bands_left),
        bands_right=_freeze(spectral.bands_right),
        spectral_flux=_freeze(spectral.flux),
        flux_median=_freeze(flux_median),
        onsets=_freeze(onsets),
        phase_correlation=_freeze(correlation),
        spectrogram_tiles_left=tuple(_freeze(t) for t in spectral.tiles_left),
        spectrogram_tiles_right=tuple(_freeze(t) for t in spectral.tiles_right),
        faults=tuple(faults),
    )
    crit = sum(1 for f in faults if f.severity == Severity.CRIT)
    logger.info(
        "Analysis complete in %.2fs: %d onsets, %d faults (%d critical)",
        time.perf_counter() - t0, onsets.size, len(faults), crit,
    )
    progress.report(100, "Analysis complete")
    return bundle


def run_job(payload: dict, sink: Callable[[dict], None]) -> None:
    """
    Worker-style entry point speaking the progress/result/error message protocol.

    Emits zero or more {"type": "progress"} messages followed by exactly one
    terminal {"type": "result", "data": bundle} or {"type": "error", "message": str}.
    """
    def emit_progress(p: Progress) -> None:
        sink({"type": "progress", "percent": p.percent, "stage": p.stage})

    try:
        bundle = analyze(
            payload.get("left"),
            payload.get("right"),
            payload.get("sample_rate"),
            fft_size=payload.get("fft_size", DEFAULT_FFT_SIZE),
            hop_size=payload.get("hop_size", DEFAULT_HOP_SIZE),
            num_bands=payload.get("num_bands", DEFAULT_NUM_BANDS),
            fault_config=payload.get("faults"),
            on_progress=emit_progress,
        )
    except Exception as exc:
        logger.exception("Analysis job failed")
        sink({"type": "error", "message": str(exc)})
        return
    sink({"type": "result", "data": bundle})
