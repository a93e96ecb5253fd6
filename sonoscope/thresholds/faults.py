from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Callable

import numpy as np

from sonoscope.metrics.clipping import clipped_sample_runs
from sonoscope.metrics.levels import (
    crest_factor_db,
    dc_offset,
    difference_rms_envelope,
    stereo_peak_and_rms,
)
from sonoscope.metrics.onsets import onset_threshold
from sonoscope.metrics.runs import collect_runs, frames_to_seconds, min_frames
from sonoscope.types import FaultEvent, FaultType, InputError, Severity

DEFAULT_FAULT_CONFIG = {
    "clipping": {"level": 0.99, "min_samples": 2},
    "silence": {"rms_below": 0.001, "min_seconds": 0.5},
    "dc_offset": {"abs_mean_above": 0.01},
    "spectral_anomaly": {"factor": 4.0, "median_floor": 1e-6, "min_frames": 1},
    "phase_inversion": {"correlation_below": -0.5, "min_seconds": 0.2},
    "mono_segment": {"diff_rms_below": 0.0001, "min_seconds": 2.0},
}


def _merge_config(base: dict, overrides: dict | None) -> dict:
    merged = copy.deepcopy(base)
    if not overrides:
        return merged
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge_config(base[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def build_fault_config(overrides: dict | None = None) -> dict:
    """Return merged fault rule configuration with defaults applied."""
    if overrides:
        unknown = sorted(set(overrides) - set(DEFAULT_FAULT_CONFIG))
        if unknown:
            raise InputError(f"Unknown fault rule(s) in config: {', '.join(unknown)}.")
    return _merge_config(DEFAULT_FAULT_CONFIG, overrides)


@dataclass(frozen=True)
class FaultSignals:
    left: np.ndarray
    right: np.ndarray
    sample_rate: float
    hop_size: int
    num_frames: int
    rms_left: np.ndarray
    rms_right: np.ndarray
    spectral_flux: np.ndarray
    flux_median: np.ndarray
    phase_correlation: np.ndarray

    @property
    def last_frame(self) -> int:
        return max(0, self.num_frames - 1)


def detect_clipping(signals: FaultSignals, cfg: dict) -> list[FaultEvent]:
    rule = cfg["clipping"]
    level = float(rule["level"])
    runs = clipped_sample_runs(
        signals.left,
        signals.right,
        level=level,
        min_samples=int(rule["min_samples"]),
    )
    hop = signals.hop_size
    sr = signals.sample_rate
    faults = []
    for start, end in runs:
        length = end - start + 1
        faults.append(
            FaultEvent(
                fault_type=FaultType.CLIPPING,
                severity=Severity.CRIT,
                frame_start=start // hop,
                frame_end=end // hop,
                message=(
                    f"Clipping from {start / sr:.3f}s to {end / sr:.3f}s "
                    f"({length} samples >= {level:g})."
                ),
                value=float(length),
            )
        )
    return faults


def detect_silence(signals: FaultSignals, cfg: dict) -> list[FaultEvent]:
    rule = cfg["silence"]
    combined = 0.5 * (
        np.asarray(signals.rms_left, dtype=np.float64)
        + np.asarray(signals.rms_right, dtype=np.float64)
    )
    min_len = min_frames(float(rule["min_seconds"]), signals.sample_rate, signals.hop_size)
    faults = []
    for start, end in collect_runs(combined < float(rule["rms_below"]), min_len):
        seconds = frames_to_seconds(end - start + 1, signals.hop_size, signals.sample_rate)
        faults.append(
            FaultEvent(
                fault_type=FaultType.SILENCE,
                severity=Severity.WARN,
                frame_start=start,
                frame_end=end,
                message=f"Silence detected for {seconds:.2f}s.",
                value=seconds,
            )
        )
    return faults


def detect_dc_offset(signals: FaultSignals, cfg: dict) -> list[FaultEvent]:
    limit = float(cfg["dc_offset"]["abs_mean_above"])
    mean = dc_offset(signals.left, signals.right)
    if abs(mean) <= limit:
        return []
    return [
        FaultEvent(
            fault_type=FaultType.DC_OFFSET,
            severity=Severity.INFO,
            frame_start=0,
            frame_end=signals.last_frame,
            message=f"DC offset mean is {mean:.5f} (threshold {limit:g}).",
            value=mean,
        )
    ]


def detect_spectral_anomalies(signals: FaultSignals, cfg: dict) -> list[FaultEvent]:
    rule = cfg["spectral_anomaly"]
    flux = np.asarray(signals.spectral_flux, dtype=np.float64)
    threshold = onset_threshold(
        signals.flux_median,
        float(rule["factor"]),
        float(rule["median_floor"]),
    )
    faults = []
    for start, end in collect_runs(flux > threshold, int(rule["min_frames"])):
        faults.append(
            FaultEvent(
                fault_type=FaultType.SPECTRAL_ANOMALY,
                severity=Severity.WARN,
                frame_start=start,
                frame_end=end,
                message=f"Spectral flux exceeded threshold between frames {start} and {end}.",
                value=float(np.max(flux[start:end + 1])),
            )
        )
    return faults


def detect_phase_inversion(signals: FaultSignals, cfg: dict) -> list[FaultEvent]:
    rule = cfg["phase_inversion"]
    limit = float(rule["correlation_below"])
    corr = np.asarray(signals.phase_correlation, dtype=np.float64)
    min_len = min_frames(float(rule["min_seconds"]), signals.sample_rate, signals.hop_size)
    faults = []
    for start, end in collect_runs(corr < limit, min_len):
        faults.append(
            FaultEvent(
                fault_type=FaultType.PHASE_INVERSION,
                severity=Severity.WARN,
                frame_start=start,
                frame_end=end,
                message=(
                    f"Phase inversion likely between frames {start} and {end} "
                    f"(correlation < {limit:g})."
                ),
                value=float(np.mean(corr[start:end + 1])),
            )
        )
    return faults


def detect_dynamic_range(signals: FaultSignals, cfg: dict) -> list[FaultEvent]:
    peak, rms = stereo_peak_and_rms(signals.left, signals.right)
    crest = crest_factor_db(peak, rms)
    return [
        FaultEvent(
            fault_type=FaultType.DYNAMIC_RANGE,
            severity=Severity.INFO,
            frame_start=0,
            frame_end=signals.last_frame,
            message=f"Track crest factor is {crest:.2f} dB.",
            value=crest,
        )
    ]


def detect_mono_segments(signals: FaultSignals, cfg: dict) -> list[FaultEvent]:
    rule = cfg["mono_segment"]
    diff_rms = difference_rms_envelope(
        signals.left, signals.right, signals.num_frames, signals.hop_size
    )
    min_len = min_frames(float(rule["min_seconds"]), signals.sample_rate, signals.hop_size)
    faults = []
    for start, end in collect_runs(diff_rms < float(rule["diff_rms_below"]), min_len):
        faults.append(
            FaultEvent(
                fault_type=FaultType.MONO_SEGMENT,
                severity=Severity.INFO,
                frame_start=start,
                frame_end=end,
                message=f"Stereo collapse (mono segment) detected between frames {start} and {end}.",
                value=frames_to_seconds(end - start + 1, signals.hop_size, signals.sample_rate),
            )
        )
    return faults


FaultRule = Callable[[FaultSignals, dict], list[FaultEvent]]

FAULT_RULES: tuple[FaultRule, ...] = (
    detect_clipping,
    detect_silence,
    detect_dc_offset,
    detect_spectral_anomalies,
    detect_phase_inversion,
    detect_dynamic_range,
    detect_mono_segments,
)


def detect_faults(signals: FaultSignals, *, config: dict | None = None) -> list[FaultEvent]:
    """
    Run every rule and concatenate their events.

    Events are in rule order, not time order; sort by frame_start for a
    chronological log.
    """
    cfg = build_fault_config(config)
    faults: list[FaultEvent] = []
    for rule in FAULT_RULES:
        faults.extend(rule(signals, cfg))
    return faults
