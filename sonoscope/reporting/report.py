from __future__ import annotations
import numpy as np
from sonoscope.reporting.fault_log import count_by_severity, sort_faults
from sonoscope.types import FaultEvent, ResultBundle
from sonoscope.utils.hashing import sha256_hex_arrays, sha256_hex_canonical_json
from sonoscope.utils.quantize import q, q_list


def _stats(x: np.ndarray, step: float) -> dict:
    """Quantized min/mean/max of a per-frame series."""
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0:
        return {"min": None, "mean": None, "max": None}
    return {
        "min": q(float(np.min(x)), step),
        "mean": q(float(np.mean(x)), step),
        "max": q(float(np.max(x)), step),
    }


def _fault_entry(fault: FaultEvent, bundle: ResultBundle) -> dict:
    entry = fault.to_dict()
    entry["start_s"] = q(bundle.frame_to_seconds(fault.frame_start), 0.001)
    if fault.value is not None:
        entry["value"] = q(float(fault.value), 0.0001)
    return entry


def bundle_arrays(bundle: ResultBundle) -> dict[str, np.ndarray]:
    """Flatten every array of a bundle into a name -> array mapping."""
    arrays = {
        "rms_left": bundle.rms_left,
        "rms_right": bundle.rms_right,
        "bands_left": bundle.bands_left,
        "bands_right": bundle.bands_right,
        "spectral_flux": bundle.spectral_flux,
        "flux_median": bundle.flux_median,
        "onsets": bundle.onsets,
        "phase_correlation": bundle.phase_correlation,
        "band_edges_hz": np.array(
            [[b.f_low, b.f_high] for b in bundle.bands], dtype=np.float64
        ),
        "band_bins": np.array(
            [[b.low_bin, b.high_bin] for b in bundle.bands], dtype=np.int64
        ),
    }
    for scale, lod in zip(bundle.waveform_lods.scales, bundle.waveform_lods.left):
        arrays[f"lod_left_{scale}"] = lod
    for scale, lod in zip(bundle.waveform_lods.scales, bundle.waveform_lods.right):
        arrays[f"lod_right_{scale}"] = lod
    for i, tile in enumerate(bundle.spectrogram_tiles_left):
        arrays[f"spectrogram_left_{i:04d}"] = tile
    for i, tile in enumerate(bundle.spectrogram_tiles_right):
        arrays[f"spectrogram_right_{i:04d}"] = tile
    return arrays


def build_report_dict(
    bundle: ResultBundle,
    *,
    engine: dict,
    input_meta: dict,
    algorithms: dict | None = None,
) -> dict:
    """
    Build a JSON-ready analysis report with an integrity hash.

    Args:
        bundle: Completed analysis result
        engine: Engine metadata (name, version)
        input_meta: Input file metadata
        algorithms: Algorithm registry used for the run

    Returns:
        Report dictionary; floats are quantized so the hash is stable
    """
    faults = sort_faults(bundle.faults)
    report = {
        "schema_version": "1.0",
        "engine": engine,
        "input": input_meta,
        "analysis": {
            "sample_rate": bundle.sample_rate,
            "num_samples": bundle.num_samples,
            "duration_s": q(bundle.duration, 0.001),
            "fft_size": bundle.fft_size,
            "hop_size": bundle.hop_size,
            "num_bands": bundle.num_bands,
            "num_frames": bundle.num_frames,
            "tile_size": bundle.tile_size,
            "waveform_scales": list(bundle.waveform_lods.scales),
            "algorithms": algorithms or {},
        },
        "bands": [
            {
                "index": b.index,
                "f_low_hz": q(b.f_low, 0.01),
                "f_high_hz": q(b.f_high, 0.01),
                "low_bin": b.low_bin,
                "high_bin": b.high_bin,
            }
            for b in bundle.bands
        ],
        "metrics": {
            "rms_left": _stats(bundle.rms_left, 1e-4),
            "rms_right": _stats(bundle.rms_right, 1e-4),
            "phase_correlation": _stats(bundle.phase_correlation, 1e-3),
            "spectral_flux": _stats(bundle.spectral_flux, 1e-6),
            "onset_count": int(bundle.onsets.size),
            "onset_times_s": q_list(
                [bundle.frame_to_seconds(int(f)) for f in bundle.onsets], 0.001
            ),
        },
        "faults": {
            "counts": count_by_severity(faults),
            "events": [_fault_entry(f, bundle) for f in faults],
        },
        "integrity": {
            "arrays_hash_sha256": sha256_hex_arrays(list(bundle_arrays(bundle).values())),
            "report_hash_sha256": "",
        },
    }

    # Hash everything except the report hash itself
    tmp = dict(report)
    tmp["integrity"] = {"arrays_hash_sha256": report["integrity"]["arrays_hash_sha256"]}
    report["integrity"]["report_hash_sha256"] = sha256_hex_canonical_json(tmp)
    return report
