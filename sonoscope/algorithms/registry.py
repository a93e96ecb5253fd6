"""Algorithm registry for the analysis stages."""
from __future__ import annotations

from sonoscope.analysis.spectral import SPECTROGRAM_MIN_DB
from sonoscope.metrics.onsets import MEDIAN_FLOOR, MEDIAN_RADIUS, ONSET_FACTOR
from sonoscope.thresholds.faults import build_fault_config
from sonoscope.types import EPSILON, TILE_SIZE, WAVEFORM_SCALES, AnalysisConfig

FFT_ALGO_ID = "fft_radix2_cooley_tukey_v1"
BAND_ENERGY_ALGO_ID = "band_energy_log_sqrt_u8_v1"
ONSET_ALGO_ID = "onset_flux_median_peak_v1"
PHASE_CORRELATION_ALGO_ID = "phase_correlation_hop_uncentered_v1"
FAULT_RULES_ALGO_ID = "fault_rules_v1"


def build_algorithm_registry(config: AnalysisConfig, *, fault_config: dict | None = None) -> dict:
    """Build the algorithm registry with the parameters locked for a run."""
    return {
        FFT_ALGO_ID: {
            "id": FFT_ALGO_ID,
            "params": {
                "fft_size": config.fft_size,
                "hop_size": config.hop_size,
                "window": "hann_symmetric",
                "twiddle_cache": "per_engine",
            }
        },
        "waveform_lod_minmax_v1": {
            "id": "waveform_lod_minmax_v1",
            "params": {
                "scales": list(WAVEFORM_SCALES),
                "layout": "interleaved_min_max",
            }
        },
        "rms_envelope_hop_v1": {
            "id": "rms_envelope_hop_v1",
            "params": {
                "grid": "hop",
                "hop_size": config.hop_size,
            }
        },
        BAND_ENERGY_ALGO_ID: {
            "id": BAND_ENERGY_ALGO_ID,
            "params": {
                "num_bands": config.num_bands,
                "f_low_hz": 20.0,
                "f_high_hz": min(20000.0, config.sample_rate / 2.0),
                "normalize": "frame_peak",
                "compression": "sqrt",
                "quantization": "uint8",
            }
        },
        "spectrogram_db_u8_v1": {
            "id": "spectrogram_db_u8_v1",
            "params": {
                "floor_db": SPECTROGRAM_MIN_DB,
                "reference": "frame_peak",
                "tile_frames": TILE_SIZE,
                "epsilon": EPSILON,
            }
        },
        ONSET_ALGO_ID: {
            "id": ONSET_ALGO_ID,
            "params": {
                "flux": "positive_diff_mixed_magnitude",
                "median_radius": MEDIAN_RADIUS,
                "factor": ONSET_FACTOR,
                "median_floor": MEDIAN_FLOOR,
            }
        },
        PHASE_CORRELATION_ALGO_ID: {
            "id": PHASE_CORRELATION_ALGO_ID,
            "params": {
                "grid": "hop",
                "clamp": [-1.0, 1.0],
            }
        },
        FAULT_RULES_ALGO_ID: {
            "id": FAULT_RULES_ALGO_ID,
            "params": build_fault_config(fault_config),
        },
    }


def algorithm_ids_from_registry(registry: dict) -> list[str]:
    """Return sorted algorithm IDs from registry."""
    return sorted(registry.keys())
