from __future__ import annotations
import json
from dataclasses import dataclass, field
from sonoscope.analysis.pipeline import validate_config, validate_grid
from sonoscope.thresholds.faults import build_fault_config
from sonoscope.types import (
    DEFAULT_FFT_SIZE,
    DEFAULT_HOP_SIZE,
    DEFAULT_NUM_BANDS,
    AnalysisConfig,
    InputError,
)

ANALYSIS_KEYS = {"fft_size", "hop_size", "num_bands"}


@dataclass(frozen=True)
class AnalysisProfile:
    name: str
    analysis: dict
    faults: dict = field(default_factory=dict)

    def config_for(self, sample_rate: float) -> AnalysisConfig:
        """Validate the analysis section against a concrete sample rate."""
        return validate_config(
            sample_rate,
            self.analysis.get("fft_size", DEFAULT_FFT_SIZE),
            self.analysis.get("hop_size", DEFAULT_HOP_SIZE),
            self.analysis.get("num_bands", DEFAULT_NUM_BANDS),
        )


def profile_from_dict(j: dict, *, name: str = "custom") -> AnalysisProfile:
    """Build a profile from a parsed {"analysis": {...}, "faults": {...}} dict."""
    if not isinstance(j, dict):
        raise InputError("Analysis profile must be a JSON object.")
    unknown = sorted(set(j) - {"name", "analysis", "faults"})
    if unknown:
        raise InputError(f"Unknown profile section(s): {', '.join(unknown)}.")
    analysis = dict(j.get("analysis", {}))
    bad = sorted(set(analysis) - ANALYSIS_KEYS)
    if bad:
        raise InputError(f"Unknown analysis key(s): {', '.join(bad)}.")
    validate_grid(
        analysis.get("fft_size", DEFAULT_FFT_SIZE),
        analysis.get("hop_size", DEFAULT_HOP_SIZE),
        analysis.get("num_bands", DEFAULT_NUM_BANDS),
    )
    faults = dict(j.get("faults", {}))
    # Raises on unknown rule names.
    build_fault_config(faults)
    return AnalysisProfile(name=str(j.get("name", name)), analysis=analysis, faults=faults)


def load_analysis_profile(path: str) -> AnalysisProfile:
    """
    Load an analysis profile from JSON file.

    Args:
        path: Path to the profile JSON file

    Returns:
        AnalysisProfile with analysis overrides and fault rule overrides
    """
    with open(path, "r", encoding="utf-8") as f:
        j = json.load(f)
    return profile_from_dict(j, name=str(path))
