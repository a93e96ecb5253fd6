"""
sonoscope - offline stereo audio analysis

Turns decoded stereo PCM into waveform LODs, RMS envelopes, log-band
energies, spectrogram tiles, onsets, phase correlation and signal faults
for downstream visualization.
"""
from sonoscope.version import __version__
from sonoscope.types import (
    InputError,
    FaultType,
    Severity,
    AudioBuffer,
    AnalysisConfig,
    BandRange,
    FaultEvent,
    Progress,
    WaveformLODs,
    ResultBundle,
)
from sonoscope.analysis.pipeline import analyze, analyze_buffer, run_job

__all__ = [
    "__version__",
    "InputError",
    "FaultType",
    "Severity",
    "AudioBuffer",
    "AnalysisConfig",
    "BandRange",
    "FaultEvent",
    "Progress",
    "WaveformLODs",
    "ResultBundle",
    "analyze",
    "analyze_buffer",
    "run_job",
]
