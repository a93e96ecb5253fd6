from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import numpy as np

DEFAULT_FFT_SIZE = 2048
DEFAULT_HOP_SIZE = 512
DEFAULT_NUM_BANDS = 40
WAVEFORM_SCALES = (64, 256, 1024, 4096)
TILE_SIZE = 1000
EPSILON = 1e-12


class InputError(ValueError):
    """Malformed configuration or channel data; aborts the run."""


class FaultType(str, Enum):
    CLIPPING = "clipping"
    SILENCE = "silence"
    DC_OFFSET = "dc_offset"
    SPECTRAL_ANOMALY = "spectral_anomaly"
    PHASE_INVERSION = "phase_inversion"
    DYNAMIC_RANGE = "dynamic_range"
    MONO_SEGMENT = "mono_segment"


class Severity(str, Enum):
    CRIT = "CRIT"
    WARN = "WARN"
    INFO = "INFO"


@dataclass(frozen=True)
class AudioBuffer:
    left: np.ndarray
    right: np.ndarray
    fs: float
    duration: float
    channels: int = 2
    backend: str = "memory"
    warnings: list[str] = field(default_factory=list)

    @property
    def num_samples(self) -> int:
        return int(self.left.shape[0])


@dataclass(frozen=True)
class AnalysisConfig:
    sample_rate: float
    fft_size: int = DEFAULT_FFT_SIZE
    hop_size: int = DEFAULT_HOP_SIZE
    num_bands: int = DEFAULT_NUM_BANDS

    @property
    def num_bins(self) -> int:
        return self.fft_size // 2

    @property
    def bin_width_hz(self) -> float:
        return self.sample_rate / self.fft_size


@dataclass(frozen=True)
class BandRange:
    index: int
    f_low: float
    f_high: float
    low_bin: int
    high_bin: int

    def contains(self, freq_hz: float) -> bool:
        return self.f_low <= freq_hz < self.f_high


@dataclass(frozen=True)
class FaultEvent:
    fault_type: FaultType
    severity: Severity
    frame_start: int
    frame_end: int
    message: str
    value: float | None = None

    def to_dict(self) -> dict:
        out = {
            "type": self.fault_type.value,
            "severity": self.severity.value,
            "frame_start": int(self.frame_start),
            "frame_end": int(self.frame_end),
            "message": self.message,
        }
        if self.value is not None:
            out["value"] = float(self.value)
        return out


@dataclass(frozen=True)
class Progress:
    percent: int
    stage: str


@dataclass(frozen=True)
class WaveformLODs:
    scales: tuple[int, ...]
    left: tuple[np.ndarray, ...]
    right: tuple[np.ndarray, ...]


@dataclass(frozen=True)
class ResultBundle:
    sample_rate: float
    num_samples: int
    num_frames: int
    duration: float
    fft_size: int
    hop_size: int
    num_bands: int
    tile_size: int
    bands: tuple[BandRange, ...]
    waveform_lods: WaveformLODs
    rms_left: np.ndarray
    rms_right: np.ndarray
    bands_left: np.ndarray
    bands_right: np.ndarray
    spectral_flux: np.ndarray
    flux_median: np.ndarray
    onsets: np.ndarray
    phase_correlation: np.ndarray
    spectrogram_tiles_left: tuple[np.ndarray, ...]
    spectrogram_tiles_right: tuple[np.ndarray, ...]
    faults: tuple[FaultEvent, ...]

    @property
    def num_bins(self) -> int:
        return self.fft_size // 2

    def frame_to_seconds(self, frame: int) -> float:
        return float(frame) * self.hop_size / self.sample_rate

    def spectrogram_frame(self, channel: str, frame: int) -> np.ndarray:
        """Return the 8-bit spectrogram row for one frame of 'left' or 'right'."""
        if channel == "left":
            tiles = self.spectrogram_tiles_left
        elif channel == "right":
            tiles = self.spectrogram_tiles_right
        else:
            raise ValueError("channel must be 'left' or 'right'.")
        if not 0 <= frame < self.num_frames:
            raise IndexError(f"frame {frame} out of range [0, {self.num_frames}).")
        return tiles[frame // self.tile_size][frame % self.tile_size]
