from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

FS = 44100


def sine(freq_hz: float, duration_s: float, fs: int = FS, amp: float = 1.0) -> np.ndarray:
    t = np.arange(int(round(duration_s * fs))) / fs
    return (amp * np.sin(2.0 * np.pi * freq_hz * t)).astype(np.float32)


def silence(duration_s: float, fs: int = FS) -> np.ndarray:
    return np.zeros(int(round(duration_s * fs)), dtype=np.float32)


def fault_types(bundle) -> list[str]:
    return [f.fault_type.value for f in bundle.faults]
