#!/usr/bin/env python
"""
Synthesize stereo test vectors for sonoscope.

Each vector exercises one fault rule or analysis property with a known
expected outcome; run `sonoscope faults <file>` on the output to check.
"""
from __future__ import annotations
import argparse
from pathlib import Path

import numpy as np
import soundfile as sf


def write_wav_stereo(path: Path, left: np.ndarray, right: np.ndarray, fs: int) -> None:
    """Write a stereo pair to a 32-bit float WAV file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = np.stack([left, right], axis=1).astype(np.float32)
    sf.write(str(path), data, fs, subtype="FLOAT")


def gen_sine(freq_hz: float, duration_s: float, fs: int, amp: float = 1.0) -> np.ndarray:
    """Generate a sine wave."""
    t = np.arange(int(duration_s * fs)) / fs
    return amp * np.sin(2.0 * np.pi * freq_hz * t)


def gen_white_noise(duration_s: float, fs: int, amp: float, rng: np.random.Generator) -> np.ndarray:
    """Generate peak-normalized white noise."""
    white = rng.standard_normal(int(duration_s * fs))
    white = white / (np.max(np.abs(white)) + 1e-10)
    return amp * white


def build_vectors(fs: int) -> dict[str, tuple[np.ndarray, np.ndarray]]:
    rng = np.random.default_rng(42)
    vectors = {}

    # Full scale tone: 83 frames per second at 44.1 kHz, crest near 3 dB
    tone = gen_sine(1000.0, 1.0, fs)
    vectors["v0001_sine_1khz_fullscale"] = (tone, tone.copy())

    # 50 clipped samples in silence -> one CRIT clipping event
    burst = np.zeros(fs)
    burst[10000:10050] = 1.0
    vectors["v0002_clip_burst"] = (burst, burst.copy())

    # Digital silence -> one WARN silence event, no DC offset
    vectors["v0003_silence"] = (np.zeros(2 * fs), np.zeros(2 * fs))

    # Duplicated mono content -> one INFO mono segment
    mono = gen_sine(440.0, 3.0, fs, 0.5)
    vectors["v0004_dual_mono"] = (mono, mono.copy())

    # Polarity-flipped right channel -> phase inversion
    anti = gen_sine(440.0, 1.0, fs, 0.5)
    vectors["v0005_antiphase"] = (anti, -anti)

    # Decorrelated noise with a DC bias -> DC offset INFO
    vectors["v0006_noise_dc_bias"] = (
        gen_white_noise(2.0, fs, 0.2, rng) + 0.05,
        gen_white_noise(2.0, fs, 0.2, rng) + 0.05,
    )
    return vectors


def main():
    """Generate all test vectors."""
    ap = argparse.ArgumentParser(description="Write sonoscope stereo test vectors")
    ap.add_argument(
        "--out",
        default=str(Path(__file__).parent.parent / "validation" / "vectors"),
        help="Output directory",
    )
    ap.add_argument("--fs", type=int, default=44100, help="Sample rate")
    args = ap.parse_args()

    base_dir = Path(args.out)
    print("Generating test vectors...")
    vectors = build_vectors(args.fs)
    for name, (left, right) in vectors.items():
        path = base_dir / name / "input.wav"
        write_wav_stereo(path, left, right, args.fs)
        print(f"  Created: {path}")
    print(f"\nGenerated {len(vectors)} test vectors in: {base_dir}")


if __name__ == "__main__":
    main()
