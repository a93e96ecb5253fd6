from __future__ import annotations

import numpy as np
import soundfile as sf

from sonoscope.io.audio import buffer_from_arrays, load_audio
from tests.conftest import FS, sine


def test_load_stereo_wav(tmp_path):
    left = sine(440.0, 0.25, amp=0.5)
    right = sine(880.0, 0.25, amp=0.25)
    path = tmp_path / "stereo.wav"
    sf.write(str(path), np.stack([left, right], axis=1), FS, subtype="FLOAT")
    audio = load_audio(str(path))
    assert audio.channels == 2
    assert audio.fs == float(FS)
    assert audio.backend == "soundfile"
    assert audio.left.dtype == np.float32
    assert np.allclose(audio.left, left)
    assert np.allclose(audio.right, right)
    assert audio.duration == left.size / FS


def test_load_mono_wav_duplicates_channel(tmp_path):
    x = sine(440.0, 0.25, amp=0.5)
    path = tmp_path / "mono.wav"
    sf.write(str(path), x, FS, subtype="PCM_16")
    audio = load_audio(str(path))
    assert audio.channels == 1
    assert np.array_equal(audio.left, audio.right)
    assert np.allclose(audio.left, x, atol=1e-4)


def test_load_multichannel_keeps_first_two(tmp_path):
    x = np.stack([sine(f, 0.1, amp=0.2) for f in (200.0, 400.0, 800.0)], axis=1)
    path = tmp_path / "three.wav"
    sf.write(str(path), x, FS, subtype="FLOAT")
    audio = load_audio(str(path))
    assert audio.channels == 3
    assert np.allclose(audio.right, x[:, 1])
    assert any("first 2 of 3" in w for w in audio.warnings)


def test_buffer_from_arrays():
    x = np.arange(4, dtype=np.float64)
    audio = buffer_from_arrays(x, fs=4.0)
    assert audio.left.dtype == np.float32
    assert audio.channels == 1
    assert audio.duration == 1.0
    assert np.array_equal(audio.left, audio.right)
    assert audio.right is not audio.left
