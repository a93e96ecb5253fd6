"""Decoding audio files into the stereo float32 buffers the pipeline consumes."""
from __future__ import annotations
import logging
import shutil
import subprocess
import warnings as py_warnings
import numpy as np
import soundfile as sf
from sonoscope.types import AudioBuffer, InputError

logger = logging.getLogger(__name__)


def _split_stereo(
    samples: np.ndarray,
    *,
    backend: str,
    warnings: list[str]
) -> tuple[np.ndarray, np.ndarray, int]:
    """Split decoded audio into float32 left/right channels."""
    x = np.asarray(samples, dtype=np.float32)
    if x.ndim == 1:
        x = x.reshape(-1, 1)
    if x.ndim != 2:
        raise InputError("Decoded audio must be 1D or 2D array.")
    channels = int(x.shape[1])
    if channels == 0:
        raise InputError(f"{backend}: decoded audio has no channels.")
    left = np.ascontiguousarray(x[:, 0])
    if channels == 1:
        return left, left.copy(), 1
    if channels > 2:
        warnings.append(
            f"{backend}: kept the first 2 of {channels} channels."
        )
    return left, np.ascontiguousarray(x[:, 1]), channels


def _decode_soundfile(path: str) -> tuple[np.ndarray, float, list[str]]:
    """Decode using soundfile (libsndfile), collecting any library warnings."""
    with py_warnings.catch_warnings(record=True) as caught:
        py_warnings.simplefilter("always")
        with sf.SoundFile(path) as f:
            fs = float(f.samplerate)
            data = f.read(dtype="float32", always_2d=True)
    return data, fs, [f"soundfile: {w.message}" for w in caught]


def _require_tool(name: str) -> str:
    exe = shutil.which(name)
    if not exe:
        raise RuntimeError(f"{name} not found; install ffmpeg to decode this format.")
    return exe


def _probe_stream(path: str) -> tuple[int, int]:
    """Return (sample_rate, channels) of the first audio stream."""
    cmd = [
        _require_tool("ffprobe"),
        "-v", "error",
        "-select_streams", "a:0",
        "-show_entries", "stream=sample_rate,channels",
        "-of", "csv=p=0",
        path,
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    fields = proc.stdout.strip().split(",")
    if proc.returncode != 0 or len(fields) != 2:
        detail = proc.stderr.strip() or "no audio stream"
        raise InputError(f"ffprobe could not read {path}: {detail}")
    return int(fields[0]), int(fields[1])


def _decode_ffmpeg(path: str) -> tuple[np.ndarray, float, list[str]]:
    """Pipe the first audio stream through ffmpeg as interleaved float32 PCM."""
    fs, channels = _probe_stream(path)
    cmd = [
        _require_tool("ffmpeg"),
        "-v", "warning",
        "-i", path,
        "-map", "0:a:0",
        "-f", "f32le",
        "pipe:1",
    ]
    proc = subprocess.run(cmd, capture_output=True, check=False)
    stderr = proc.stderr.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        raise InputError(f"ffmpeg could not decode {path}.")
    warn_list = [f"ffmpeg: {line}" for line in stderr.splitlines() if line.strip()]
    pcm = np.frombuffer(proc.stdout, dtype="<f4")
    usable = pcm.size - pcm.size % max(1, channels)
    if usable != pcm.size:
        warn_list.append("ffmpeg: dropped a partial sample frame at end of stream.")
    return pcm[:usable].reshape(-1, max(1, channels)), float(fs), warn_list


def load_audio(path: str) -> AudioBuffer:
    """
    Load an audio file as a float32 stereo pair.

    Supports WAV, FLAC, AIFF via soundfile; other formats fall back to ffmpeg
    when installed. Mono files are duplicated to both channels.
    """
    try:
        backend = "soundfile"
        data, fs, warnings_list = _decode_soundfile(path)
    except RuntimeError as exc:
        # libsndfile errors subclass RuntimeError; without ffmpeg there is no fallback
        if not shutil.which("ffmpeg"):
            raise
        logger.info("soundfile could not decode %s, trying ffmpeg: %s", path, exc)
        backend = "ffmpeg"
        data, fs, warnings_list = _decode_ffmpeg(path)
        warnings_list.insert(0, f"soundfile: {exc}")

    left, right, channels = _split_stereo(
        data, backend=backend, warnings=warnings_list
    )
    for w in warnings_list:
        logger.warning("%s: %s", path, w)
    return AudioBuffer(
        left=left,
        right=right,
        fs=float(fs),
        duration=left.shape[0] / float(fs),
        channels=channels,
        backend=backend,
        warnings=warnings_list
    )


def buffer_from_arrays(left, right=None, fs: float = 44100.0) -> AudioBuffer:
    """Wrap in-memory channel arrays; a missing right channel copies the left."""
    l = np.ascontiguousarray(left, dtype=np.float32)
    r = l.copy() if right is None else np.ascontiguousarray(right, dtype=np.float32)
    return AudioBuffer(
        left=l,
        right=r,
        fs=float(fs),
        duration=l.shape[0] / float(fs) if fs else 0.0,
        channels=1 if right is None else 2,
        backend="memory",
    )
