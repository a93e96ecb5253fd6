"""DSP modules for sonoscope."""

from sonoscope.dsp.fft import TransformEngine, TwiddleCache, is_power_of_two
from sonoscope.dsp.framing import (
    fill_windowed_frame,
    frame_count,
    hop_blocks,
    windowed_frames,
)
from sonoscope.dsp.windowing import hann

__all__ = [
    "TransformEngine",
    "TwiddleCache",
    "is_power_of_two",
    "fill_windowed_frame",
    "frame_count",
    "hop_blocks",
    "windowed_frames",
    "hann",
]
