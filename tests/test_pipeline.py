from __future__ import annotations

import numpy as np
import pytest

from sonoscope import analyze, analyze_buffer, run_job
from sonoscope.analysis.bands import band_containing
from sonoscope.analysis.pipeline import ProgressReporter, validate_config
from sonoscope.io.audio import buffer_from_arrays
from sonoscope.types import AnalysisConfig, FaultType, InputError, Severity
from tests.conftest import FS, fault_types, silence, sine


def faults_of(bundle, fault_type):
    return [f for f in bundle.faults if f.fault_type == fault_type]


def test_full_scale_sine():
    x = sine(1000.0, 1.0)
    bundle = analyze(x, x.copy(), FS)
    assert bundle.num_frames == 83
    assert bundle.rms_left.shape == (83,)
    assert np.allclose(bundle.rms_left, np.sqrt(0.5), rtol=0.01)
    assert bundle.bands_left.shape == (83, 40)
    assert bundle.onsets.size == 0
    strongest = int(np.argmax(bundle.bands_left.astype(np.float64).mean(axis=0)))
    assert bundle.bands[strongest] is band_containing(bundle.bands, 1000.0)
    (dr,) = faults_of(bundle, FaultType.DYNAMIC_RANGE)
    assert dr.value == pytest.approx(20 * np.log10(np.sqrt(2)), abs=0.05)


def test_stationary_signal_has_no_onsets():
    x = np.full(FS, 0.25, dtype=np.float32)
    bundle = analyze(x, x.copy(), FS)
    assert bundle.onsets.size == 0
    assert not bundle.spectral_flux.any()


def test_clip_burst_in_silence():
    x = silence(1.0)
    x[10000:10050] = 1.0
    bundle = analyze(x, x.copy(), FS)
    clips = faults_of(bundle, FaultType.CLIPPING)
    assert len(clips) == 1
    assert clips[0].severity == Severity.CRIT
    assert clips[0].frame_start <= 10000 // 512 <= clips[0].frame_end
    assert clips[0].frame_end == 10049 // 512


def test_all_zero_input():
    x = silence(2.0)
    bundle = analyze(x, x.copy(), FS)
    assert bundle.num_frames == 169
    (quiet,) = faults_of(bundle, FaultType.SILENCE)
    assert quiet.severity == Severity.WARN
    assert (quiet.frame_start, quiet.frame_end) == (0, 168)
    assert FaultType.DC_OFFSET.value not in fault_types(bundle)
    assert not bundle.phase_correlation.any()
    assert not bundle.bands_left.any() and not bundle.bands_right.any()
    assert not bundle.spectrogram_tiles_left[0].any()
    assert bundle.onsets.size == 0


def test_duplicated_mono_content():
    x = sine(440.0, 3.0, amp=0.5)
    bundle = analyze(x, x.copy(), FS)
    assert bundle.num_frames == 255
    (mono,) = faults_of(bundle, FaultType.MONO_SEGMENT)
    assert mono.severity == Severity.INFO
    assert mono.frame_start == 0 and mono.frame_end == 254
    assert np.allclose(bundle.phase_correlation, 1.0, atol=1e-4)


def test_antiphase_channels():
    x = sine(440.0, 1.0, amp=0.5)
    bundle = analyze(x, -x, FS)
    assert np.allclose(bundle.phase_correlation, -1.0, atol=1e-4)
    (inv,) = faults_of(bundle, FaultType.PHASE_INVERSION)
    assert inv.severity == Severity.WARN
    assert (inv.frame_start, inv.frame_end) == (0, bundle.num_frames - 1)


def test_short_signal_gets_one_zero_padded_frame():
    x = sine(440.0, 0.005, amp=0.5)
    bundle = analyze(x, x.copy(), FS)
    assert bundle.num_frames == 1
    assert len(bundle.spectrogram_tiles_left) == 1
    assert bundle.spectrogram_frame("left", 0).shape == (1024,)
    for lod in bundle.waveform_lods.left:
        assert lod.size % 2 == 0 and lod.size >= 2


def test_bundle_invariants():
    rng = np.random.default_rng(5)
    left = (0.3 * rng.standard_normal(3 * FS)).astype(np.float32)
    right = (0.3 * rng.standard_normal(3 * FS)).astype(np.float32)
    left[FS:FS + 64] += 0.6
    bundle = analyze(left, right, FS, hop_size=256, num_bands=24)
    assert bundle.bands_left.shape == (bundle.num_frames, 24)
    assert np.all(np.diff(bundle.onsets) > 0)
    assert np.all(bundle.onsets < bundle.num_frames)
    assert bundle.phase_correlation.min() >= -1.0
    assert bundle.phase_correlation.max() <= 1.0
    assert all(f.frame_end >= f.frame_start for f in bundle.faults)
    assert sum(t.shape[0] for t in bundle.spectrogram_tiles_left) == bundle.num_frames


def test_bundle_arrays_are_read_only():
    x = sine(440.0, 0.5, amp=0.5)
    bundle = analyze(x, x.copy(), FS)
    with pytest.raises(ValueError):
        bundle.rms_left[0] = 1.0
    with pytest.raises(ValueError):
        bundle.spectrogram_tiles_right[0][0, 0] = 1
    with pytest.raises(IndexError):
        bundle.spectrogram_frame("left", bundle.num_frames)
    for seq in (
        bundle.bands,
        bundle.faults,
        bundle.spectrogram_tiles_left,
        bundle.waveform_lods.right,
    ):
        assert isinstance(seq, tuple)


def test_input_is_not_modified():
    x = sine(440.0, 0.5, amp=0.5)
    before = x.copy()
    analyze(x, x, FS)
    assert np.array_equal(x, before)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"fft_size": 1000},
        {"fft_size": 1},
        {"hop_size": 0},
        {"num_bands": 0},
    ],
)
def test_bad_config_raises(kwargs):
    x = sine(440.0, 0.1)
    with pytest.raises(InputError):
        analyze(x, x.copy(), FS, **kwargs)


def test_bad_channels_raise():
    x = sine(440.0, 0.1)
    with pytest.raises(InputError, match="no samples"):
        analyze(np.zeros(0), np.zeros(0), FS)
    with pytest.raises(InputError, match="lengths differ"):
        analyze(x, x[:-1], FS)
    with pytest.raises(InputError):
        analyze(x, None, FS)
    with pytest.raises(InputError):
        analyze(x, x.copy(), 0)


def test_validate_config_returns_run_config():
    cfg = validate_config(48000, 1024, 256, 32)
    assert cfg == AnalysisConfig(sample_rate=48000.0, fft_size=1024, hop_size=256, num_bands=32)


def test_progress_is_monotonic_and_completes():
    seen = []
    x = sine(440.0, 2.0, amp=0.5)
    analyze(x, x.copy(), FS, on_progress=seen.append)
    percents = [p.percent for p in seen]
    assert percents == sorted(percents)
    assert percents[-1] == 100
    assert all(0 <= p <= 100 for p in percents)


def test_progress_reporter_drops_regressions():
    seen = []
    reporter = ProgressReporter(seen.append)
    reporter.report(40.4, "a")
    reporter.report(12, "b")
    reporter.report(140, "c")
    assert [(p.percent, p.stage) for p in seen] == [(40, "a"), (100, "c")]


def test_analyze_buffer_mono_source():
    x = sine(440.0, 0.5, amp=0.5)
    audio = buffer_from_arrays(x, fs=FS)
    bundle = analyze_buffer(audio)
    assert np.array_equal(bundle.rms_left, bundle.rms_right)
    with pytest.raises(InputError):
        analyze_buffer(audio, AnalysisConfig(sample_rate=48000.0))


def test_run_job_emits_progress_then_result():
    x = sine(440.0, 0.5, amp=0.5)
    messages = []
    run_job({"left": x, "right": x.copy(), "sample_rate": FS}, messages.append)
    assert messages[-1]["type"] == "result"
    assert messages[-1]["data"].num_frames == 40
    assert all(m["type"] == "progress" for m in messages[:-1])


def test_run_job_reports_single_error():
    messages = []
    run_job({"left": np.zeros(0), "right": np.zeros(0), "sample_rate": FS}, messages.append)
    assert messages == [{"type": "error", "message": "Audio payload has no samples."}]
