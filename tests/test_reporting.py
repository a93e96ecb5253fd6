from __future__ import annotations

import dataclasses

import numpy as np

from sonoscope import analyze
from sonoscope.algorithms.registry import algorithm_ids_from_registry, build_algorithm_registry
from sonoscope.io.bundle import load_bundle_header, save_bundle_npz
from sonoscope.reporting.fault_log import (
    build_fault_log,
    count_by_severity,
    format_fault,
    sort_faults,
)
from sonoscope.reporting.report import build_report_dict
from sonoscope.types import AnalysisConfig, FaultEvent, FaultType, Severity
from sonoscope.utils.canonical_json import canonical_dumps
from sonoscope.utils.hashing import sha256_hex_arrays, sha256_hex_canonical_json
from sonoscope.utils.quantize import q, q_list
from tests.conftest import FS, sine

ENGINE = {"name": "sonoscope", "version": "test"}


def _event(ftype, severity, start, end=None):
    return FaultEvent(ftype, severity, start, start if end is None else end, "msg")


def _bundle():
    x = sine(440.0, 1.0, amp=0.5)
    return analyze(x, -x, FS)


def test_sort_faults_by_start_then_severity():
    faults = [
        _event(FaultType.DYNAMIC_RANGE, Severity.INFO, 0, 80),
        _event(FaultType.SILENCE, Severity.WARN, 30),
        _event(FaultType.CLIPPING, Severity.CRIT, 30),
        _event(FaultType.PHASE_INVERSION, Severity.WARN, 0),
    ]
    ordered = sort_faults(faults)
    assert [(f.frame_start, f.severity) for f in ordered] == [
        (0, Severity.WARN),
        (0, Severity.INFO),
        (30, Severity.CRIT),
        (30, Severity.WARN),
    ]
    assert count_by_severity(faults) == {"CRIT": 1, "WARN": 2, "INFO": 1}


def test_fault_log_lines():
    bundle = _bundle()
    lines = build_fault_log(bundle)
    assert len(lines) == len(bundle.faults)
    assert any("Phase inversion" in line for line in lines)
    first = sort_faults(bundle.faults)[0]
    assert format_fault(first, bundle).startswith(f"[{first.severity.value:<4}] 00:00.000-")


def test_report_hash_is_stable_and_sensitive():
    bundle = _bundle()
    meta = {"path": "a.wav"}
    r1 = build_report_dict(bundle, engine=ENGINE, input_meta=meta)
    r2 = build_report_dict(bundle, engine=ENGINE, input_meta=meta)
    assert r1["integrity"] == r2["integrity"]
    r3 = build_report_dict(bundle, engine=ENGINE, input_meta={"path": "b.wav"})
    assert r3["integrity"]["report_hash_sha256"] != r1["integrity"]["report_hash_sha256"]
    assert r3["integrity"]["arrays_hash_sha256"] == r1["integrity"]["arrays_hash_sha256"]
    assert r1["analysis"]["num_frames"] == 83
    assert len(r1["bands"]) == 40
    assert r1["faults"]["counts"]["WARN"] >= 1
    canonical_dumps(r1)


def test_report_hash_matches_recomputation():
    bundle = _bundle()
    report = build_report_dict(bundle, engine=ENGINE, input_meta={})
    tmp = dict(report)
    tmp["integrity"] = {"arrays_hash_sha256": report["integrity"]["arrays_hash_sha256"]}
    assert report["integrity"]["report_hash_sha256"] == sha256_hex_canonical_json(tmp)


def test_npz_bundle_export(tmp_path):
    bundle = _bundle()
    path = save_bundle_npz(bundle, tmp_path / "out" / "bundle.npz")
    with np.load(path) as data:
        assert np.array_equal(data["rms_left"], bundle.rms_left)
        assert np.array_equal(data["spectrogram_left_0000"], bundle.spectrogram_tiles_left[0])
        assert np.array_equal(data["lod_right_64"], bundle.waveform_lods.right[0])
    header = load_bundle_header(path)
    assert header["num_frames"] == bundle.num_frames
    assert header["waveform_scales"] == [64, 256, 1024, 4096]
    assert len(header["faults"]) == len(bundle.faults)


def test_registry_ids_sorted():
    registry = build_algorithm_registry(AnalysisConfig(sample_rate=44100.0))
    ids = algorithm_ids_from_registry(registry)
    assert ids == sorted(ids)
    assert "fft_radix2_cooley_tukey_v1" in ids
    assert registry["fault_rules_v1"]["params"]["silence"]["min_seconds"] == 0.5


def test_quantize_and_array_hash():
    assert q(0.12345, 0.001) == 0.123
    assert q_list(np.array([0.26, 0.24]), 0.5) == [0.5, 0.0]
    a = np.arange(4, dtype=np.float32)
    assert sha256_hex_arrays([a]) != sha256_hex_arrays([a.astype(np.float64)])
    assert sha256_hex_arrays([a]) == sha256_hex_arrays([a.copy()])


def test_editing_registry_does_not_change_later_runs():
    registry = build_algorithm_registry(AnalysisConfig(sample_rate=44100.0))
    registry["fault_rules_v1"]["params"]["silence"]["min_seconds"] = 100.0
    x = np.zeros(2 * FS, dtype=np.float32)
    bundle = analyze(x, x.copy(), FS)
    assert [f.fault_type for f in bundle.faults].count(FaultType.SILENCE) == 1


def test_report_omits_missing_fault_value():
    bundle = dataclasses.replace(
        _bundle(),
        faults=(
            _event(FaultType.SILENCE, Severity.WARN, 3, 9),
            FaultEvent(FaultType.CLIPPING, Severity.CRIT, 5, 5, "msg", value=12.0),
        ),
    )
    events = build_report_dict(bundle, engine=ENGINE, input_meta={})["faults"]["events"]
    assert "value" not in events[0]
    assert events[0]["start_s"] == 0.035
    assert events[1]["value"] == 12.0
