from __future__ import annotations

from sonoscope.types import FaultEvent, FaultType, ResultBundle, Severity

_FAULT_LABELS = {
    FaultType.CLIPPING: "Clipping",
    FaultType.SILENCE: "Silence",
    FaultType.DC_OFFSET: "DC offset",
    FaultType.SPECTRAL_ANOMALY: "Spectral anomaly",
    FaultType.PHASE_INVERSION: "Phase inversion",
    FaultType.DYNAMIC_RANGE: "Dynamic range",
    FaultType.MONO_SEGMENT: "Mono segment",
}

_SEVERITY_RANK = {Severity.CRIT: 0, Severity.WARN: 1, Severity.INFO: 2}


def fault_label(fault_type: FaultType) -> str:
    return _FAULT_LABELS.get(fault_type, fault_type.value.replace("_", " "))


def sort_faults(faults: list[FaultEvent]) -> list[FaultEvent]:
    """Chronological order by frame_start, then severity; stable for ties."""
    return sorted(faults, key=lambda f: (f.frame_start, _SEVERITY_RANK[f.severity]))


def count_by_severity(faults: list[FaultEvent]) -> dict:
    counts = {s.value: 0 for s in Severity}
    for f in faults:
        counts[f.severity.value] += 1
    return counts


def _clock(seconds: float) -> str:
    minutes, secs = divmod(max(0.0, seconds), 60.0)
    return f"{int(minutes):02d}:{secs:06.3f}"


def format_fault(fault: FaultEvent, bundle: ResultBundle) -> str:
    """One log line: severity, time span, label and message."""
    start = bundle.frame_to_seconds(fault.frame_start)
    end = bundle.frame_to_seconds(fault.frame_end + 1)
    end = min(end, bundle.duration)
    return (
        f"[{fault.severity.value:<4}] {_clock(start)}-{_clock(end)} "
        f"{fault_label(fault.fault_type)}: {fault.message}"
    )


def build_fault_log(bundle: ResultBundle) -> list[str]:
    """Return the bundle's faults as chronologically sorted log lines."""
    return [format_fault(f, bundle) for f in sort_faults(bundle.faults)]
