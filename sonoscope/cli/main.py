"""sonoscope CLI - offline audio analysis for visualization."""
from __future__ import annotations
import argparse
import json
import os
import platform
import sys
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path

from sonoscope.version import __version__
from sonoscope.types import AnalysisConfig, Progress, Severity
from sonoscope.io.audio import load_audio
from sonoscope.io.bundle import save_bundle_npz
from sonoscope.analysis.pipeline import analyze_buffer
from sonoscope.algorithms.registry import build_algorithm_registry
from sonoscope.profiles.loader import AnalysisProfile, load_analysis_profile
from sonoscope.reporting.fault_log import build_fault_log, count_by_severity
from sonoscope.reporting.report import build_report_dict
from sonoscope.utils.canonical_json import pretty_dumps
from sonoscope.utils.hashing import sha256_hex_file
from sonoscope.utils.logger import setup_logger


EXIT_OK = 0
EXIT_CRIT = 10
EXIT_BAD_ARGS = 2
EXIT_DECODE_ERROR = 3
EXIT_CONFIG_ERROR = 4
EXIT_INTERNAL_ERROR = 5
SUPPORTED_AUDIO_EXTS = {".wav", ".flac", ".aiff", ".aif", ".ogg", ".mp3"}


def _build_engine_meta() -> dict:
    return {
        "name": "sonoscope",
        "version": __version__,
        "python": platform.python_version(),
    }


def _build_input_meta(audio_path: str, audio) -> dict:
    return {
        "path": str(audio_path),
        "file_name": Path(audio_path).name,
        "file_sha256": sha256_hex_file(audio_path),
        "channels": audio.channels,
        "sample_rate": audio.fs,
        "duration_s": audio.duration,
        "backend": audio.backend,
        "warnings": list(audio.warnings),
    }


def _resolve_config(args, fs: float) -> tuple[AnalysisConfig, dict]:
    """Merge profile file settings with command line overrides."""
    profile = AnalysisProfile(name="default", analysis={})
    if getattr(args, "config", None):
        profile = load_analysis_profile(args.config)
    analysis = dict(profile.analysis)
    for key in ("fft_size", "hop_size", "num_bands"):
        value = getattr(args, key, None)
        if value is not None:
            analysis[key] = value
    config = AnalysisProfile(name=profile.name, analysis=analysis).config_for(fs)
    return config, profile.faults


def _progress_printer(quiet: bool):
    if quiet:
        return None

    def _print(p: Progress) -> None:
        print(f"\r[{p.percent:3d}%] {p.stage:<40}", end="", file=sys.stderr, flush=True)
        if p.percent >= 100:
            print(file=sys.stderr)

    return _print


def _analyze_file(audio_path: str, args, *, quiet: bool):
    if not Path(audio_path).is_file():
        raise FileNotFoundError(audio_path)
    audio = load_audio(audio_path)
    config, fault_cfg = _resolve_config(args, audio.fs)
    bundle = analyze_buffer(
        audio,
        config,
        fault_config=fault_cfg,
        on_progress=_progress_printer(quiet),
    )
    report = build_report_dict(
        bundle,
        engine=_build_engine_meta(),
        input_meta=_build_input_meta(audio_path, audio),
        algorithms=build_algorithm_registry(config, fault_config=fault_cfg),
    )
    return bundle, report


def _run_guarded(func, args) -> int:
    """Map exceptions to exit codes the way every command reports them."""
    try:
        return func(args)
    except FileNotFoundError as e:
        print(f"Error: File not found - {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    except json.JSONDecodeError as e:
        print(f"Error: Invalid config JSON - {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    except RuntimeError as e:
        print(f"Error: Could not decode audio - {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR


def cmd_analyze(args) -> int:
    """Handle analyze command."""
    bundle, report = _analyze_file(args.audio_path, args, quiet=args.quiet)
    output_json = pretty_dumps(report)
    if args.out:
        Path(args.out).write_text(output_json, encoding="utf-8")
        print(f"Report written to: {args.out}", file=sys.stderr)
    else:
        print(output_json)
    if args.npz:
        save_bundle_npz(bundle, args.npz)
        print(f"Bundle written to: {args.npz}", file=sys.stderr)
    return EXIT_OK


def cmd_faults(args) -> int:
    """Handle faults command."""
    bundle, _ = _analyze_file(args.audio_path, args, quiet=args.quiet)
    counts = count_by_severity(bundle.faults)
    print(f"File: {args.audio_path}")
    print(
        f"Frames: {bundle.num_frames} ({bundle.duration:.2f}s)  "
        f"CRIT={counts['CRIT']} WARN={counts['WARN']} INFO={counts['INFO']}"
    )
    for line in build_fault_log(bundle):
        print(f"  {line}")
    if args.fail_on_crit and counts[Severity.CRIT.value] > 0:
        return EXIT_CRIT
    return EXIT_OK


def _iter_audio_files(folder: Path, recursive: bool) -> list[Path]:
    """Collect supported audio files from a folder."""
    if not folder.exists():
        raise FileNotFoundError(f"Folder not found: {folder}")
    files = folder.rglob("*") if recursive else folder.glob("*")
    return sorted(
        p for p in files if p.is_file() and p.suffix.lower() in SUPPORTED_AUDIO_EXTS
    )


def _batch_worker(audio_path: str, out_dir: str, args_dict: dict) -> tuple[str, dict | None, str | None]:
    """Analyze one file in a worker process; errors come back as strings."""
    args = argparse.Namespace(**args_dict)
    try:
        bundle, report = _analyze_file(audio_path, args, quiet=True)
        stem = Path(audio_path).stem
        Path(out_dir, f"{stem}.report.json").write_text(pretty_dumps(report), encoding="utf-8")
        if args.npz:
            save_bundle_npz(bundle, Path(out_dir, f"{stem}.bundle.npz"))
        return audio_path, report["faults"]["counts"], None
    except Exception as exc:
        return audio_path, None, str(exc)


def cmd_batch(args) -> int:
    """Handle batch command."""
    files = _iter_audio_files(Path(args.folder), args.recursive)
    if not files:
        print("Error: No input files found.", file=sys.stderr)
        return EXIT_BAD_ARGS
    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    args_dict = {
        "config": args.config,
        "fft_size": args.fft_size,
        "hop_size": args.hop_size,
        "num_bands": args.num_bands,
        "npz": args.npz,
    }
    results: list[tuple[str, dict | None, str | None]] = []
    workers = max(1, int(args.workers))
    if workers == 1:
        for path in files:
            results.append(_batch_worker(str(path), str(out_dir), args_dict))
    else:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(_batch_worker, str(path), str(out_dir), args_dict)
                for path in files
            ]
            for fut in as_completed(futures):
                results.append(fut.result())

    failed = 0
    summary = []
    for path, counts, err in sorted(results):
        if err is not None:
            failed += 1
            print(f"[ERROR] {path}: {err}", file=sys.stderr)
        else:
            print(f"[OK] {path}: CRIT={counts['CRIT']} WARN={counts['WARN']} INFO={counts['INFO']}")
        summary.append({"path": path, "fault_counts": counts, "error": err})
    (out_dir / "batch-summary.json").write_text(
        pretty_dumps({"files": summary, "failed": failed}), encoding="utf-8"
    )
    return EXIT_OK if failed == 0 else EXIT_DECODE_ERROR


def _add_analysis_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config", "-c",
        help="Path to analysis profile JSON ({\"analysis\": {...}, \"faults\": {...}})"
    )
    p.add_argument("--fft-size", type=int, dest="fft_size", help="FFT size, power of two (default: 2048)")
    p.add_argument("--hop-size", type=int, dest="hop_size", help="Hop size in samples (default: 512)")
    p.add_argument("--bands", type=int, dest="num_bands", help="Number of log bands (default: 40)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sonoscope",
        description="sonoscope - offline stereo audio analysis for visualization"
    )
    parser.add_argument(
        "--version", action="version",
        version=f"sonoscope {__version__}"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze an audio file and write the JSON report"
    )
    analyze_parser.add_argument("audio_path", help="Path to audio file")
    _add_analysis_args(analyze_parser)
    analyze_parser.add_argument("--out", "-o", help="Output path for report JSON")
    analyze_parser.add_argument("--npz", help="Output path for the full array bundle (.npz)")
    analyze_parser.add_argument("--quiet", "-q", action="store_true", help="Hide progress")
    analyze_parser.set_defaults(func=cmd_analyze)

    faults_parser = subparsers.add_parser(
        "faults",
        help="Print the chronological fault log of an audio file"
    )
    faults_parser.add_argument("audio_path", help="Path to audio file")
    _add_analysis_args(faults_parser)
    faults_parser.add_argument(
        "--fail-on-crit",
        action="store_true",
        help=f"Exit with {EXIT_CRIT} when any CRIT fault is found"
    )
    faults_parser.add_argument("--quiet", "-q", action="store_true", help="Hide progress")
    faults_parser.set_defaults(func=cmd_faults)

    batch_parser = subparsers.add_parser(
        "batch",
        help="Analyze every audio file in a folder"
    )
    batch_parser.add_argument("--folder", required=True, help="Folder containing audio files")
    batch_parser.add_argument("--out-dir", required=True, help="Output directory for reports")
    _add_analysis_args(batch_parser)
    batch_parser.add_argument("--npz", action="store_true", help="Also write .npz bundles")
    batch_parser.add_argument(
        "--recursive",
        action="store_true",
        help="Recurse into subfolders"
    )
    batch_parser.add_argument(
        "--workers",
        type=int,
        default=max(1, (os.cpu_count() or 2) - 1),
        help="Parallel worker processes (default: cpu_count-1)"
    )
    batch_parser.set_defaults(func=cmd_batch)
    return parser


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        setup_logger("sonoscope", level=args.log_level, log_file=args.log_file)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_BAD_ARGS)
    if getattr(args, "config", None):
        try:
            load_analysis_profile(args.config)
        except FileNotFoundError as e:
            print(f"Error: Config not found - {e}", file=sys.stderr)
            sys.exit(EXIT_CONFIG_ERROR)
        except (json.JSONDecodeError, ValueError) as e:
            print(f"Error: Invalid config - {e}", file=sys.stderr)
            sys.exit(EXIT_CONFIG_ERROR)
    sys.exit(_run_guarded(args.func, args))


if __name__ == "__main__":
    main()
