"""Export of result bundles for renderers."""
from __future__ import annotations
import json
from pathlib import Path
import numpy as np
from sonoscope.reporting.report import bundle_arrays
from sonoscope.types import ResultBundle


def save_bundle_npz(bundle: ResultBundle, path: str | Path) -> Path:
    """Write every bundle array plus a JSON header into one compressed .npz."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    header = {
        "sample_rate": bundle.sample_rate,
        "num_samples": bundle.num_samples,
        "num_frames": bundle.num_frames,
        "fft_size": bundle.fft_size,
        "hop_size": bundle.hop_size,
        "num_bands": bundle.num_bands,
        "tile_size": bundle.tile_size,
        "waveform_scales": list(bundle.waveform_lods.scales),
        "faults": [f.to_dict() for f in bundle.faults],
    }
    arrays = bundle_arrays(bundle)
    arrays["header_json"] = np.frombuffer(json.dumps(header).encode("utf-8"), dtype=np.uint8)
    with open(path, "wb") as f:
        np.savez_compressed(f, **arrays)
    return path


def load_bundle_header(path: str | Path) -> dict:
    """Read back the JSON header of a saved bundle."""
    with np.load(path) as data:
        return json.loads(data["header_json"].tobytes().decode("utf-8"))
