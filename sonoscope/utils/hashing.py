from __future__ import annotations
import hashlib
import numpy as np
from sonoscope.utils.canonical_json import canonical_dumps


def sha256_hex_bytes(b: bytes) -> str:
    """Compute SHA256 hash of bytes and return hex string."""
    return hashlib.sha256(b).hexdigest()


def sha256_hex_canonical_json(obj) -> str:
    """Compute SHA256 hash of canonical JSON representation."""
    return sha256_hex_bytes(canonical_dumps(obj).encode("utf-8"))


def sha256_hex_arrays(arrays: list[np.ndarray]) -> str:
    """Hash dtype, shape and contents of a sequence of arrays."""
    h = hashlib.sha256()
    for a in arrays:
        a = np.ascontiguousarray(a)
        h.update(f"{a.dtype.str}{a.shape}".encode("ascii"))
        h.update(a.tobytes())
    return h.hexdigest()


def sha256_hex_file(path: str) -> str:
    """Compute SHA256 hash of a file."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()
