"""Content hashing for removability checks.

Artifacts are compared by the SHA-1 of their bytes, the same digest Maven
repositories publish in ``.sha1`` sidecar files, so a precomputed repository
checksum and a freshly streamed one are interchangeable.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO

CHUNK_SIZE = 64 * 1024


def sha1_hex(data: bytes) -> str:
    """Return the SHA-1 hex digest of raw bytes."""
    return hashlib.sha1(data).hexdigest()


def sha1_stream(stream: BinaryIO) -> str:
    """Digest a binary stream in chunks, without loading it whole."""
    digest = hashlib.sha1()
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b""):
        digest.update(chunk)
    return digest.hexdigest()


def sha1_file(path: Path) -> str:
    """Digest a file on disk. Raises ``OSError`` if it cannot be read."""
    with open(path, "rb") as stream:
        return sha1_stream(stream)


def read_sha1_sidecar(path: Path) -> str | None:
    """Read the ``<file>.sha1`` checksum published next to ``path``, if any.

    Sidecars may hold ``<digest>`` or ``<digest>  <filename>``.
    """
    sidecar = path.with_name(path.name + ".sha1")
    if not sidecar.is_file():
        return None
    tokens = sidecar.read_text(encoding="utf-8").split()
    if not tokens:
        return None
    return tokens[0].lower()
