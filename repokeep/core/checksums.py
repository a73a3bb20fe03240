"""Digest helpers for artifact files and their checksum siblings.

A Maven repository keeps ``<file>.md5`` and ``<file>.sha1`` next to each
artifact.  The indexer prefers those sibling files and falls back to
hashing the artifact; the version-index writer rewrites them after
replacing ``maven-metadata.xml``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

CHECKSUM_ALGORITHMS: tuple[str, ...] = ("md5", "sha1")

_CHUNK_SIZE = 64 * 1024


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str
    ).encode("utf-8")


def digest_bytes(data: bytes, algorithm: str) -> str:
    """Return the hex digest of raw bytes."""
    return hashlib.new(algorithm, data).hexdigest()


def digest_file(path: Path, algorithm: str) -> str:
    """Return the hex digest of a file, read in chunks."""
    h = hashlib.new(algorithm)
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def read_checksum_file(path: Path) -> str | None:
    """Read the digest stored in a checksum sibling file.

    Accepts both the bare ``<hex>`` form and the ``<hex>  <filename>``
    form written by ``md5sum``/``sha1sum``.  Returns ``None`` if the file
    is missing or empty.
    """
    try:
        text = Path(path).read_text(encoding="ascii", errors="replace").strip()
    except FileNotFoundError:
        return None
    if not text:
        return None
    return text.split()[0].lower()


def checksum_for(path: Path, algorithm: str) -> str:
    """Digest for ``path``: the sibling file's value, else computed."""
    path = Path(path)
    stored = read_checksum_file(path.with_name(f"{path.name}.{algorithm}"))
    return stored if stored is not None else digest_file(path, algorithm)


def write_checksum_files(path: Path) -> dict[str, Path]:
    """(Re)write ``.md5`` and ``.sha1`` siblings for ``path``.

    Returns a mapping of algorithm to the written sibling path.
    """
    path = Path(path)
    data = path.read_bytes()
    written: dict[str, Path] = {}
    for algorithm in CHECKSUM_ALGORITHMS:
        sibling = path.with_name(f"{path.name}.{algorithm}")
        sibling.write_text(digest_bytes(data, algorithm), encoding="ascii")
        written[algorithm] = sibling
    return written
