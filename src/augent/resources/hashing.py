from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable

from augent.constants import HASH_PREFIX, MANIFEST_FILENAME
from augent.core.exceptions import wrap_os_error


def hash_bytes(content: bytes) -> str:
    return f"{HASH_PREFIX}{hashlib.sha256(content).hexdigest()}"


def hash_file(path: Path) -> str:
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as handle:
            for chunk in iter(lambda: handle.read(65536), b""):
                digest.update(chunk)
    except OSError as exc:
        raise wrap_os_error(exc, path) from exc
    return f"{HASH_PREFIX}{digest.hexdigest()}"


def hash_bundle_tree(root: Path, relative_paths: Iterable[str]) -> str:
    """Fingerprint a bundle from its resource files plus its manifest.

    Each sorted relative path is followed by ``\\0``, the file's own sha256 and
    another ``\\0``, so renames and edits both change the result.
    """
    digest = hashlib.sha256()
    entries = set(relative_paths)
    if (root / MANIFEST_FILENAME).is_file():
        entries.add(MANIFEST_FILENAME)

    for relative in sorted(entries):
        digest.update(relative.encode("utf-8"))
        digest.update(b"\0")
        digest.update(hash_file(root / relative).encode("utf-8"))
        digest.update(b"\0")

    return f"{HASH_PREFIX}{digest.hexdigest()}"
