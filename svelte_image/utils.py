"""Utility helpers for extensions, URLs and file writes."""

from __future__ import annotations

import hashlib
import os
import re
import tempfile
from pathlib import Path
from typing import Iterable

EXTERNAL_PATTERN = re.compile(r"^(https?:)?//", re.IGNORECASE)


def file_extension(value: str) -> str:
    """Return the last dot segment of ``value``, lower-cased."""
    tail = value.rsplit("/", 1)[-1]
    if "." not in tail:
        return ""
    return tail.rsplit(".", 1)[-1].lower()


def has_allowed_extension(value: str, extensions: Iterable[str]) -> bool:
    """Empty allow-lists accept everything; matching is case-insensitive."""
    allowed = {ext.lower().lstrip(".") for ext in extensions}
    if not allowed:
        return True
    return file_extension(value) in allowed


def is_external(value: str) -> bool:
    return bool(EXTERNAL_PATTERN.match(value))


def url_hash(url: str) -> str:
    """Stable cache key for a remote URL."""
    return hashlib.sha1(url.encode("utf-8")).hexdigest()


def write_bytes_atomic(target: Path, data: bytes) -> None:
    """Write ``data`` next to ``target`` and move it into place."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp, target)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
