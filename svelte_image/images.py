"""Remote image downloading and validation utilities."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import requests
from filetype import guess

from .errors import RemoteFetchError
from .utils import url_hash

logger = logging.getLogger("svelte_image.images")

PARTIAL_SUFFIX = ".part"
SNIFF_BYTES = 261
CHUNK_SIZE = 64 * 1024


def detect_mime_type(data: bytes) -> Optional[str]:
    """``image/*`` MIME type sniffed from ``data``, or ``None``."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        return kind.mime
    return None


def extension_from_content_type(content_type: Optional[str]) -> Optional[str]:
    """Map an ``image/*`` content type to a file extension."""
    if not content_type:
        return None
    parts = content_type.split(";")[0].strip().lower().split("/")
    if len(parts) != 2 or parts[0] != "image" or not parts[1]:
        return None
    ext = parts[1]
    if ext == "jpeg":
        return "jpg"
    if ext == "svg+xml":
        return "svg"
    return ext


def find_cached_download(folder: Path, key: str) -> Optional[Path]:
    """Return a completed download for ``key``; partial files never count."""
    if not folder.is_dir():
        return None
    for candidate in sorted(folder.glob(f"{key}.*")):
        if candidate.is_file() and not candidate.name.endswith(PARTIAL_SUFFIX):
            return candidate
    return None


def _clear_partials(folder: Path, key: str) -> None:
    for stale in folder.glob(f"{key}.*{PARTIAL_SUFFIX}"):
        logger.debug("Removing incomplete download %s", stale)
        stale.unlink(missing_ok=True)


def download_image(
    url: str,
    folder: Path,
    timeout: float = 15.0,
    session: Optional[requests.Session] = None,
) -> Optional[Path]:
    """Download ``url`` into ``folder`` keyed by a hash of the URL.

    Returns the local path, or ``None`` when the response is not an image.
    Transport and HTTP errors raise :class:`RemoteFetchError`; there is no
    retry.
    """
    key = url_hash(url)
    existing = find_cached_download(folder, key)
    if existing:
        logger.debug("Reusing cached download %s for %s", existing.name, url)
        return existing

    if session is not None:
        return _fetch(session, url, folder, key, timeout)
    with requests.Session() as http:
        return _fetch(http, url, folder, key, timeout)


def _fetch(
    http: requests.Session, url: str, folder: Path, key: str, timeout: float
) -> Optional[Path]:
    fetch_url = f"https:{url}" if url.startswith("//") else url
    try:
        resp = http.get(fetch_url, timeout=timeout, stream=True)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise RemoteFetchError(f"Failed to fetch image {url}: {exc}") from exc

    try:
        chunks = resp.iter_content(chunk_size=CHUNK_SIZE)
        head = b""
        try:
            for chunk in chunks:
                head += chunk
                if len(head) >= SNIFF_BYTES:
                    break
        except requests.RequestException as exc:
            raise RemoteFetchError(f"Download of {url} was interrupted: {exc}") from exc

        content_type = resp.headers.get("Content-Type", "")
        extension = extension_from_content_type(content_type)
        if extension is None and not content_type.lower().startswith(("text/", "application/json")):
            extension = extension_from_content_type(detect_mime_type(head))
        if extension is None:
            logger.warning(
                "Skipping %s: not an image (Content-Type=%s)", url, content_type or "unknown"
            )
            return None

        folder.mkdir(parents=True, exist_ok=True)
        _clear_partials(folder, key)
        destination = folder / f"{key}.{extension}"
        partial = folder / f"{key}.{extension}{PARTIAL_SUFFIX}"
        try:
            with open(partial, "wb") as handle:
                handle.write(head)
                for chunk in chunks:
                    handle.write(chunk)
            os.replace(partial, destination)
        except requests.RequestException as exc:
            partial.unlink(missing_ok=True)
            raise RemoteFetchError(f"Download of {url} was interrupted: {exc}") from exc
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise RemoteFetchError(f"Failed to write image {destination}: {exc}") from exc
    finally:
        resp.close()

    logger.info("Downloaded %s to %s", url, destination)
    return destination
