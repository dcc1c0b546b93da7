"""Acquisition of the logo printed on exported documents.

The logo is the only external resource an export needs. It is fetched once
per export with a short timeout; when it cannot be obtained the export goes on
without it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from time import monotonic
from typing import Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 2.0
MAX_LOGO_BYTES = 5 * 1024 * 1024
CHUNK_SIZE = 16 * 1024


def _download(url: str, timeout: float) -> Optional[bytes]:
    """Stream ``url`` into memory, giving up once ``timeout`` seconds have
    elapsed in total or the body grows past :data:`MAX_LOGO_BYTES`."""
    deadline = monotonic() + timeout
    received = bytearray()
    with requests.get(url, timeout=timeout, stream=True) as response:
        response.raise_for_status()
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            received.extend(chunk)
            if len(received) > MAX_LOGO_BYTES:
                logger.warning("Logo at %s exceeds %d bytes, skipping it", url, MAX_LOGO_BYTES)
                return None
            if monotonic() > deadline:
                logger.warning("Logo download from %s exceeded %.1fs, skipping it", url, timeout)
                return None
    return bytes(received) or None


def load_logo(source: Optional[str], timeout: float = DEFAULT_TIMEOUT) -> Optional[bytes]:
    """Return the raw image bytes from a local path or an http(s) URL.

    Any failure (missing file, network error, timeout, HTTP error status) is
    logged and ``None`` is returned. There is no retry.
    """
    if not source:
        return None
    if source.startswith(("http://", "https://")):
        try:
            return _download(source, timeout)
        except requests.RequestException as exc:
            logger.warning("Logo unavailable from %s: %s", source, exc)
            return None
    try:
        return Path(source).read_bytes() or None
    except OSError as exc:
        logger.warning("Logo unavailable at %s: %s", source, exc)
        return None
