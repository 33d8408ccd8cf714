# trip_photos/sources.py
"""Locating photo inputs and loading their bytes.

Separation of concerns:
- This module finds files and reads/fetches raw bytes, nothing else
- Raises SourceLoadError on failure (caught by the orchestrator)
- No user-facing output - the CLI reports progress and errors
"""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

import requests

from trip_photos.errors import SourceLoadError
from trip_photos.models import PhotoSource

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    ".jpg",
    ".jpeg",
    ".png",
    ".heic",
    ".heif",
    ".tif",
    ".tiff",
    ".webp",
}


def scan_images(paths: Iterable, recursive: bool = False) -> Iterator[Path]:
    """Yield image files found in the given files and directories.

    Files are yielded as given (if their extension looks like an image);
    directories are walked, sorted by name so batches are reproducible.

    Args:
        paths: Files and/or directories (str or Path).
        recursive: Walk subdirectories of directory arguments.

    Raises:
        FileNotFoundError: If a given path does not exist.
    """
    for raw in paths:
        path = Path(raw).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Source path not found: {raw}")

        if path.is_file():
            if path.suffix.lower() in IMAGE_EXTENSIONS:
                yield path
            continue

        iterator = path.rglob("*") if recursive else path.iterdir()
        for file_path in sorted(iterator):
            if file_path.is_file() and file_path.suffix.lower() in IMAGE_EXTENSIONS:
                yield file_path


def load_source_bytes(
    source: PhotoSource,
    session: requests.Session | None = None,
    timeout: float = 30.0,
) -> bytes:
    """Return the raw bytes behind a PhotoSource.

    Args:
        source: Photo to load.
        session: Optional requests session used for URL sources.
        timeout: Seconds to wait for a URL fetch.

    Raises:
        SourceLoadError: If the file can't be read or the URL can't be fetched.
    """
    if source.data is not None:
        return source.data

    if source.path is not None:
        try:
            return Path(source.path).read_bytes()
        except OSError as e:
            raise SourceLoadError(f"Cannot read {source.path}: {e}") from e

    http = session or requests
    try:
        response = http.get(source.url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise SourceLoadError(f"Failed to fetch image {source.url}: {e}") from e

    logger.debug("Fetched %s (%d bytes)", source.url, len(response.content))
    return response.content
