# trip_photos/exif_extractor.py
"""EXIF metadata extraction from image bytes.

This module handles all EXIF-related operations:
- Capture time extraction (DateTimeOriginal → DateTimeDigitized → DateTime)
- GPS coordinates extraction (DMS + hemisphere → signed decimal degrees)
- Support for HEIC, JPEG, PNG and TIFF via Pillow + pillow-heif

Separation of concerns:
- Pure extraction logic - bytes in, PhotoMetadata out
- Never raises: corrupt or missing metadata yields empty fields
- Orchestration layer handles progress reporting and error messages
"""

import asyncio
import io
import logging
import math
from datetime import datetime

from PIL import Image
from pillow_heif import register_heif_opener

from trip_photos.models import PhotoMetadata

# Register HEIC support (single registration for entire module)
register_heif_opener()

logger = logging.getLogger(__name__)

EXIF_IFD = 0x8769  # 34665
GPS_IFD = 0x8825  # 34853

TAG_DATETIME = 306
TAG_DATETIME_ORIGINAL = 36867
TAG_DATETIME_DIGITIZED = 36868

GPS_LATITUDE_REF = 1
GPS_LATITUDE = 2
GPS_LONGITUDE_REF = 3
GPS_LONGITUDE = 4

EXIF_DATETIME_FORMATS = ("%Y:%m:%d %H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y:%m:%d %H:%M")


# ============================================================================
# Date Extraction
# ============================================================================


def parse_exif_datetime(value) -> datetime | None:
    """Parse an EXIF date string such as '2024:01:01 10:00:00'.

    Args:
        value: str or bytes as stored in the EXIF block (may be NUL padded)

    Returns:
        Naive datetime, or None for blank, zeroed or unparseable values.
    """
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    text = str(value).replace("\x00", "").strip()
    if not text:
        return None

    for fmt in EXIF_DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        return None


def _extract_captured_at(exif: Image.Exif) -> datetime | None:
    exif_ifd = exif.get_ifd(EXIF_IFD)

    # Priority: DateTimeOriginal (shutter time), DateTimeDigitized, then IFD0 DateTime
    candidates = (
        exif_ifd.get(TAG_DATETIME_ORIGINAL) or exif.get(TAG_DATETIME_ORIGINAL),
        exif_ifd.get(TAG_DATETIME_DIGITIZED) or exif.get(TAG_DATETIME_DIGITIZED),
        exif.get(TAG_DATETIME),
    )
    for raw in candidates:
        captured_at = parse_exif_datetime(raw)
        if captured_at is not None:
            return captured_at
    return None


# ============================================================================
# GPS Coordinates
# ============================================================================


def _normalize_ref(ref) -> str | None:
    if ref is None:
        return None
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    ref = str(ref).replace("\x00", "").strip().upper()
    return ref or None


def dms_to_decimal(dms, ref) -> float | None:
    """Convert GPS DMS (degrees, minutes, seconds) to signed decimal degrees.

    Args:
        dms: 3-sequence of numbers or IFDRationals, e.g. (37, 33, 59.4)
        ref: Hemisphere reference 'N', 'S', 'E' or 'W' (str or bytes)

    Returns:
        float: Decimal degrees, negative for 'S'/'W' - e.g. -37.834670.
        None if the DMS value or reference is missing or malformed.

    Example:
        >>> dms_to_decimal((37, 30, 0), "S")
        -37.5
    """
    ref = _normalize_ref(ref)
    if ref not in ("N", "S", "E", "W") or dms is None:
        return None

    try:
        degrees, minutes, seconds = (float(part) for part in dms)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    if not all(math.isfinite(v) for v in (degrees, minutes, seconds)):
        return None

    decimal = degrees + (minutes / 60.0) + (seconds / 3600.0)
    if ref in ("S", "W"):
        decimal = -decimal
    return decimal


def _extract_coordinates(exif: Image.Exif) -> tuple[float | None, float | None]:
    gps_ifd = exif.get_ifd(GPS_IFD)
    if not gps_ifd:
        return None, None

    lat_ref = _normalize_ref(gps_ifd.get(GPS_LATITUDE_REF))
    lon_ref = _normalize_ref(gps_ifd.get(GPS_LONGITUDE_REF))
    # Hemisphere letters must match their axis
    if lat_ref not in ("N", "S") or lon_ref not in ("E", "W"):
        return None, None

    lat = dms_to_decimal(gps_ifd.get(GPS_LATITUDE), lat_ref)
    lon = dms_to_decimal(gps_ifd.get(GPS_LONGITUDE), lon_ref)
    if lat is None or lon is None:
        return None, None
    if abs(lat) > 90 or abs(lon) > 180:
        return None, None
    return lat, lon


# ============================================================================
# Public API
# ============================================================================


def extract_metadata(data: bytes) -> PhotoMetadata:
    """Extract capture time and GPS coordinates from image bytes.

    Args:
        data: Raw image bytes (JPEG, HEIC, PNG, TIFF, ...)

    Returns:
        PhotoMetadata: captured_at, latitude and longitude, each possibly None.
        Latitude and longitude are always both set or both None.

    Note:
        Returns empty metadata silently on errors (logged at DEBUG) - the
        extractor never raises past its own boundary.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            exif = img.getexif()
            if not exif:
                return PhotoMetadata()

            captured_at = _extract_captured_at(exif)
            latitude, longitude = _extract_coordinates(exif)
    except Exception as e:
        logger.debug("No readable EXIF metadata: %s", e)
        return PhotoMetadata()

    return PhotoMetadata(captured_at=captured_at, latitude=latitude, longitude=longitude)


async def extract_metadata_async(data: bytes) -> PhotoMetadata:
    """Run extract_metadata() in a worker thread."""
    return await asyncio.to_thread(extract_metadata, data)
