# trip_photos/format_normalizer.py
"""HEIC/HEIF detection and JPEG transcoding.

Browsers and most viewers can't render HEIC, so HEIC/HEIF photos are decoded
and re-encoded as JPEG at a fixed quality. The EXIF block is carried over so
the JPEG keeps its capture time and GPS tags. Every other format passes through
untouched.

Separation of concerns:
- Pure conversion logic - bytes in, bytes out
- Raises TranscodeError on failure (orchestrator falls back to original bytes)
"""

import asyncio
import io
import logging

from PIL import Image
from pillow_heif import register_heif_opener

from trip_photos.errors import TranscodeError
from trip_photos.models import NormalizedImage, PhotoSource

# Register HEIC support (single registration for entire module)
register_heif_opener()

logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 0.8

HEIF_EXTENSIONS = {".heic", ".heif"}
HEIF_MEDIA_TYPES = {
    "image/heic",
    "image/heif",
    "image/heic-sequence",
    "image/heif-sequence",
}
# ISO-BMFF 'ftyp' major brands used by HEIC/HEIF stills and sequences
HEIF_BRANDS = {b"heic", b"heix", b"hevc", b"hevx", b"heim", b"heis", b"mif1", b"msf1"}


def media_type_from_bytes(data: bytes) -> str | None:
    """Identify an image's MIME type from its leading bytes.

    Returns:
        MIME type string, or None if the signature isn't recognised.
    """
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[4:8] == b"ftyp" and data[8:12] in HEIF_BRANDS:
        return "image/heic"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:4] in (b"II*\x00", b"MM\x00*"):
        return "image/tiff"
    return None


def is_heif(source: PhotoSource, data: bytes | None = None) -> bool:
    """True when the source is HEIC/HEIF by extension, declared type or signature."""
    if source.suffix in HEIF_EXTENSIONS:
        return True
    if source.media_type and source.media_type.lower() in HEIF_MEDIA_TYPES:
        return True
    return data is not None and media_type_from_bytes(data) == "image/heic"


def transcode_to_jpeg(data: bytes, quality: float = DEFAULT_QUALITY) -> bytes:
    """Decode any Pillow-readable image and re-encode it as JPEG.

    Args:
        data: Source image bytes (HEIC/HEIF in practice).
        quality: Quality factor in (0, 1]; 0.8 maps to Pillow quality 80.

    Returns:
        bytes: JPEG data with the source EXIF block attached.

    Raises:
        TranscodeError: If decoding or encoding fails.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            exif = img.getexif()
            rgb = img.convert("RGB")
        out = io.BytesIO()
        save_kwargs = {"quality": round(quality * 100)}
        if exif:
            save_kwargs["exif"] = exif
        rgb.save(out, format="JPEG", **save_kwargs)
    except Exception as e:
        raise TranscodeError(f"Failed to convert HEIC image to JPEG: {e}") from e

    return out.getvalue()


def normalize(
    source: PhotoSource, data: bytes, quality: float = DEFAULT_QUALITY
) -> NormalizedImage:
    """Make a photo display-ready.

    HEIC/HEIF is transcoded to JPEG; anything else is returned unchanged.

    Raises:
        TranscodeError: If a HEIC/HEIF photo can't be converted.
    """
    if not is_heif(source, data):
        media_type = media_type_from_bytes(data) or source.media_type
        return NormalizedImage(
            data=data, media_type=media_type, transcoded=False, original_data=data
        )

    jpeg = transcode_to_jpeg(data, quality)
    logger.debug(
        "Transcoded %s to JPEG (%d -> %d bytes)", source.name, len(data), len(jpeg)
    )
    return NormalizedImage(
        data=jpeg, media_type="image/jpeg", transcoded=True, original_data=data
    )


async def normalize_async(
    source: PhotoSource, data: bytes, quality: float = DEFAULT_QUALITY
) -> NormalizedImage:
    """Run normalize() in a worker thread so decoding doesn't block the loop."""
    return await asyncio.to_thread(normalize, source, data, quality)
