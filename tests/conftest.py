"""Pytest fixtures and configuration for trip photo pipeline tests.

This module provides shared test fixtures for:
- Temporary directories (auto-cleanup)
- In-memory images with EXIF capture time and GPS (built with piexif)
- A fake requests session standing in for the geocoding service
- Mock configurations

Fixtures are automatically discovered by pytest and available to all test files.
"""

import io
import shutil
import tempfile
from collections.abc import Callable, Generator
from datetime import datetime
from pathlib import Path
from typing import Any

import piexif
import pytest
import requests
from PIL import Image

from trip_photos.models import EnrichedPhoto, PhotoSource

SEOUL = (37.5667, 126.9780)
SEOUL_NEARBY = (37.5669, 126.9781)


def _to_dms_rational(value: float):
    """Decimal degrees → piexif ((deg,1),(min,1),(sec*10000,10000))."""
    value = abs(value)
    degrees = int(value)
    minutes_full = (value - degrees) * 60
    minutes = int(minutes_full)
    seconds = round((minutes_full - minutes) * 60 * 10000)
    return ((degrees, 1), (minutes, 1), (seconds, 10000))


def build_exif(
    captured_at: datetime | None = None,
    lat: float | None = None,
    lng: float | None = None,
    lat_ref: str | None = None,
    lng_ref: str | None = None,
    datetime_tag: str = "original",
) -> bytes:
    """Build an EXIF block; refs default to the sign of the coordinates."""
    zeroth: dict[int, Any] = {piexif.ImageIFD.Make: b"TestCam"}
    exif_ifd: dict[int, Any] = {}
    gps: dict[int, Any] = {}

    if captured_at is not None:
        stamp = captured_at.strftime("%Y:%m:%d %H:%M:%S").encode()
        if datetime_tag == "original":
            exif_ifd[piexif.ExifIFD.DateTimeOriginal] = stamp
        elif datetime_tag == "digitized":
            exif_ifd[piexif.ExifIFD.DateTimeDigitized] = stamp
        else:
            zeroth[piexif.ImageIFD.DateTime] = stamp

    if lat is not None:
        gps[piexif.GPSIFD.GPSLatitude] = _to_dms_rational(lat)
        gps[piexif.GPSIFD.GPSLatitudeRef] = (lat_ref or ("N" if lat >= 0 else "S")).encode()
    if lng is not None:
        gps[piexif.GPSIFD.GPSLongitude] = _to_dms_rational(lng)
        gps[piexif.GPSIFD.GPSLongitudeRef] = (lng_ref or ("E" if lng >= 0 else "W")).encode()

    return piexif.dump({"0th": zeroth, "Exif": exif_ifd, "GPS": gps, "1st": {}, "thumbnail": None})


def make_jpeg(exif: bytes | None = None, size=(16, 12), color=(200, 80, 40)) -> bytes:
    img = Image.new("RGB", size, color)
    buf = io.BytesIO()
    if exif:
        img.save(buf, format="JPEG", exif=exif)
    else:
        img.save(buf, format="JPEG")
    return buf.getvalue()


def make_png(size=(8, 8)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, (10, 200, 10)).save(buf, format="PNG")
    return buf.getvalue()


def make_photo(
    captured_at: datetime | None = None,
    lat: float | None = None,
    lng: float | None = None,
    name: str = "photo.jpg",
    **address,
) -> EnrichedPhoto:
    return EnrichedPhoto(
        source=PhotoSource.from_bytes(b"img", name=name),
        display_data=b"img",
        display_media_type="image/jpeg",
        captured_at=captured_at,
        latitude=lat,
        longitude=lng,
        **address,
    )


# ============================================================================
# Geocoding service fakes
# ============================================================================


class FakeResponse:
    def __init__(self, payload=None, status_code: int = 200, bad_json: bool = False):
        self.payload = payload
        self.status_code = status_code
        self.bad_json = bad_json
        self.content = b""

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    """Stands in for requests.Session; replays queued responses or exceptions.

    The last queued item is reused once the queue runs dry.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


def geocode_ok(**names) -> dict:
    """Build an OK Geocoding API payload from type=long_name pairs."""
    components = [{"long_name": value, "types": [key, "political"]} for key, value in names.items()]
    return {"status": "OK", "results": [{"address_components": components}]}


SEOUL_PAYLOAD = {
    "status": "OK",
    "results": [
        {
            "address_components": [
                {"long_name": "Sejong-daero", "types": ["route"]},
                {"long_name": "Jung-gu", "types": ["sublocality_level_1", "sublocality", "political"]},
                {"long_name": "Seoul", "types": ["locality", "political"]},
                {"long_name": "Seoul", "types": ["administrative_area_level_1", "political"]},
                {"long_name": "South Korea", "types": ["country", "political"]},
                {"long_name": "04524", "types": ["postal_code"]},
            ]
        }
    ],
}


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for file operations.

    Yields:
        Path: Path to temporary directory

    Cleanup:
        Automatically removes directory and all contents
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path

    if temp_path.exists():
        shutil.rmtree(temp_path)


@pytest.fixture
def seoul_jpeg() -> bytes:
    """JPEG taken 2024-01-01 10:00 at Seoul City Hall."""
    return make_jpeg(build_exif(datetime(2024, 1, 1, 10, 0), *SEOUL))


@pytest.fixture
def plain_jpeg() -> bytes:
    """JPEG with no EXIF at all."""
    return make_jpeg()


@pytest.fixture
def heic_bytes() -> bytes:
    """HEIC image with capture time and GPS; skipped without an HEVC encoder."""
    import pillow_heif

    img = Image.new("RGB", (16, 16), (30, 60, 90))
    exif = build_exif(datetime(2024, 1, 1, 9, 0), *SEOUL)
    buf = io.BytesIO()
    try:
        pillow_heif.from_pillow(img).save(buf, quality=80, exif=exif)
    except Exception as e:
        pytest.skip(f"HEIC encoding unavailable: {e}")
    return buf.getvalue()


@pytest.fixture
def seoul_session() -> FakeSession:
    return FakeSession(FakeResponse(SEOUL_PAYLOAD))


@pytest.fixture
def photo_factory() -> Callable[..., EnrichedPhoto]:
    return make_photo


@pytest.fixture
def mock_config(temp_dir: Path) -> dict[str, Any]:
    """Create a mock configuration for testing."""
    return {
        "paths": {
            "input_directory": temp_dir / "input",
            "log_directory": temp_dir / "logs",
        },
        "geocoding": {
            "api_key": "test-key",
            "endpoint": "https://geocode.test/json",
            "timeout": 5.0,
            "language": None,
            "cache": {"policy": "unbounded", "max_entries": 1024, "ttl_seconds": 60.0},
        },
        "processing": {
            "max_workers": 4,
            "transcode_quality": 0.8,
            "fetch_timeout": 5.0,
            "recursive": False,
        },
        "grouping": {
            "location_precision": 3,
            "date_format": "%Y-%m-%d",
        },
    }


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests requiring sample data"
    )
