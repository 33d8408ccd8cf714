# trip_photos/models.py
"""Records that flow through the photo pipeline.

Every stage hands the next one an explicit dataclass instead of a loose dict:
- PhotoSource: what the caller gave us (file, URL or raw bytes)
- NormalizedImage: display-ready bytes after HEIC transcoding
- PhotoMetadata: capture time and coordinates read from EXIF
- AddressComponents: flat address fields from reverse geocoding
- EnrichedPhoto: everything above assembled for one photo
- PhotoGroup / DisplayItem: grouped output for a presentation layer

Invariants (checked in __post_init__):
- latitude and longitude are both set or both None
- address fields stay None when there are no coordinates
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from pathlib import Path

UNKNOWN_DATE = "Unknown Date"
UNKNOWN_LOCATION = "Unknown Location"


def _check_coordinates(latitude: float | None, longitude: float | None) -> None:
    if (latitude is None) != (longitude is None):
        raise ValueError(
            f"latitude and longitude must both be set or both be None, "
            f"got latitude={latitude!r}, longitude={longitude!r}"
        )


# ============================================================================
# Input
# ============================================================================


@dataclass(frozen=True)
class PhotoSource:
    """One input photo: a local file, a remote URL or in-memory bytes.

    Use the ``from_*`` constructors; exactly one of ``path``, ``url`` and
    ``data`` is set.
    """

    path: Path | None = None
    url: str | None = None
    data: bytes | None = field(default=None, repr=False)
    media_type: str | None = None
    name: str = ""

    def __post_init__(self):
        given = [v for v in (self.path, self.url, self.data) if v is not None]
        if len(given) != 1:
            raise ValueError("PhotoSource needs exactly one of path, url or data")
        if not self.name:
            if self.path is not None:
                label = Path(self.path).name
            elif self.url is not None:
                label = self.url.rstrip("/").rsplit("/", 1)[-1].split("?", 1)[0]
            else:
                label = "<bytes>"
            object.__setattr__(self, "name", label)

    @classmethod
    def from_path(cls, path, media_type: str | None = None) -> PhotoSource:
        return cls(path=Path(path).expanduser(), media_type=media_type)

    @classmethod
    def from_url(cls, url: str, media_type: str | None = None) -> PhotoSource:
        return cls(url=url, media_type=media_type)

    @classmethod
    def from_bytes(
        cls, data: bytes, name: str = "", media_type: str | None = None
    ) -> PhotoSource:
        return cls(data=bytes(data), name=name, media_type=media_type)

    @property
    def suffix(self) -> str:
        """Lower-case file extension taken from the name, e.g. '.heic'."""
        return Path(self.name).suffix.lower()


# ============================================================================
# Stage results
# ============================================================================


@dataclass(frozen=True)
class NormalizedImage:
    data: bytes = field(repr=False)
    media_type: str | None
    transcoded: bool
    original_data: bytes = field(repr=False)


@dataclass(frozen=True)
class PhotoMetadata:
    """Capture time and signed decimal coordinates read from a photo."""

    captured_at: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None

    def __post_init__(self):
        _check_coordinates(self.latitude, self.longitude)

    @property
    def has_location(self) -> bool:
        return self.latitude is not None


@dataclass(frozen=True)
class AddressComponents:
    country: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    street: str | None = None

    @classmethod
    def empty(cls) -> AddressComponents:
        return cls()

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def short_label(self) -> str | None:
        """Comma-joined 'street, city, state, country' or None when empty."""
        parts = [self.street, self.city, self.state, self.country]
        label = ", ".join(p for p in parts if p)
        return label or None


# ============================================================================
# Output
# ============================================================================


@dataclass
class EnrichedPhoto:
    """A photo with display bytes, capture time, coordinates and address."""

    source: PhotoSource
    display_data: bytes = field(repr=False)
    display_media_type: str | None = None
    captured_at: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None
    country: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    street: str | None = None

    def __post_init__(self):
        _check_coordinates(self.latitude, self.longitude)
        if self.latitude is None and not self.address.is_empty:
            raise ValueError("address fields require coordinates")

    @classmethod
    def unenriched(
        cls, source: PhotoSource, display_data: bytes, media_type: str | None = None
    ) -> EnrichedPhoto:
        """Photo shown as-is with every metadata field left empty."""
        return cls(source=source, display_data=display_data, display_media_type=media_type)

    @classmethod
    def assemble(
        cls,
        source: PhotoSource,
        image: NormalizedImage,
        metadata: PhotoMetadata,
        address: AddressComponents | None = None,
    ) -> EnrichedPhoto:
        address = address or AddressComponents.empty()
        return cls(
            source=source,
            display_data=image.data,
            display_media_type=image.media_type,
            captured_at=metadata.captured_at,
            latitude=metadata.latitude,
            longitude=metadata.longitude,
            country=address.country,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            street=address.street,
        )

    @property
    def has_location(self) -> bool:
        return self.latitude is not None

    @property
    def address(self) -> AddressComponents:
        return AddressComponents(
            country=self.country,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
            street=self.street,
        )


@dataclass
class PhotoGroup:
    date_key: str
    location_key: str
    photos: list[EnrichedPhoto] = field(default_factory=list)

    @property
    def has_date(self) -> bool:
        return self.date_key != UNKNOWN_DATE

    @property
    def has_location(self) -> bool:
        return self.location_key != UNKNOWN_LOCATION

    def to_dict(self) -> dict:
        return {
            "date_key": self.date_key,
            "location_key": self.location_key,
            "photos": [
                {
                    "name": p.source.name,
                    "captured_at": p.captured_at.isoformat() if p.captured_at else None,
                    "latitude": p.latitude,
                    "longitude": p.longitude,
                    "country": p.country,
                    "city": p.city,
                    "state": p.state,
                    "postal_code": p.postal_code,
                    "street": p.street,
                }
                for p in self.photos
            ],
        }


@dataclass(frozen=True)
class DisplayItem:
    """One row of the flattened gallery feed: a header or a photo tile."""

    kind: str  # "date_header" | "location_header" | "photo"
    group: PhotoGroup
    photo: EnrichedPhoto | None = None


@dataclass(frozen=True)
class PhotoFailure:
    index: int
    source: PhotoSource
    stage: str
    message: str


@dataclass
class BatchResult:
    photos: list[EnrichedPhoto] = field(default_factory=list)
    groups: list[PhotoGroup] = field(default_factory=list)
    failures: list[PhotoFailure] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)
