"""Trip photo pipeline: enrich photos with capture time, GPS and address, then group them."""

from trip_photos.grouping import flatten_for_display, group_photos, sort_photos
from trip_photos.models import (
    AddressComponents,
    BatchResult,
    EnrichedPhoto,
    PhotoFailure,
    PhotoGroup,
    PhotoSource,
)
from trip_photos.pipeline import PhotoPipeline

__version__ = "0.1.0"

__all__ = [
    "AddressComponents",
    "BatchResult",
    "EnrichedPhoto",
    "PhotoFailure",
    "PhotoGroup",
    "PhotoPipeline",
    "PhotoSource",
    "flatten_for_display",
    "group_photos",
    "sort_photos",
]
