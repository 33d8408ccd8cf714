# trip_photos/grouping.py
"""Chronological ordering and day/location grouping of enriched photos.

Grouping is a single linear scan over an already-sorted list: a new group
starts whenever the day or the rounded location changes from the previous
photo. Groups are strictly adjacency-based, so returning to the same spot
on a later day (or after visiting somewhere else) starts a new group.

Example:
    >>> photos = sort_photos(batch)
    >>> for group in group_photos(photos):
    ...     print(group.date_key, group.location_key, len(group.photos))
    2024-01-01 37.567,126.978 2
    Unknown Date Unknown Location 1
"""

from collections.abc import Iterable, Sequence
from decimal import ROUND_HALF_UP, Decimal

from trip_photos.models import (
    UNKNOWN_DATE,
    UNKNOWN_LOCATION,
    DisplayItem,
    EnrichedPhoto,
    PhotoGroup,
)

DEFAULT_LOCATION_PRECISION = 3
DEFAULT_DATE_FORMAT = "%Y-%m-%d"


def sort_photos(photos: Iterable[EnrichedPhoto]) -> list[EnrichedPhoto]:
    """Sort by capture time, undated photos last.

    The sort is stable: photos with equal (or missing) capture times keep
    their input order.
    """
    return sorted(
        photos,
        key=lambda p: (p.captured_at is None, p.captured_at or 0),
    )


def date_key(photo: EnrichedPhoto, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    if photo.captured_at is None:
        return UNKNOWN_DATE
    return photo.captured_at.strftime(date_format)


def _round_coordinate(value: float, precision: int) -> str:
    # Half-up on the shortest decimal repr, so 37.5665 -> 37.567 even though
    # the binary float sits just below the midpoint
    step = Decimal(1).scaleb(-precision)
    return format(Decimal(repr(value)).quantize(step, rounding=ROUND_HALF_UP), "f")


def location_key(photo: EnrichedPhoto, precision: int = DEFAULT_LOCATION_PRECISION) -> str:
    if photo.latitude is None or photo.longitude is None:
        return UNKNOWN_LOCATION
    return f"{_round_coordinate(photo.latitude, precision)},{_round_coordinate(photo.longitude, precision)}"


def group_photos(
    photos: Sequence[EnrichedPhoto],
    location_precision: int = DEFAULT_LOCATION_PRECISION,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> list[PhotoGroup]:
    """Partition sorted photos into contiguous (day, location) groups.

    Args:
        photos: Photos already ordered by sort_photos(); not re-sorted here.
        location_precision: Decimal places of the rounded location key
            (3 places ≈ 111 m).
        date_format: strftime format of the day key.

    Returns:
        list[PhotoGroup]: Groups in input order, each with at least one photo.
    """
    groups: list[PhotoGroup] = []
    current: PhotoGroup | None = None

    for photo in photos:
        day = date_key(photo, date_format)
        place = location_key(photo, location_precision)

        if current is None or current.date_key != day or current.location_key != place:
            current = PhotoGroup(date_key=day, location_key=place, photos=[photo])
            groups.append(current)
        else:
            current.photos.append(photo)

    return groups


def flatten_for_display(groups: Sequence[PhotoGroup]) -> list[DisplayItem]:
    """Flatten groups into a gallery feed of headers and photo tiles.

    A date header is emitted for the first group and whenever the day differs
    from the previous group; every group gets a location header, followed by
    one item per photo.
    """
    items: list[DisplayItem] = []
    previous_date = None

    for group in groups:
        if group.date_key != previous_date:
            items.append(DisplayItem(kind="date_header", group=group))
            previous_date = group.date_key
        items.append(DisplayItem(kind="location_header", group=group))
        items.extend(DisplayItem(kind="photo", group=group, photo=p) for p in group.photos)

    return items
