"""Tests for chronological sorting, adjacency grouping and display flattening."""

from datetime import datetime

from tests.conftest import SEOUL, SEOUL_NEARBY, make_photo
from trip_photos.grouping import (
    date_key,
    flatten_for_display,
    group_photos,
    location_key,
    sort_photos,
)
from trip_photos.models import UNKNOWN_DATE, UNKNOWN_LOCATION

BUSAN = (35.1796, 129.0756)


class TestSortPhotos:
    def test_chronological_with_undated_last(self):
        late = make_photo(datetime(2024, 1, 2), name="late.jpg")
        undated = make_photo(name="undated.jpg")
        early = make_photo(datetime(2024, 1, 1), name="early.jpg")

        ordered = sort_photos([late, undated, early])

        assert [p.source.name for p in ordered] == ["early.jpg", "late.jpg", "undated.jpg"]

    def test_stable_for_equal_times(self):
        when = datetime(2024, 1, 1, 12, 0)
        photos = [make_photo(when, name=f"{i}.jpg") for i in range(5)]
        assert sort_photos(photos) == photos

    def test_undated_keep_input_order(self):
        photos = [make_photo(name=f"{i}.jpg") for i in range(3)]
        photos.insert(1, make_photo(datetime(2024, 1, 1), name="dated.jpg"))

        ordered = sort_photos(photos)

        assert [p.source.name for p in ordered] == ["dated.jpg", "0.jpg", "1.jpg", "2.jpg"]

    def test_empty(self):
        assert sort_photos([]) == []


class TestKeys:
    def test_date_key(self):
        assert date_key(make_photo(datetime(2024, 1, 1, 23, 59))) == "2024-01-01"

    def test_custom_date_format(self):
        assert date_key(make_photo(datetime(2024, 1, 1)), "%d/%m/%Y") == "01/01/2024"

    def test_location_key_three_decimals(self):
        assert location_key(make_photo(None, *SEOUL)) == "37.567,126.978"

    def test_location_key_rounds_half_up(self):
        """37.5665 is stored as 37.56649999...; the key still reads 37.567."""
        assert location_key(make_photo(None, 37.5665, 126.9780)) == "37.567,126.978"
        assert location_key(make_photo(None, -33.8685, -70.6485)) == "-33.869,-70.649"

    def test_location_key_zero_precision(self):
        assert location_key(make_photo(None, *SEOUL), precision=0) == "38,127"

    def test_unknown_sentinels(self):
        photo = make_photo()
        assert date_key(photo) == UNKNOWN_DATE
        assert location_key(photo) == UNKNOWN_LOCATION


class TestGroupPhotos:
    def test_same_day_nearby_points_form_one_group(self):
        photos = [
            make_photo(datetime(2024, 1, 1, 10, 0), *SEOUL, name="a.jpg"),
            make_photo(datetime(2024, 1, 1, 10, 5), *SEOUL_NEARBY, name="b.jpg"),
        ]

        groups = group_photos(photos)

        assert len(groups) == 1
        assert groups[0].date_key == "2024-01-01"
        assert groups[0].location_key == "37.567,126.978"
        assert len(groups[0].photos) == 2

    def test_city_hall_and_plaza_share_a_group(self):
        photos = [
            make_photo(datetime(2024, 1, 1, 10, 0), 37.5665, 126.9780),
            make_photo(datetime(2024, 1, 1, 10, 30), 37.5669, 126.9781),
        ]

        groups = group_photos(photos)

        assert len(groups) == 1
        assert groups[0].date_key == "2024-01-01"
        assert len(groups[0].photos) == 2

    def test_same_place_different_days(self):
        photos = [
            make_photo(datetime(2024, 1, 1, 10, 0), *SEOUL),
            make_photo(datetime(2024, 1, 2, 10, 0), *SEOUL),
        ]

        groups = group_photos(photos)

        assert [g.date_key for g in groups] == ["2024-01-01", "2024-01-02"]
        assert groups[0].location_key == groups[1].location_key

    def test_returning_to_a_place_starts_new_group(self):
        """A, A, B, A on one day is three groups, not two."""
        day = datetime(2024, 1, 1)
        photos = [
            make_photo(day.replace(hour=9), *SEOUL, name="1.jpg"),
            make_photo(day.replace(hour=10), *SEOUL, name="2.jpg"),
            make_photo(day.replace(hour=11), *BUSAN, name="3.jpg"),
            make_photo(day.replace(hour=12), *SEOUL, name="4.jpg"),
        ]

        groups = group_photos(photos)

        assert [len(g.photos) for g in groups] == [2, 1, 1]
        assert groups[0].location_key == groups[2].location_key

    def test_undated_and_unlocated(self):
        photos = sort_photos(
            [
                make_photo(name="nothing.jpg"),
                make_photo(datetime(2024, 1, 1), name="time-only.jpg"),
            ]
        )

        groups = group_photos(photos)

        assert [(g.date_key, g.location_key) for g in groups] == [
            ("2024-01-01", UNKNOWN_LOCATION),
            (UNKNOWN_DATE, UNKNOWN_LOCATION),
        ]
        assert not groups[1].has_date
        assert not groups[1].has_location

    def test_every_photo_in_exactly_one_group(self):
        photos = sort_photos(
            [make_photo(datetime(2024, 1, d % 3 + 1), *SEOUL, name=f"{d}.jpg") for d in range(9)]
        )

        groups = group_photos(photos)

        flattened = [p for g in groups for p in g.photos]
        assert flattened == photos
        assert all(g.photos for g in groups)

    def test_coarser_precision_merges_locations(self):
        day = datetime(2024, 1, 1)
        photos = [
            make_photo(day, 37.5665, 126.9780),
            make_photo(day, 37.5712, 126.9801),
        ]

        assert len(group_photos(photos)) == 2
        assert len(group_photos(photos, location_precision=1)) == 1

    def test_empty(self):
        assert group_photos([]) == []

    def test_to_dict(self):
        photo = make_photo(
            datetime(2024, 1, 1, 10, 0), *SEOUL, name="a.jpg", city="Seoul", country="South Korea"
        )
        data = group_photos([photo])[0].to_dict()

        assert data["date_key"] == "2024-01-01"
        assert data["photos"][0]["name"] == "a.jpg"
        assert data["photos"][0]["captured_at"] == "2024-01-01T10:00:00"
        assert data["photos"][0]["city"] == "Seoul"


class TestFlattenForDisplay:
    def test_headers_and_photos(self):
        photos = [
            make_photo(datetime(2024, 1, 1, 9), *SEOUL, name="1.jpg"),
            make_photo(datetime(2024, 1, 1, 15), *BUSAN, name="2.jpg"),
            make_photo(datetime(2024, 1, 2, 9), *BUSAN, name="3.jpg"),
        ]

        items = flatten_for_display(group_photos(photos))

        assert [item.kind for item in items] == [
            "date_header",
            "location_header",
            "photo",
            "location_header",
            "photo",
            "date_header",
            "location_header",
            "photo",
        ]
        assert items[2].photo.source.name == "1.jpg"
        assert items[5].group.date_key == "2024-01-02"

    def test_empty(self):
        assert flatten_for_display([]) == []
