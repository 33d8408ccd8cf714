"""Test suite for the trip photo pipeline.

Test Structure:
    - test_config.py: Configuration loading and validation
    - test_exif_extractor.py: Capture time and GPS extraction from bytes
    - test_format_normalizer.py: HEIC detection and JPEG transcoding
    - test_geocoder.py: Reverse geocoding, response parsing and caching
    - test_geocode_cache.py: Cache eviction policies
    - test_grouping.py: Sorting, day/location grouping, display feed
    - test_pipeline.py: Batch orchestration, failures and progress
    - test_cli.py: Command-line front end

Fixtures defined in conftest.py provide:
    - JPEG/PNG images generated in memory with EXIF built by piexif
    - A fake requests session for the geocoding service
    - Temporary directories and mock configurations

Run tests:
    pytest                                    # Run all tests
    pytest tests/test_grouping.py             # Run specific test file
    pytest -v                                 # Verbose output
    pytest -k "geocode"                       # Run tests matching pattern
"""
