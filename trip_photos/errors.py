# trip_photos/errors.py
"""Exception types raised inside the pipeline.

Lower components raise these; the orchestrator turns them into per-photo
failure records so a single bad photo never aborts a batch.
"""


class PhotoPipelineError(Exception):
    """Base class for recoverable per-photo errors."""


class SourceLoadError(PhotoPipelineError):
    """Photo bytes could not be read from disk or fetched from a URL."""


class TranscodeError(PhotoPipelineError):
    """HEIC/HEIF image could not be converted to JPEG."""


class GeocodingError(PhotoPipelineError):
    """Reverse-geocoding request failed."""


class GeocodingTransientError(GeocodingError):
    """Timeout, connection or HTTP-level failure; safe to retry later."""


class ConfigError(ValueError):
    """Configuration value is out of range or unknown."""
