# trip_photos/pipeline.py
"""Batch orchestration: load → normalize → extract → resolve → sort → group.

Relationship with the stage modules
-----------------------------------
- sources.py / format_normalizer.py / exif_extractor.py / geocoder.py hold
  the per-stage logic and either return data or raise typed errors
- pipeline.py (this file) drives a whole batch, converts every per-photo
  error into a PhotoFailure record and reports progress

Each photo runs its own pipeline; up to ``max_workers`` run at once. A
failing photo still comes back as an EnrichedPhoto showing its original
bytes, so it lands in the "Unknown Date" / "Unknown Location" group instead
of disappearing. Output order comes only from the final sort, never from
completion order.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

import requests

from trip_photos.errors import SourceLoadError, TranscodeError
from trip_photos.exif_extractor import extract_metadata_async
from trip_photos.format_normalizer import (
    DEFAULT_QUALITY,
    media_type_from_bytes,
    normalize_async,
)
from trip_photos.geocoder import GeoResolver
from trip_photos.grouping import (
    DEFAULT_DATE_FORMAT,
    DEFAULT_LOCATION_PRECISION,
    group_photos,
    sort_photos,
)
from trip_photos.models import (
    BatchResult,
    EnrichedPhoto,
    NormalizedImage,
    PhotoFailure,
    PhotoMetadata,
    PhotoSource,
)
from trip_photos.sources import load_source_bytes

logger = logging.getLogger(__name__)

# (current_index, total, status_label); current_index is 0-based
ProgressCallback = Callable[[int, int, str], None]

STAGE_LOAD = "load"
STAGE_NORMALIZE = "normalize"
STAGE_EXTRACT = "extract"
STAGE_RESOLVE = "resolve"

STATUS_LABELS = {
    STAGE_LOAD: "loading",
    STAGE_NORMALIZE: "normalizing",
    STAGE_EXTRACT: "extracting",
    STAGE_RESOLVE: "resolving",
}


class PhotoPipeline:
    """Enrich and group a batch of photos.

    Args:
        resolver: GeoResolver for addresses; None skips reverse geocoding.
        max_workers: Photos processed concurrently.
        transcode_quality: JPEG quality factor for HEIC conversion.
        location_precision: Decimal places of the grouping location key.
        date_format: strftime format of the grouping day key.
        fetch_timeout: Seconds allowed to download a URL source.
        session: requests session for URL sources.
        progress: Default progress callback for process().
    """

    def __init__(
        self,
        resolver: GeoResolver | None = None,
        max_workers: int = 4,
        transcode_quality: float = DEFAULT_QUALITY,
        location_precision: int = DEFAULT_LOCATION_PRECISION,
        date_format: str = DEFAULT_DATE_FORMAT,
        fetch_timeout: float = 30.0,
        session: requests.Session | None = None,
        progress: ProgressCallback | None = None,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.resolver = resolver
        self.max_workers = max_workers
        self.transcode_quality = transcode_quality
        self.location_precision = location_precision
        self.date_format = date_format
        self.fetch_timeout = fetch_timeout
        self.session = session
        self.progress = progress

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        """Release the resolver's HTTP session (a no-op for injected sessions)."""
        if self.resolver is not None:
            self.resolver.close()

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        progress: ProgressCallback | None = None,
        session: requests.Session | None = None,
    ) -> "PhotoPipeline":
        processing = config["processing"]
        grouping = config["grouping"]
        return cls(
            resolver=GeoResolver.from_config(config, session=session),
            max_workers=int(processing["max_workers"]),
            transcode_quality=float(processing["transcode_quality"]),
            location_precision=int(grouping["location_precision"]),
            date_format=grouping["date_format"],
            fetch_timeout=float(processing["fetch_timeout"]),
            session=session,
            progress=progress,
        )

    async def process(
        self,
        sources: Sequence[PhotoSource],
        progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Run the whole batch and return sorted photos, groups and failures.

        Never raises for per-photo problems; an empty batch gives an empty
        result. Cancelling the awaiting task cancels the pending photos.
        """
        sources = list(sources)
        if not sources:
            return BatchResult()

        progress = progress or self.progress
        failures: list[PhotoFailure] = []
        semaphore = asyncio.Semaphore(self.max_workers)
        total = len(sources)

        logger.info("Processing %d photos (max_workers=%d)", total, self.max_workers)
        photos = await asyncio.gather(
            *(
                self._process_one(index, source, total, semaphore, failures, progress)
                for index, source in enumerate(sources)
            )
        )

        ordered = sort_photos(photos)
        groups = group_photos(ordered, self.location_precision, self.date_format)
        failures.sort(key=lambda f: f.index)

        logger.info(
            "Processed %d photos into %d groups (%d failures)",
            len(ordered),
            len(groups),
            len(failures),
        )
        return BatchResult(photos=ordered, groups=groups, failures=failures)

    def process_sync(
        self,
        sources: Sequence[PhotoSource],
        progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Blocking variant of process() for scripts and the CLI."""
        return asyncio.run(self.process(sources, progress))

    async def _process_one(
        self,
        index: int,
        source: PhotoSource,
        total: int,
        semaphore: asyncio.Semaphore,
        failures: list[PhotoFailure],
        progress: ProgressCallback | None,
    ) -> EnrichedPhoto:
        def report(label: str) -> None:
            if progress is None:
                return
            try:
                progress(index, total, label)
            except Exception:
                logger.exception("Progress callback failed for %s", source.name)

        def fail(stage: str, error: Exception) -> None:
            logger.warning("%s failed at %s: %s", source.name, stage, error)
            failures.append(
                PhotoFailure(index=index, source=source, stage=stage, message=str(error))
            )

        async with semaphore:
            stage = STAGE_LOAD
            data = b""
            failed = False
            try:
                report(STATUS_LABELS[STAGE_LOAD])
                try:
                    data = await asyncio.to_thread(
                        load_source_bytes, source, self.session, self.fetch_timeout
                    )
                except SourceLoadError as e:
                    fail(STAGE_LOAD, e)
                    report("failed")
                    return EnrichedPhoto.unenriched(source, b"", source.media_type)

                stage = STAGE_NORMALIZE
                report(STATUS_LABELS[STAGE_NORMALIZE])
                try:
                    image = await normalize_async(source, data, self.transcode_quality)
                except TranscodeError as e:
                    # Show the original bytes; extraction still runs on them
                    fail(STAGE_NORMALIZE, e)
                    failed = True
                    image = NormalizedImage(
                        data=data,
                        media_type=media_type_from_bytes(data) or source.media_type,
                        transcoded=False,
                        original_data=data,
                    )

                stage = STAGE_EXTRACT
                report(STATUS_LABELS[STAGE_EXTRACT])
                metadata: PhotoMetadata = await extract_metadata_async(image.original_data)

                address = None
                if metadata.has_location and self.resolver is not None:
                    stage = STAGE_RESOLVE
                    report(STATUS_LABELS[STAGE_RESOLVE])
                    address = await self.resolver.resolve(metadata.latitude, metadata.longitude)

                photo = EnrichedPhoto.assemble(source, image, metadata, address)
            except Exception as e:
                # Unexpected error: keep the photo visible with no metadata
                logger.exception("Unexpected error processing %s", source.name)
                fail(stage, e)
                report("failed")
                return EnrichedPhoto.unenriched(
                    source, data, media_type_from_bytes(data) or source.media_type
                )

            report("failed" if failed else "done")
            return photo
