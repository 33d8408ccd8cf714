# trip_photos/geocoder.py
"""Reverse geocoding: coordinates → flat address fields.

Lookup order:
1. GeocodeCache (rounded to 5 decimals)
2. Google Geocoding API (one HTTP GET per cache miss, no retries)

Service answers are cached, including "no results" and error statuses, so a
batch never asks twice about the same spot. Transport failures (timeouts,
connection errors, HTTP errors, unreadable JSON) are transient and are NOT
cached, so a later call can try again.
"""

import asyncio
import logging
from typing import Any

import requests

from trip_photos.config import DEFAULT_GEOCODE_ENDPOINT
from trip_photos.errors import GeocodingTransientError
from trip_photos.geocode_cache import GeocodeCache, cache_from_config, make_cache_key
from trip_photos.models import AddressComponents

logger = logging.getLogger(__name__)

# Address component types, in priority order, that count as the city
CITY_TYPES = ("locality", "sublocality", "postal_town")


def parse_address_components(components: list[dict[str, Any]]) -> AddressComponents:
    """Pick country/city/state/postal code/street out of address_components.

    Args:
        components: The ``address_components`` list of one geocoding result,
            each item shaped like ``{"long_name": str, "types": [str, ...]}``.

    Returns:
        AddressComponents with any absent type left as None.
    """
    by_type: dict[str, str] = {}
    for component in components or []:
        name = component.get("long_name")
        if not name:
            continue
        for component_type in component.get("types") or []:
            by_type.setdefault(component_type, name)

    city = next((by_type[t] for t in CITY_TYPES if t in by_type), None)
    return AddressComponents(
        country=by_type.get("country"),
        city=city,
        state=by_type.get("administrative_area_level_1"),
        postal_code=by_type.get("postal_code"),
        street=by_type.get("route"),
    )


def parse_geocode_response(payload: dict[str, Any], lat: float, lng: float) -> AddressComponents:
    """Turn a Geocoding API JSON body into AddressComponents.

    ZERO_RESULTS and every non-OK status give an empty address.
    """
    status = payload.get("status")
    if status == "ZERO_RESULTS":
        logger.info("No geocoding results for (%s, %s)", lat, lng)
        return AddressComponents.empty()
    if status != "OK":
        logger.warning(
            "Geocoding API error status %s for (%s, %s): %s",
            status,
            lat,
            lng,
            payload.get("error_message", ""),
        )
        return AddressComponents.empty()

    results = payload.get("results") or []
    if not results:
        return AddressComponents.empty()
    return parse_address_components(results[0].get("address_components"))


class GeoResolver:
    """Resolve coordinates to addresses through a shared cache.

    Concurrent calls for the same rounded coordinate share one in-flight
    request: the first caller fetches, later callers await its result. A
    transient failure is handed to every waiter as an empty address and is
    not cached, so the next call after it tries again.

    Use as a context manager (or call close()) to release the HTTP session
    when the resolver created it.
    """

    def __init__(
        self,
        api_key: str | None,
        cache: GeocodeCache | None = None,
        endpoint: str = DEFAULT_GEOCODE_ENDPOINT,
        timeout: float = 10.0,
        language: str | None = None,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key
        self.cache = cache if cache is not None else GeocodeCache()
        self.endpoint = endpoint
        self.timeout = timeout
        self.language = language
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self._inflight: dict[str, asyncio.Future] = {}
        self._warned_missing_key = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        """Close the HTTP session if this resolver opened it."""
        if self._owns_session:
            self.session.close()

    @classmethod
    def from_config(cls, config: dict[str, Any], session: requests.Session | None = None):
        geocoding = config["geocoding"]
        return cls(
            api_key=geocoding.get("api_key"),
            cache=cache_from_config(geocoding.get("cache") or {}),
            endpoint=geocoding.get("endpoint") or DEFAULT_GEOCODE_ENDPOINT,
            timeout=float(geocoding.get("timeout", 10.0)),
            language=geocoding.get("language"),
            session=session,
        )

    def fetch_address(self, lat: float, lng: float) -> AddressComponents:
        """Issue one blocking request to the geocoding service.

        Raises:
            GeocodingTransientError: On timeout, connection/HTTP error or bad JSON.
        """
        params = {"latlng": f"{lat},{lng}", "key": self.api_key}
        if self.language:
            params["language"] = self.language

        try:
            response = self.session.get(self.endpoint, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise GeocodingTransientError(
                f"Reverse geocoding request failed for ({lat}, {lng}): {e}"
            ) from e

        return parse_geocode_response(payload, lat, lng)

    async def resolve(self, lat: float, lng: float) -> AddressComponents:
        """Return the address for a coordinate pair (fields may be None)."""
        key = make_cache_key(lat, lng)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        if not self.api_key:
            if not self._warned_missing_key:
                logger.warning("No geocoding API key configured; addresses will be empty")
                self._warned_missing_key = True
            return AddressComponents.empty()

        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            try:
                address = await asyncio.to_thread(self.fetch_address, lat, lng)
            except GeocodingTransientError as e:
                logger.warning("%s (not cached)", e)
                address = AddressComponents.empty()
            else:
                self.cache.put(key, address)
            future.set_result(address)
            return address
        finally:
            # Waiters still get an answer if this caller was cancelled
            if not future.done():
                future.set_result(AddressComponents.empty())
            if self._inflight.get(key) is future:
                del self._inflight[key]

    def resolve_sync(self, lat: float, lng: float) -> AddressComponents:
        """Blocking variant of resolve() for callers without an event loop."""
        return asyncio.run(self.resolve(lat, lng))
