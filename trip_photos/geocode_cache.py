# trip_photos/geocode_cache.py
"""Reverse-geocoding result cache with pluggable eviction.

Keys are coordinates rounded to 5 decimal places (~1.1 m). A stored all-None
AddressComponents means "asked the service, it had nothing"; a missing key
means "not asked yet".

Eviction policies:
- UnboundedPolicy: keep everything for the life of the process
- LRUPolicy: keep at most N entries, dropping the least recently used
- TTLPolicy: drop entries older than a fixed age
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from trip_photos.models import AddressComponents

CACHE_KEY_PRECISION = 5


def make_cache_key(lat: float, lng: float, precision: int = CACHE_KEY_PRECISION) -> str:
    """Stable string key for a coordinate pair, e.g. '37.56650,126.97800'."""
    return f"{lat:.{precision}f},{lng:.{precision}f}"


@dataclass
class _Entry:
    value: AddressComponents
    stored_at: float


class UnboundedPolicy:
    """No eviction; entries live as long as the cache does."""

    def is_expired(self, entry: _Entry) -> bool:
        return False

    def overflow(self, size: int) -> int:
        return 0


class LRUPolicy:
    def __init__(self, max_entries: int = 1024):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries

    def is_expired(self, entry: _Entry) -> bool:
        return False

    def overflow(self, size: int) -> int:
        return max(0, size - self.max_entries)


class TTLPolicy:
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def is_expired(self, entry: _Entry) -> bool:
        return self.clock() - entry.stored_at >= self.ttl_seconds

    def overflow(self, size: int) -> int:
        return 0


class GeocodeCache:
    """Mapping of rounded-coordinate keys to resolved addresses.

    Not thread-safe; it is only touched from the event loop thread.
    """

    def __init__(self, policy=None, clock: Callable[[], float] | None = None):
        self.policy = policy or UnboundedPolicy()
        self._clock = clock or getattr(self.policy, "clock", time.monotonic)
        self._data: OrderedDict[str, _Entry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> AddressComponents | None:
        """Return the cached address for key, or None if absent or expired."""
        entry = self._data.get(key)
        if entry is None:
            return None
        if self.policy.is_expired(entry):
            del self._data[key]
            return None
        # move to end (most recent)
        self._data.move_to_end(key)
        return entry.value

    def put(self, key: str, value: AddressComponents) -> None:
        self._data[key] = _Entry(value=value, stored_at=self._clock())
        self._data.move_to_end(key)
        for _ in range(self.policy.overflow(len(self._data))):
            self._data.popitem(last=False)

    def clear(self) -> None:
        self._data.clear()


def cache_from_config(cache_config: dict) -> GeocodeCache:
    """Build a GeocodeCache from the geocoding.cache config section."""
    policy_name = cache_config.get("policy", "unbounded")
    if policy_name == "lru":
        return GeocodeCache(LRUPolicy(int(cache_config.get("max_entries", 1024))))
    if policy_name == "ttl":
        return GeocodeCache(TTLPolicy(float(cache_config.get("ttl_seconds", 86400.0))))
    if policy_name == "unbounded":
        return GeocodeCache(UnboundedPolicy())
    raise ValueError(f"Unknown cache policy: {policy_name}")
