"""Time-stamped memoization for resolver results."""

import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Final, Generic, TypeVar

__all__ = ["TimedCache"]

_T = TypeVar("_T")


@dataclass(frozen=True, slots=True)
class _CacheEntry(Generic[_T]):
    value: _T
    stored_at: float


class TimedCache(Generic[_T]):
    """A string-keyed cache whose entries expire after a TTL.

    Expiry is checked on read; there is no background sweep. A stale entry
    stays in the mapping until it is read, invalidated or overwritten.
    """

    __slots__: Final = ("_clock", "_entries", "ttl_seconds")

    _entries: dict[str, _CacheEntry[_T]]
    _clock: Callable[[], float]
    ttl_seconds: float

    def __init__(
        self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic
    ) -> None:
        """Initialize the cache.

        Args:
            ttl_seconds: Lifetime of an entry.
            clock: Source of the current time in seconds.
        """
        self._entries = {}
        self._clock = clock
        self.ttl_seconds = ttl_seconds

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get(self, key: str) -> _T | None:
        """Return a fresh cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: _T) -> None:
        self._entries[key] = _CacheEntry(value=value, stored_at=self._clock())

    def delete_where(self, predicate: Callable[[str], bool]) -> int:
        """Remove every entry whose key matches `predicate`.

        Returns:
            The number of removed entries.
        """
        doomed = [key for key in self._entries if predicate(key)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
