from __future__ import annotations

import abc
import logging
import typing as tp
from dataclasses import dataclass

from typing_extensions import TypeAlias

from .._synchronization import AsyncLock
from .._utils import BaseClock, Clock

logger = logging.getLogger("outcache.storages")

__all__ = (
    "AsyncBaseStore",
    "AsyncInMemoryStore",
    "CONTENT_TYPE_SUFFIX",
    "ETAG_SUFFIX",
    "SIBLING_SUFFIXES",
)

CONTENT_TYPE_SUFFIX = ":contenttype"
ETAG_SUFFIX = ":etag"
SIBLING_SUFFIXES = (CONTENT_TYPE_SUFFIX, ETAG_SUFFIX)

StoredValue: TypeAlias = tp.Union[bytes, str]


def primary_key(key: str) -> str:
    for suffix in SIBLING_SUFFIXES:
        if key.endswith(suffix):
            return key[: -len(suffix)]
    return key


def entry_group(key: str) -> tp.Tuple[str, ...]:
    """The primary key and its sibling metadata keys, whichever of them ``key`` is."""
    primary = primary_key(key)
    return (primary,) + tuple(primary + suffix for suffix in SIBLING_SUFFIXES)


@dataclass
class _Record:
    value: StoredValue
    expires_at: float
    depends_on: tp.Optional[str] = None


class AsyncBaseStore(abc.ABC):
    @abc.abstractmethod
    async def contains(self, key: str) -> bool:
        raise NotImplementedError()

    @abc.abstractmethod
    async def get(self, key: str) -> tp.Optional[StoredValue]:
        raise NotImplementedError()

    @abc.abstractmethod
    async def add(self, key: str, value: StoredValue, expires_at: float, depends_on: tp.Optional[str] = None) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    async def remove(self, key: str) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    async def remove_by_prefix(self, prefix: str) -> int:
        raise NotImplementedError()

    @abc.abstractmethod
    async def all_keys(self) -> tp.List[str]:
        raise NotImplementedError()

    async def add_variant(
        self,
        key: str,
        payload: bytes,
        content_type: tp.Optional[str],
        etag: str,
        expires_at: float,
        base_key: str,
    ) -> tp.Tuple[bool, tp.Optional[str]]:
        """
        Stores a captured response: the base key marker, the sibling metadata
        entries and finally the payload under ``key``.

        A variant that is already stored is kept as is.

        Stores that can do better should check and write all of them at once.

        :return: Whether this call stored the variant, and the ETag kept under ``key``.
        :rtype: tp.Tuple[bool, tp.Optional[str]]
        """
        if await self.contains(key):
            kept = await self.get(key + ETAG_SUFFIX)
            return False, kept if isinstance(kept, str) else None

        await self.add(base_key, "", expires_at)
        if content_type is not None:
            await self.add(key + CONTENT_TYPE_SUFFIX, content_type, expires_at, base_key)
        await self.add(key + ETAG_SUFFIX, etag, expires_at, base_key)
        await self.add(key, payload, expires_at, base_key)
        return True, etag

    async def close(self) -> None:
        pass


class AsyncInMemoryStore(AsyncBaseStore):
    """
    A process-wide in-memory store.

    Create one instance at startup and hand it to every consumer.

    Removing a key also removes its sibling metadata entries (``key:contenttype``,
    ``key:etag``) and every key that was added with ``depends_on=key``. Expired
    entries are treated as missing and are dropped lazily on access, and
    proactively at most once every ``sweep_interval`` seconds when new entries
    are added.

    :param clock: Source of the current time, defaults to the wall clock
    :type clock: tp.Optional[BaseClock], optional
    :param sweep_interval: Minimal number of seconds between two sweeps of expired entries, defaults to 60
    :type sweep_interval: float, optional
    """

    def __init__(self, clock: tp.Optional[BaseClock] = None, sweep_interval: float = 60) -> None:
        if sweep_interval <= 0:
            raise ValueError("The sweep interval must be positive")

        self._clock = clock if clock is not None else Clock()
        self._sweep_interval = sweep_interval
        self._records: tp.Dict[str, _Record] = {}
        self._dependents: tp.Dict[str, tp.Set[str]] = {}
        self._last_sweep = self._clock.now()
        self._lock = AsyncLock()

    async def contains(self, key: str) -> bool:
        async with self._lock:
            return self._live_record(key, self._clock.now()) is not None

    async def get(self, key: str) -> tp.Optional[StoredValue]:
        async with self._lock:
            record = self._live_record(key, self._clock.now())
            return None if record is None else record.value

    async def add(self, key: str, value: StoredValue, expires_at: float, depends_on: tp.Optional[str] = None) -> None:
        """
        Stores ``value`` under ``key`` until ``expires_at`` (a POSIX timestamp),
        replacing any previous value.

        :param depends_on: Key whose removal must also remove this one, usually the base key
        :type depends_on: tp.Optional[str]
        """
        async with self._lock:
            self._put(key, value, expires_at, depends_on)
            self._maybe_sweep()

    async def add_variant(
        self,
        key: str,
        payload: bytes,
        content_type: tp.Optional[str],
        etag: str,
        expires_at: float,
        base_key: str,
    ) -> tp.Tuple[bool, tp.Optional[str]]:
        async with self._lock:
            now = self._clock.now()
            if self._live_record(key, now) is not None:
                kept = self._live_record(key + ETAG_SUFFIX, now)
                logger.debug(f"Not storing {key!r} since it is already stored.")
                return False, kept.value if kept is not None and isinstance(kept.value, str) else None

            marker = self._records.get(base_key)
            marker_expires_at = expires_at
            if marker is not None and marker.expires_at > now:
                marker_expires_at = max(marker.expires_at, expires_at)

            self._put(base_key, "", marker_expires_at, marker.depends_on if marker is not None else None)
            if content_type is not None:
                self._put(key + CONTENT_TYPE_SUFFIX, content_type, expires_at, base_key)
            self._put(key + ETAG_SUFFIX, etag, expires_at, base_key)
            self._put(key, payload, expires_at, base_key)
            self._maybe_sweep()

        logger.debug(f"Stored {key!r} under the base key {base_key!r}.")
        return True, etag

    async def remove(self, key: str) -> None:
        async with self._lock:
            removed = self._delete(key)

        if removed:
            logger.debug(f"Removed {removed} entries for the key {key!r}.")

    async def remove_by_prefix(self, prefix: str) -> int:
        """
        Removes every key starting with ``prefix``, the prefix itself included.

        :return: The number of removed entries, dependents included.
        :rtype: int
        """
        async with self._lock:
            matching = [key for key in self._records if key.startswith(prefix)]
            removed = 0
            for key in matching:
                removed += self._delete(key)

        logger.debug(f"Removed {removed} entries starting with {prefix!r}.")
        return removed

    async def all_keys(self) -> tp.List[str]:
        async with self._lock:
            return list(self._records)

    async def remove_expired(self) -> int:
        async with self._lock:
            return self._sweep(self._clock.now())

    def _live_record(self, key: str, now: float) -> tp.Optional[_Record]:
        record = self._records.get(key)
        if record is None:
            return None
        if record.expires_at <= now:
            self._expire(key)
            return None
        return record

    def _put(self, key: str, value: StoredValue, expires_at: float, depends_on: tp.Optional[str]) -> None:
        self._pop_record(key)
        if isinstance(value, (bytearray, memoryview)):
            value = bytes(value)
        self._records[key] = _Record(value=value, expires_at=expires_at, depends_on=depends_on)
        if depends_on is not None:
            self._dependents.setdefault(depends_on, set()).add(key)

    def _pop_record(self, key: str) -> tp.Optional[_Record]:
        record = self._records.pop(key, None)
        if record is not None and record.depends_on is not None:
            dependents = self._dependents.get(record.depends_on)
            if dependents is not None:
                dependents.discard(key)
                if not dependents:
                    del self._dependents[record.depends_on]
        return record

    def _delete(self, key: str) -> int:
        removed = 0
        pending = [key]

        while pending:
            current = pending.pop()
            for member in entry_group(current):
                if self._pop_record(member) is not None:
                    removed += 1
                pending.extend(self._dependents.pop(member, ()))

        return removed

    def _expire(self, key: str) -> int:
        # expiration drops the entry group only, dependents keep their own expiration
        removed = 0
        for member in entry_group(key):
            if self._pop_record(member) is not None:
                removed += 1
        return removed

    def _sweep(self, now: float) -> int:
        self._last_sweep = now
        expired = [key for key, record in self._records.items() if record.expires_at <= now]
        removed = 0
        for key in expired:
            removed += self._expire(key)

        if removed:
            logger.debug(f"Removed {removed} expired entries.")
        return removed

    def _maybe_sweep(self) -> None:
        now = self._clock.now()
        if now - self._last_sweep >= self._sweep_interval:
            self._sweep(now)
