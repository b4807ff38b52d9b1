from __future__ import annotations

import threading
import types

import anyio

__all__ = ("AsyncLock", "Lock")


class AsyncLock:
    """
    Guards the shared state of an async store.

    Held only for the in-memory bookkeeping of one operation, never across
    an ``await`` on user code.
    """

    def __init__(self) -> None:
        self._lock = anyio.Lock()

    def locked(self) -> bool:
        return self._lock.locked()

    async def __aenter__(self) -> None:
        await self._lock.acquire()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        self._lock.release()


class Lock:
    """Guards the shared state of a store used from several threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def locked(self) -> bool:
        return self._lock.locked()

    def __enter__(self) -> None:
        self._lock.acquire()

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        self._lock.release()
