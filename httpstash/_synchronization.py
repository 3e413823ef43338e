from __future__ import annotations

import types
import typing as tp
from threading import Lock as T_LOCK

import anyio


class AsyncLock:
    def __init__(self) -> None:
        self._lock = anyio.Lock()

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
    def __init__(self) -> None:
        self._lock = T_LOCK()

    def __enter__(self) -> None:
        self._lock.acquire()

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: types.TracebackType | None = None,
    ) -> None:
        self._lock.release()


class AsyncOnce:
    """
    Run an async initializer at most once.

    Concurrent callers wait for the first run. If it fails, the same exception
    is raised to every later caller instead of running the initializer again.
    """

    def __init__(self, initializer: tp.Callable[[], tp.Awaitable[None]]) -> None:
        self._initializer = initializer
        self._lock = AsyncLock()
        self._done = False
        self._error: BaseException | None = None

    async def wait(self) -> None:
        if self._done:
            return
        async with self._lock:
            if self._error is not None:
                raise self._error
            if self._done:
                return
            try:
                await self._initializer()
            except Exception as exc:
                self._error = exc
                raise
            self._done = True


class Once:
    """
    Run an initializer at most once.

    Concurrent callers wait for the first run. If it fails, the same exception
    is raised to every later caller instead of running the initializer again.
    """

    def __init__(self, initializer: tp.Callable[[], None]) -> None:
        self._initializer = initializer
        self._lock = Lock()
        self._done = False
        self._error: BaseException | None = None

    def wait(self) -> None:
        if self._done:
            return
        with self._lock:
            if self._error is not None:
                raise self._error
            if self._done:
                return
            try:
                self._initializer()
            except Exception as exc:
                self._error = exc
                raise
            self._done = True
