from __future__ import annotations

import asyncio
import functools
import inspect
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Optional


class CoroutineDispatcher:
    """
    Execution context a use case body is placed on.

    Coroutine functions are always awaited on the running event loop; a
    dispatcher only decides where plain (blocking) callables run.
    """

    name: str = "dispatcher"

    async def dispatch(self, func: Callable[..., Any], *args: Any) -> Any:
        raise NotImplementedError

    def close(self) -> None:
        pass


class InlineDispatcher(CoroutineDispatcher):
    """Run everything on the calling event loop thread."""

    def __init__(self, name: str = "inline"):
        self.name = name

    async def dispatch(self, func: Callable[..., Any], *args: Any) -> Any:
        result = func(*args)
        if inspect.isawaitable(result):
            result = await result
        return result


class ThreadPoolDispatcher(CoroutineDispatcher):
    """
    Offload blocking callables to a thread pool.

    The pool is created lazily and shared by every dispatch on this
    instance. Cancelling the awaiting task cancels the await, not the
    thread: a blocking call already running finishes in the background.
    """

    def __init__(self, name: str = "io", max_workers: Optional[int] = None):
        self.name = name
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix=f"policycatalog-{self.name}",
                )
            return self._executor

    async def dispatch(self, func: Callable[..., Any], *args: Any) -> Any:
        if inspect.iscoroutinefunction(func):
            return await func(*args)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(self._get_executor(), functools.partial(func, *args))
        if inspect.isawaitable(result):
            result = await result
        return result

    def close(self) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False)
                self._executor = None


@dataclass(frozen=True)
class DispatcherProvider:
    """
    Named dispatchers handed to use cases and handlers.

    io runs blocking work off the event loop; default runs on it.
    """

    io: CoroutineDispatcher = field(default_factory=ThreadPoolDispatcher)
    default: CoroutineDispatcher = field(default_factory=lambda: InlineDispatcher(name="default"))

    def close(self) -> None:
        self.io.close()
        self.default.close()

    @classmethod
    def inline(cls) -> "DispatcherProvider":
        """All dispatchers run inline; intended for tests."""
        return cls(io=InlineDispatcher(name="io"), default=InlineDispatcher(name="default"))


_default_provider: Optional[DispatcherProvider] = None
_default_lock = Lock()


def default_dispatchers() -> DispatcherProvider:
    """Process-wide provider used when a use case is given no dispatcher."""
    global _default_provider
    with _default_lock:
        if _default_provider is None:
            _default_provider = DispatcherProvider()
        return _default_provider
