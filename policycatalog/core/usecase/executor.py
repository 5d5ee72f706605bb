from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from .dispatchers import CoroutineDispatcher, default_dispatchers
from .result import ApiError, ApiResult, Error, NotSupported, Success

log = logging.getLogger("policycatalog.usecase")

P = TypeVar("P")
R = TypeVar("R")


def _is_missing_api(exc: Exception) -> bool:
    if isinstance(exc, NotImplementedError):
        return True
    # A failed lookup on a real module, class or SDK object means the API is
    # absent; a lookup on None (or a hand-raised AttributeError) is a bug.
    return isinstance(exc, AttributeError) and getattr(exc, "obj", None) is not None


def _is_cancelling() -> bool:
    try:
        task = asyncio.current_task()
    except RuntimeError:
        return False
    return task is not None and task.cancelling() > 0


class SuspendingUseCase(ABC, Generic[P, R]):
    """
    Base class for handler invocations with uniform dispatch and error mapping.

    Contract
    - The body (execute) runs on this instance's dispatcher; the process-wide
      io dispatcher is used when none is given.
    - Cancellation is never converted into a result: CancelledError, and any
      exception raised while the current task is being cancelled, propagate.
    - Every other Exception becomes an ApiResult via map_error.
    - NotImplementedError, and an AttributeError raised by looking up a
      missing attribute on a module, class or object, map to NotSupported.
      An AttributeError on None or without a target object is a defect and
      maps to an unexpected Error.
    - execute may be a coroutine function or a plain callable; a plain
      return value that is not an ApiResult is wrapped in Success.
    """

    def __init__(self, dispatcher: Optional[CoroutineDispatcher] = None):
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> CoroutineDispatcher:
        if self._dispatcher is not None:
            return self._dispatcher
        return default_dispatchers().io

    async def __call__(self, params: Optional[P] = None) -> ApiResult[R]:
        try:
            result = await self.dispatcher.dispatch(self.execute, params)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if _is_cancelling():
                raise
            mapped = self.map_error(exc)
            log.debug(
                "use case %s failed: %s -> %s",
                type(self).__name__,
                exc.__class__.__name__,
                type(mapped).__name__,
                exc_info=exc,
            )
            return mapped

        if isinstance(result, ApiResult):
            return result
        return Success(result)

    @abstractmethod
    def execute(self, params: Optional[P]) -> Any:
        """Core logic; implement as `def` or `async def`."""

    def map_error(self, exc: Exception) -> ApiResult[R]:
        """
        Map a failure to a result.

        Overridable for domain-specific exception types. Cancellation never
        reaches this method.
        """

        if _is_missing_api(exc):
            return NotSupported(reason=str(exc))
        if isinstance(exc, PermissionError):
            return Error(
                api_error=ApiError.permission(f"Permission error: {exc}"),
                exception=exc,
            )
        log.warning("unexpected error in %s: %s", type(self).__name__, exc.__class__.__name__)
        return Error(api_error=ApiError.unexpected(), exception=exc)
