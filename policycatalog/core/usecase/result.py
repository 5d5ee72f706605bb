from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

R = TypeVar("R")


class ApiErrorKind(str, Enum):
    """
    Error taxonomy for handler invocations.

    Using str Enum ensures stable serialization and safe comparisons.
    """

    NOT_FOUND = "NOT_FOUND"
    PERMISSION = "PERMISSION"
    UNEXPECTED = "UNEXPECTED"


@dataclass(frozen=True)
class ApiError:
    """Typed error payload carried by an Error result or a PolicyState."""

    kind: ApiErrorKind
    message: str = ""

    @classmethod
    def unexpected(cls, message: str = "An unexpected error occurred") -> "ApiError":
        return cls(kind=ApiErrorKind.UNEXPECTED, message=message)

    @classmethod
    def permission(cls, message: str = "Permission denied") -> "ApiError":
        return cls(kind=ApiErrorKind.PERMISSION, message=message)

    @classmethod
    def not_found(cls, message: str = "Not found") -> "ApiError":
        return cls(kind=ApiErrorKind.NOT_FOUND, message=message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message}


class ApiResult(Generic[R]):
    """
    Outcome of a use case or handler call.

    Exactly three variants exist: Success, Error and NotSupported.
    NotSupported is not an Error: callers render it as an
    unavailable control rather than a failure.
    """

    __slots__ = ()

    @property
    def is_success(self) -> bool:
        return isinstance(self, Success)

    @property
    def is_error(self) -> bool:
        return isinstance(self, Error)

    @property
    def is_not_supported(self) -> bool:
        return isinstance(self, NotSupported)

    def value_or(self, default: Any = None) -> Any:
        if isinstance(self, Success):
            return self.value
        return default

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class Success(ApiResult[R]):
    value: Optional[R] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "SUCCESS"}


@dataclass(frozen=True)
class Error(ApiResult[R]):
    api_error: ApiError
    exception: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "ERROR",
            "error": self.api_error.to_dict(),
            "exception": type(self.exception).__name__ if self.exception else None,
        }


@dataclass(frozen=True)
class NotSupported(ApiResult[R]):
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"status": "NOT_SUPPORTED", "reason": self.reason}
