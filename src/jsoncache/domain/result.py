"""Discriminated results returned across the public boundary."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

from jsoncache.domain.errors import JSONCacheError

if TYPE_CHECKING:
    from collections.abc import Callable


class ResultStatus(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True, slots=True)
class Success[T]:
    """Operation completed and produced ``value``."""

    value: T
    status: Literal[ResultStatus.SUCCESS] = ResultStatus.SUCCESS

    @property
    def is_success(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Failure:
    """Operation failed with ``error``; no partial value is available."""

    error: JSONCacheError
    status: Literal[ResultStatus.FAILURE] = ResultStatus.FAILURE

    @property
    def is_success(self) -> bool:
        return False

    def unwrap(self) -> object:
        raise self.error


type Result[T] = Success[T] | Failure


def capture[T](operation: Callable[[], T]) -> Result[T]:
    """Run ``operation`` and fold any ``JSONCacheError`` into a ``Failure``."""

    try:
        return Success(operation())
    except JSONCacheError as exc:
        return Failure(exc)
