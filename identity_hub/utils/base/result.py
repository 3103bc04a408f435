from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from identity_hub.utils.errors import AppError


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome of a service call."""
    value: T
    message: str = ""
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome of a service call carrying a typed AppError."""
    error: AppError

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return self.error.message


Result = Union[Ok[T], Err]


def unwrap(result: "Result[Any]") -> Any:
    """Return the value of an Ok or raise the error of an Err."""
    if isinstance(result, Err):
        raise result.error
    return result.value
