"""Typed outcomes for booking engine operations.

Expected operational failures (a lost slot race, a forbidden transition, a
missing row) come back as ``Result`` values carrying an ``EngineError``.
Broken invariants are programming errors and raise ``InvariantViolation``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    VALIDATION = "validation_error"
    SLOT_UNAVAILABLE = "slot_unavailable"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"


class InvariantViolation(AssertionError):
    """The slot/appointment consistency contract was broken upstream."""


@dataclass(frozen=True)
class EngineError:
    code: ErrorCode
    message: str


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: EngineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, code: ErrorCode, message: str) -> "Result[T]":
        return cls(error=EngineError(code=code, message=message))


def validation_error(message: str) -> Result:
    return Result.failure(ErrorCode.VALIDATION, message)


def slot_unavailable(message: str = "Slot not available") -> Result:
    return Result.failure(ErrorCode.SLOT_UNAVAILABLE, message)


def forbidden(message: str = "Not authorized") -> Result:
    return Result.failure(ErrorCode.FORBIDDEN, message)


def not_found(message: str) -> Result:
    return Result.failure(ErrorCode.NOT_FOUND, message)


def invalid_transition(message: str = "Invalid update") -> Result:
    return Result.failure(ErrorCode.INVALID_TRANSITION, message)
