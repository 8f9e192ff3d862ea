from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a store-backed call.

    A failure carries the reason instead of a substituted default, so the
    caller decides whether any fallback is acceptable.
    """

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> Result[T]:
        return cls(error=reason)

    def unwrap(self) -> T:
        if self.error is not None:
            raise RuntimeError(self.error)
        return self.value  # type: ignore[return-value]


def attempt(fn: Callable[..., T], *args: object, **kwargs: object) -> Result[T]:
    """Run ``fn`` and capture store errors as a failed Result.

    Only database errors are captured; bugs and validation errors propagate.
    """
    try:
        return Result.success(fn(*args, **kwargs))
    except SQLAlchemyError as exc:
        name = getattr(fn, "__qualname__", repr(fn))
        logger.error(f"store_failure: call={name} error={exc}")
        return Result.failure(f"{type(exc).__name__}: {exc}")
