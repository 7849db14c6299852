"""
Generic Result type for explicit handling of expected failures.

Channel deliveries fail routinely (a mailbox rejects, a socket is gone);
those outcomes travel as values so a fan-out can settle every attempt and
report on all of them.
"""

from typing import Generic

from typing_extensions import TypeVar

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException, default=Exception)


class Result(Generic[ValueT, ErrorT]):
    """
    Either a value or an error, never both.

    When to use: when failure is expected business logic, not exceptional.
    """

    __slots__ = ("_value", "_error", "_has_value")

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None, *,
                 has_value: bool | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if has_value is None:
            has_value = error is None
        if not has_value and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error
        self._has_value = has_value

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        # None is a legitimate success value for fire-and-forget channels
        return cls(value=value, has_value=True)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error, has_value=False)

    def is_ok(self) -> bool:
        return self._has_value

    def is_err(self) -> bool:
        return not self._has_value

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._has_value else default  # type: ignore[return-value]

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error

    def __repr__(self) -> str:
        if self._has_value:
            return f"Result.ok({self._value!r})"
        return f"Result.err({self._error!r})"
