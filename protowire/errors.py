"""Errors raised while encoding or decoding Protobuf data."""

from __future__ import annotations


class DecodeError(ValueError):
    """The input does not hold a valid Protobuf message.

    The description is a best-effort account of the root cause. The stack
    holds (message, field) name pairs that locate where decoding failed,
    one entry per level of nesting.
    """

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description
        self.stack: list[tuple[str, str]] = []

    def push(self, message: str, field: str) -> None:
        """Record a (message, field) location on the stack."""
        self.stack.append((message, field))

    def __str__(self) -> str:
        location = "".join(f"{message}.{field}: " for message, field in self.stack)
        return f"failed to decode Protobuf message: {location}{self.description}"

    def __repr__(self) -> str:
        return f"DecodeError(description={self.description!r}, stack={self.stack!r})"


class EncodeError(ValueError):
    """A message did not fit in the capacity the caller allowed for it."""

    def __init__(self, required: int, remaining: int) -> None:
        super().__init__(required, remaining)
        self.required = required
        self.remaining = remaining

    def required_capacity(self) -> int:
        """Return the capacity needed to encode the message."""
        return self.required

    def __str__(self) -> str:
        return (
            "failed to encode Protobuf messsage; insufficient buffer capacity "
            f"(required: {self.required}, remaining: {self.remaining})"
        )

    def __repr__(self) -> str:
        return f"EncodeError(required={self.required}, remaining={self.remaining})"