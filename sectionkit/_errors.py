# Copyright (c) 2023-2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from typing import Any, ClassVar

__all__ = (
    "SectionKitError",
    "SerializerClosedError",
    "MutationError",
)


class SectionKitError(Exception):
    default_message: ClassVar[str] = "sectionkit error"
    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message or self.default_message)
        if cause:
            self.__cause__ = cause  # preserves traceback
        self.message = message or self.default_message
        self.details = details or {}

    def to_dict(self, *, include_cause: bool = False) -> dict[str, Any]:
        data = {
            "error": self.__class__.__name__,
            "message": self.message,
            **({"details": self.details} if self.details else {}),
        }
        if include_cause and (cause := self.get_cause()):
            data["cause"] = repr(cause)
        return data

    def get_cause(self) -> Exception | None:
        """Get the cause of this error, if any."""
        return self.__cause__ if hasattr(self, "__cause__") else None


class SerializerClosedError(SectionKitError):
    """Raised when work is enqueued on a closed mutation serializer."""

    default_message = "Mutation serializer is closed"
    __slots__ = ()


class MutationError(SectionKitError):
    """Wraps an exception raised inside a queued mutation body."""

    default_message = "Mutation failed"
    __slots__ = ()

    @classmethod
    def from_exception(
        cls, exc: Exception, *, label: str | None = None
    ) -> "MutationError":
        details = {"type": type(exc).__name__}
        if label:
            details["operation"] = label
        return cls(str(exc) or cls.default_message, details=details, cause=exc)
