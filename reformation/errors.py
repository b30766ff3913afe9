"""Exceptions raised while compiling templates and parsing input."""

from __future__ import annotations


class ReformationError(Exception):
    """Base class for recoverable reformation errors."""


class CompileError(ReformationError):
    """Raised when a template or record schema cannot be compiled."""

    def __init__(
        self,
        message: str,
        *,
        template: str | None = None,
        record: str | None = None,
    ) -> None:
        super().__init__(message)
        self.template = template
        self.record = record


class NoRegexMatch(ReformationError):
    """Raised when an input string does not satisfy the composed pattern."""

    def __init__(self, *, format: str, request: str, pattern: str | None = None) -> None:
        self.format = format
        self.request = request
        self.pattern = pattern if pattern is not None else format
        super().__init__(f"String {request!r} does not match format r{format!r}")


class ReconstructionError(ReformationError):
    """Raised when matched text cannot be converted into a field value."""

    def __init__(self, *, field: str, text: str | None, type_name: str, reason: str) -> None:
        super().__init__(f"Cannot build field {field!r} ({type_name}) from {text!r}: {reason}")
        self.field = field
        self.text = text
        self.type_name = type_name
        self.reason = reason


class PatternDefectError(RuntimeError):
    """Raised when an already compiled schema yields an unusable pattern."""
