"""Custom exception hierarchy for the rendering pipeline."""

from __future__ import annotations


class LitdownError(RuntimeError):
    """Base exception for rendering failures."""


class ConfigurationError(LitdownError):
    """Raised when no usable converter or output format can be resolved."""


class NameCollisionError(LitdownError):
    """Raised when the whitespace-free copy of an input already exists."""


class CompatibilityError(LitdownError):
    """Raised when woven content cannot be converted to the requested target."""

    HTML_CONTENT = "html-content-non-html-target"
    NON_STATIC_RUNTIME = "non-static-runtime-non-html-target"

    def __init__(self, kind: str, message: str | None = None) -> None:
        self.kind = kind
        super().__init__(message or kind)

    def __str__(self) -> str:
        detail = self.args[0] if self.args else ""
        if detail and detail != self.kind:
            return f"{self.kind}: {detail}"
        return self.kind


class ConversionError(LitdownError):
    """Raised when the external converter reports a failure."""

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message)
        self.diagnostics = diagnostics

    def __str__(self) -> str:
        message = super().__str__()
        if self.diagnostics:
            return f"{message}\n{self.diagnostics.rstrip()}"
        return message


class WeavingError(LitdownError):
    """Raised when a chunk fails while errors are not captured in the output."""


class MetadataNameCollisionWarning(UserWarning):
    """The execution namespace already defines ``metadata``."""


class EmbeddedWarning(UserWarning):
    """Warning published by document code on the weaving side channel."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "CompatibilityError",
    "ConfigurationError",
    "ConversionError",
    "EmbeddedWarning",
    "LitdownError",
    "MetadataNameCollisionWarning",
    "NameCollisionError",
    "WeavingError",
    "exception_hint",
    "exception_messages",
]
