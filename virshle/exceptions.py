"""Custom exceptions for virshle."""

from __future__ import annotations

from typing import Optional


class VirshleError(RuntimeError):
    """Raised on unrecoverable conversion, configuration or runtime errors."""


class FormatDetectionError(VirshleError):
    """No decoder accepted the input, or its extension is unknown."""


class DecodeError(VirshleError):
    """Input failed to parse under the grammar of its format."""

    def __init__(self, message: str, format: Optional[str] = None) -> None:
        super().__init__(message)
        self.format = format


class EncodeError(VirshleError):
    """A document holds a shape the target encoder cannot represent."""

    def __init__(self, message: str, format: Optional[str] = None) -> None:
        super().__init__(message)
        self.format = format


class PathResolutionError(VirshleError):
    """A relative path inside a document points to nothing on disk."""

    def __init__(self, value: str) -> None:
        super().__init__(f"The relative path: {value} resolves to nothing")
        self.value = value
