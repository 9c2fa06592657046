from __future__ import annotations

from typing import Any


class TraceFormatError(Exception):
    """Base class for conditions the formatter absorbs internally."""


class MalformedFrameError(TraceFormatError, ValueError):
    """Raised when a raw trace line does not have the conventional frame shape."""

    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__(f"Unrecognized stack frame: {line!r}")


class MetadataLookupError(TraceFormatError, LookupError):
    """Raised by a metadata source when a declaring type cannot be inspected."""

    def __init__(self, declaring_type: str, method_name: str, reason: Any = None) -> None:
        self.declaring_type = declaring_type
        self.method_name = method_name
        self.reason = reason
        detail = f": {reason}" if reason is not None else ""
        super().__init__(f"Metadata lookup failed for {declaring_type}.{method_name}{detail}")


__all__ = ["MalformedFrameError", "MetadataLookupError", "TraceFormatError"]
