"""Parsing of raw stack-frame lines.

A raw frame has the conventional shape::

       at Namespace.Type.Method(String arg, Int32 count) in /src/File.cs:line 42

Only the ``at`` marker and the member reference are required. The parameter
text is kept verbatim; it is interpreted later, and only for frames that need
method resolution.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from tracefold.errors import MalformedFrameError

_FRAME_LINE = re.compile(
    r"""
    ^\s*at\s+
    (?P<reference>[^\s(]+)
    (?:\s*\((?P<parameters>[^()]*)\))?
    (?:\s+in\s+(?P<file>.+?)(?::line\s+(?P<line>\d+))?)?
    \s*$
    """,
    re.VERBOSE,
)

_OPENERS = {"<": ">", "[": "]"}


@dataclass(frozen=True)
class ParsedFrame:
    scope: str
    member: str
    parameters: str | None
    file: str | None
    line: int | None
    raw: str

    @property
    def qualified_name(self) -> str:
        if not self.scope:
            return self.member
        return f"{self.scope}.{self.member}"


def raw_frames(trace: str | None) -> Iterator[str]:
    """Yield the non-blank lines of a raw trace, in order."""
    if not trace:
        return
    for line in trace.splitlines():
        if line.strip():
            yield line.rstrip()


def split_reference(reference: str) -> tuple[str, str]:
    """Split a qualified member reference into ``(scope, member)``.

    The split happens at the last dot outside ``<...>`` and ``[...]``. A dot
    directly preceding the split point belongs to the member, so constructors
    (``Type..ctor``) keep their ``.ctor`` name.
    """
    depth = 0
    split_at = -1
    for index, char in enumerate(reference):
        if char in _OPENERS:
            depth += 1
        elif char in (">", "]"):
            depth = max(0, depth - 1)
        elif char == "." and depth == 0:
            split_at = index
    if split_at < 0:
        return "", reference
    if split_at > 0 and reference[split_at - 1] == ".":
        return reference[: split_at - 1], reference[split_at:]
    return reference[:split_at], reference[split_at + 1 :]


def parse_frame(line: str) -> ParsedFrame:
    match = _FRAME_LINE.match(line)
    if match is None:
        raise MalformedFrameError(line)

    scope, member = split_reference(match.group("reference"))
    if not member or member == ".":
        raise MalformedFrameError(line)

    file = match.group("file")
    line_number = match.group("line")
    return ParsedFrame(
        scope=scope,
        member=member,
        parameters=match.group("parameters"),
        file=file.strip() if file else None,
        line=int(line_number) if line_number is not None else None,
        raw=line,
    )


def split_parameters(text: str | None) -> list[str]:
    """Split parameter text at top-level commas, trimming each entry."""
    if not text or not text.strip():
        return []
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char in _OPENERS:
            depth += 1
        elif char in (">", "]"):
            depth = max(0, depth - 1)
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return [part for part in parts if part]


__all__ = ["ParsedFrame", "parse_frame", "raw_frames", "split_parameters", "split_reference"]
