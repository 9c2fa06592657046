"""Classification of parsed frames into keep / drop / translate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from tracefold.conventions import DEFAULT_CONVENTIONS, CarrierMatch, FrameConventions
from tracefold.errors import MalformedFrameError
from tracefold.frames import ParsedFrame, parse_frame, raw_frames

logger = logging.getLogger(__name__)


class Disposition(Enum):
    KEEP = "keep"
    DROP = "drop"
    TRANSLATE = "translate"


@dataclass(frozen=True)
class ClassifiedFrame:
    """A raw frame line with its disposition.

    ``frame`` is ``None`` when the line could not be parsed; such lines are
    always ``KEEP`` and rendered verbatim. ``carrier`` is set exactly when the
    disposition is ``TRANSLATE``.
    """

    raw: str
    disposition: Disposition
    frame: ParsedFrame | None = None
    carrier: CarrierMatch | None = None


def classify_frame(
    frame: ParsedFrame,
    conventions: FrameConventions = DEFAULT_CONVENTIONS,
) -> ClassifiedFrame:
    if conventions.is_noise(frame.scope, frame.member):
        return ClassifiedFrame(raw=frame.raw, disposition=Disposition.DROP, frame=frame)

    carrier = conventions.match_carrier(frame.scope, frame.member)
    if carrier is not None:
        return ClassifiedFrame(
            raw=frame.raw,
            disposition=Disposition.TRANSLATE,
            frame=frame,
            carrier=carrier,
        )
    return ClassifiedFrame(raw=frame.raw, disposition=Disposition.KEEP, frame=frame)


def classify_line(
    line: str,
    conventions: FrameConventions = DEFAULT_CONVENTIONS,
) -> ClassifiedFrame:
    if conventions.is_separator(line):
        return ClassifiedFrame(raw=line, disposition=Disposition.DROP)
    try:
        frame = parse_frame(line)
    except MalformedFrameError:
        logger.debug("Passing through unparsed frame line: %r", line)
        return ClassifiedFrame(raw=line, disposition=Disposition.KEEP)
    return classify_frame(frame, conventions)


def classify_trace(
    trace: str | None,
    conventions: FrameConventions = DEFAULT_CONVENTIONS,
) -> list[ClassifiedFrame]:
    """Classify every frame line of ``trace``, preserving order."""
    return [classify_line(line, conventions) for line in raw_frames(trace)]


__all__ = ["ClassifiedFrame", "Disposition", "classify_frame", "classify_line", "classify_trace"]
