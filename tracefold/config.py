"""Formatter configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace

from tracefold.conventions import DEFAULT_CONVENTIONS, FrameConventions

logger = logging.getLogger(__name__)

ENV_MAX_DEPTH = "TRACEFOLD_MAX_DEPTH"
ENV_MAX_FRAMES = "TRACEFOLD_MAX_FRAMES"
ENV_MAX_NODES = "TRACEFOLD_MAX_NODES"


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return None
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive", name, raw)
        return None
    return value


@dataclass(frozen=True)
class FormatterConfig:
    """Limits and naming conventions used by the formatter.

    Attributes:
        conventions: Carrier patterns and noise markers used to classify frames.
        max_depth: Nested causes deeper than this are replaced by an omission line.
        max_frames: Frames kept per error; the middle of longer traces is omitted.
        head_frames: How many of the kept frames come from the top of the trace.
        max_nodes: Errors rendered per report, counting every cause once per
            appearance; causes past the budget are replaced by an omission line.
    """

    conventions: FrameConventions = field(default=DEFAULT_CONVENTIONS)
    max_depth: int = 32
    max_frames: int = 200
    head_frames: int = 10
    max_nodes: int = 1000

    def __post_init__(self) -> None:
        for name in ("max_depth", "max_frames", "head_frames"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if self.max_nodes < 1:
            raise ValueError(f"max_nodes must be >= 1, got {self.max_nodes}")

    @classmethod
    def from_env(cls, **overrides: object) -> FormatterConfig:
        """Build a config whose limits may be overridden by the environment.

        Keyword arguments win over environment variables.
        """
        config = cls(**overrides)  # type: ignore[arg-type]
        max_depth = _env_int(ENV_MAX_DEPTH)
        if max_depth is not None and "max_depth" not in overrides:
            config = replace(config, max_depth=max_depth)
        max_frames = _env_int(ENV_MAX_FRAMES)
        if max_frames is not None and "max_frames" not in overrides:
            config = replace(config, max_frames=max_frames)
        max_nodes = _env_int(ENV_MAX_NODES)
        if max_nodes is not None and "max_nodes" not in overrides:
            config = replace(config, max_nodes=max_nodes)
        return config


__all__ = ["ENV_MAX_DEPTH", "ENV_MAX_FRAMES", "ENV_MAX_NODES", "FormatterConfig"]
