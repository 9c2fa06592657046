"""Entry point: format an error object into a readable, deterministic report.

Usage:
    from tracefold import format_exception, StaticMetadata

    try:
        run()
    except Exception as exc:
        logger.error("Job failed:\n%s", format_exception(exc))

    # errors reported by a CLR worker, with a build-time method map
    metadata = StaticMetadata.load("method-map.json")
    text = format_exception(payload["error"], metadata=metadata)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from tracefold.chain import build_plan
from tracefold.config import FormatterConfig
from tracefold.metadata import MetadataSource
from tracefold.nodes import coerce_error_node, qualified_type_name
from tracefold.render import render_plan

logger = logging.getLogger(__name__)


def _fallback(error: Any) -> str:
    """Header-only rendering used when formatting itself fails."""
    try:
        if isinstance(error, BaseException):
            return f"{qualified_type_name(type(error))} : {error}"
        if isinstance(error, Mapping):
            type_name = error.get("type_name") or error.get("type") or error.get("ClassName")
            message = error.get("message") or error.get("Message") or ""
            return f"{type_name or '<unknown>'} : {message}"
        type_name = getattr(error, "type_name", None) or type(error).__name__
        return f"{type_name} : {getattr(error, 'message', '')}"
    except Exception:
        return "<unformattable error>"


@dataclass
class ExceptionFormatter:
    """Formats errors; holds no state that changes between calls."""

    metadata: MetadataSource | None = None
    config: FormatterConfig = field(default_factory=FormatterConfig)

    def format(self, error: Any) -> str:
        try:
            node = coerce_error_node(
                error, max_depth=self.config.max_depth, max_nodes=self.config.max_nodes
            )
            plan = build_plan(node, self.metadata, self.config)
            return render_plan(plan)
        except MemoryError:
            raise
        except Exception as exc:
            logger.warning("Failed to format %s: %s", type(error).__name__, exc, exc_info=True)
            return _fallback(error)


def format_exception(
    error: Any,
    *,
    metadata: MetadataSource | None = None,
    config: FormatterConfig | None = None,
) -> str:
    return ExceptionFormatter(metadata=metadata, config=config or FormatterConfig()).format(error)


__all__ = ["ExceptionFormatter", "format_exception"]
