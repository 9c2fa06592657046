"""Construction of the render plan from an error tree.

The plan mirrors the causal tree. A unit holds the header of its error, the
frames that survive classification (with resolved calls for resume frames),
its single wrapped cause and its indexed parallel causes. Units are visited
outermost first; :meth:`RenderPlan.units` lists them in that order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from tracefold.classify import ClassifiedFrame, Disposition, classify_trace
from tracefold.config import FormatterConfig
from tracefold.metadata import MetadataSource
from tracefold.nodes import ErrorNode, NodeBudget
from tracefold.resolver import ResolvedCall, resolve_carrier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedFrame:
    classified: ClassifiedFrame
    call: ResolvedCall | None = None

    @property
    def is_async(self) -> bool:
        return self.call is not None


@dataclass(frozen=True)
class RenderUnit:
    header: str
    frames: tuple[PlannedFrame, ...]
    inner: RenderUnit | None = None
    parallel: tuple[RenderUnit, ...] = ()
    omitted_frames: int = 0
    omitted_at: int = 0
    truncated: bool = False
    cause_summary: str | None = None


@dataclass(frozen=True)
class RenderPlan:
    root: RenderUnit

    def units(self) -> Iterator[RenderUnit]:
        """Depth-first, outermost first; a wrapped cause precedes parallel causes."""
        stack = [self.root]
        while stack:
            unit = stack.pop()
            yield unit
            stack.extend(reversed(unit.parallel))
            if unit.inner is not None:
                stack.append(unit.inner)


def plan_frames(
    trace: str,
    metadata: MetadataSource | None,
    config: FormatterConfig,
) -> list[PlannedFrame]:
    planned: list[PlannedFrame] = []
    for classified in classify_trace(trace, config.conventions):
        if classified.disposition is Disposition.DROP:
            continue
        if classified.disposition is Disposition.TRANSLATE and classified.carrier is not None:
            call = resolve_carrier(classified.carrier, metadata)
            planned.append(PlannedFrame(classified=classified, call=call))
            continue
        planned.append(PlannedFrame(classified=classified))
    return planned


def _truncate(
    frames: list[PlannedFrame], config: FormatterConfig
) -> tuple[tuple[PlannedFrame, ...], int, int]:
    if len(frames) <= config.max_frames:
        return tuple(frames), 0, 0

    head = min(config.head_frames, config.max_frames)
    tail = config.max_frames - head
    omitted = len(frames) - config.max_frames
    kept = frames[:head] + (frames[-tail:] if tail else [])
    logger.debug("Omitting %d of %d frames", omitted, len(frames))
    return tuple(kept), omitted, head


def _build_unit(
    node: ErrorNode,
    metadata: MetadataSource | None,
    config: FormatterConfig,
    depth: int,
    budget: NodeBudget,
) -> RenderUnit:
    frames, omitted, omitted_at = _truncate(plan_frames(node.stack_trace, metadata, config), config)

    truncated = node.truncated
    inner: RenderUnit | None = None
    parallel: list[RenderUnit] = []
    if node.children and depth >= budget.max_depth:
        logger.debug("Cause chain deeper than %d; truncating", budget.max_depth)
        truncated = True
    elif node.children:
        if node.inner is not None:
            if budget.take():
                inner = _build_unit(node.inner, metadata, config, depth + 1, budget)
            else:
                truncated = True
        for child in node.inner_exceptions:
            if not budget.take():
                logger.debug("Render budget of %d errors exhausted", config.max_nodes)
                truncated = True
                break
            parallel.append(_build_unit(child, metadata, config, depth + 1, budget))

    # an aggregate summarizes its first parallel cause on the header line
    summary = None
    if node.inner is None and node.inner_exceptions:
        summary = node.inner_exceptions[0].message

    return RenderUnit(
        header=node.header,
        frames=frames,
        inner=inner,
        parallel=tuple(parallel),
        omitted_frames=omitted,
        omitted_at=omitted_at,
        truncated=truncated,
        cause_summary=summary,
    )


def build_plan(
    node: ErrorNode,
    metadata: MetadataSource | None = None,
    config: FormatterConfig | None = None,
) -> RenderPlan:
    config = config or FormatterConfig()
    budget = NodeBudget(max_depth=config.max_depth, remaining=config.max_nodes - 1)
    return RenderPlan(root=_build_unit(node, metadata, config, 0, budget))


__all__ = ["PlannedFrame", "RenderPlan", "RenderUnit", "build_plan", "plan_frames"]
