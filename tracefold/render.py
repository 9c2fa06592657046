"""Text rendering of a render plan.

Output conventions are fixed; downstream consumers pattern-match them::

    App.OuterError : Crash! ---> App.InnerError : Sync crash!
       at App.Worker.Step(String arg) at /src/Worker.cs : 12
       End of inner exception
       at App.Worker.Run(String arg) at /src/Worker.cs : 30

    App.BatchError : Batch failed. ---> Crash!
       at App.Worker.Wait() at /src/Worker.cs : 44
    ---> (Inner Exception #0) App.InnerError : Crash!
       at async App.Worker.CrashAsync() at /src/Worker.cs : 51<---
"""

from __future__ import annotations

from tracefold.chain import PlannedFrame, RenderPlan, RenderUnit
from tracefold.frames import ParsedFrame, split_parameters

FRAME_PREFIX = "   at "
ASYNC_MARKER = "async "
CHAIN_SEPARATOR = " ---> "
END_OF_INNER_EXCEPTION = "   End of inner exception"
PARALLEL_OPEN = "---> (Inner Exception #{index}) "
PARALLEL_CLOSE = "<---"
TRUNCATED_CAUSES = "   ... (inner exceptions omitted) ..."
OMITTED_FRAMES = "   ... ({count} frames omitted) ..."


def _location(frame: ParsedFrame) -> str:
    if frame.file and frame.line is not None:
        return f" at {frame.file} : {frame.line}"
    if frame.file:
        return f" at {frame.file}"
    return ""


def render_frame(planned: PlannedFrame) -> str:
    classified = planned.classified
    frame = classified.frame
    if frame is None:
        return classified.raw

    call = planned.call
    if call is not None:
        return (
            f"{FRAME_PREFIX}{ASYNC_MARKER}{call.scope}.{call.method}"
            f"({call.render_parameters()}){_location(frame)}"
        )

    parameters = ",".join(split_parameters(frame.parameters))
    return f"{FRAME_PREFIX}{frame.qualified_name}({parameters}){_location(frame)}"


def _frame_lines(unit: RenderUnit) -> list[str]:
    lines = [render_frame(planned) for planned in unit.frames]
    if unit.omitted_frames:
        lines.insert(unit.omitted_at, OMITTED_FRAMES.format(count=unit.omitted_frames))
    return lines


def render_unit(unit: RenderUnit) -> list[str]:
    lines = [unit.header]
    if unit.cause_summary is not None:
        lines[0] += CHAIN_SEPARATOR + unit.cause_summary

    if unit.inner is not None:
        inner_lines = render_unit(unit.inner)
        lines[0] += CHAIN_SEPARATOR + inner_lines[0]
        lines.extend(inner_lines[1:])
        lines.append(END_OF_INNER_EXCEPTION)
    if unit.truncated:
        lines.append(TRUNCATED_CAUSES)

    lines.extend(_frame_lines(unit))

    for index, child in enumerate(unit.parallel):
        child_lines = render_unit(child)
        child_lines[0] = PARALLEL_OPEN.format(index=index) + child_lines[0]
        child_lines[-1] += PARALLEL_CLOSE
        lines.extend(child_lines)
    return lines


def render_plan(plan: RenderPlan) -> str:
    return "\n".join(render_unit(plan.root))


__all__ = [
    "ASYNC_MARKER",
    "END_OF_INNER_EXCEPTION",
    "render_frame",
    "render_plan",
    "render_unit",
]
