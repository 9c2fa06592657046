"""Error nodes: the causal tree the formatter walks.

Errors reach the formatter in three shapes, all coerced to :class:`ErrorNode`:

1. Python exceptions. The traceback is converted to raw frame lines in the
   conventional ``at scope.member(params) in file:line N`` shape, innermost
   call first. ``__cause__`` (or an unsuppressed ``__context__``) becomes the
   wrapped cause and the members of a ``BaseExceptionGroup`` become parallel
   causes.
2. Mappings, e.g. a serialized CLR exception (``ClassName``, ``Message``,
   ``StackTraceString``, ``InnerException``, ``InnerExceptions``) or the
   snake_case equivalents.
3. Any object exposing ``type_name``, ``message``, ``stack_trace``,
   ``inner_exception`` and ``inner_exceptions`` attributes.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import CodeType, TracebackType
from typing import Any

logger = logging.getLogger(__name__)

_TYPE_KEYS = ("type_name", "type", "ClassName")
_MESSAGE_KEYS = ("message", "Message")
_TRACE_KEYS = ("stack_trace", "StackTraceString", "StackTrace")
_INNER_KEYS = ("inner", "inner_exception", "InnerException")
_PARALLEL_KEYS = ("inner_exceptions", "InnerExceptions")


@dataclass(frozen=True)
class ErrorNode:
    type_name: str
    message: str
    stack_trace: str = ""
    inner: ErrorNode | None = None
    inner_exceptions: tuple[ErrorNode, ...] = ()
    truncated: bool = False

    @property
    def is_aggregate(self) -> bool:
        return bool(self.inner_exceptions)

    @property
    def children(self) -> tuple[ErrorNode, ...]:
        if self.inner_exceptions:
            return self.inner_exceptions
        if self.inner is not None:
            return (self.inner,)
        return ()

    @property
    def header(self) -> str:
        return f"{self.type_name} : {self.message}"


# ============================================================================
# Python exceptions
# ============================================================================


def qualified_type_name(exc_type: type) -> str:
    """Exception type name as Python's own traceback prints it."""
    module = getattr(exc_type, "__module__", None)
    qualname = getattr(exc_type, "__qualname__", exc_type.__name__)
    if module in (None, "builtins", "__main__"):
        return qualname
    return f"{module}.{qualname}"


def _exception_message(exc: BaseException) -> str:
    if isinstance(exc, BaseExceptionGroup):
        return exc.message
    try:
        return str(exc)
    except Exception:
        return "<exception str() failed>"


def _code_parameters(code: CodeType) -> list[str]:
    positional = code.co_argcount
    count = positional + code.co_kwonlyargcount
    names = list(code.co_varnames[:count])
    if code.co_flags & inspect.CO_VARARGS:
        names.insert(positional, f"*{code.co_varnames[count]}")
        count += 1
    if code.co_flags & inspect.CO_VARKEYWORDS:
        names.append(f"**{code.co_varnames[count]}")
    if positional and names and names[0] in ("self", "cls"):
        names = names[1:]
    return names


def _frame_line(tb: TracebackType) -> str:
    frame = tb.tb_frame
    code = frame.f_code
    module = frame.f_globals.get("__name__") or "<unknown>"
    qualname = getattr(code, "co_qualname", code.co_name)
    parameters = ", ".join(_code_parameters(code))
    return f"   at {module}.{qualname}({parameters}) in {code.co_filename}:line {tb.tb_lineno}"


def python_stack_trace(tb: TracebackType | None) -> str:
    """Render a traceback as raw frame lines, innermost call first."""
    lines: list[str] = []
    while tb is not None:
        try:
            lines.append(_frame_line(tb))
        except Exception:
            logger.debug("Skipping unreadable traceback frame", exc_info=True)
        tb = tb.tb_next
    lines.reverse()
    return "\n".join(lines)


def _wrapped_cause(exc: BaseException) -> BaseException | None:
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__context__ is not None and not exc.__suppress_context__:
        return exc.__context__
    return None


@dataclass
class NodeBudget:
    """Depth limit and remaining node allowance shared by one walk of an error tree."""

    max_depth: int
    remaining: int

    def take(self) -> bool:
        if self.remaining <= 0:
            return False
        self.remaining -= 1
        return True


def _coerce_children(
    inner: Any,
    parallel: list[Any],
    depth: int,
    budget: NodeBudget,
    convert: Callable[[Any], ErrorNode],
) -> tuple[ErrorNode | None, tuple[ErrorNode, ...], bool]:
    """Convert the causes of one node; returns ``(inner, parallel, truncated)``."""
    if inner is None and not parallel:
        return None, (), False
    if depth >= budget.max_depth:
        return None, (), True

    truncated = False
    inner_node: ErrorNode | None = None
    if inner is not None:
        if budget.take():
            inner_node = convert(inner)
        else:
            truncated = True
    nodes: list[ErrorNode] = []
    for entry in parallel:
        if not budget.take():
            truncated = True
            break
        nodes.append(convert(entry))
    if truncated:
        logger.debug("Error node budget exhausted; truncating causes")
    return inner_node, tuple(nodes), truncated


def _from_exception(exc: BaseException, depth: int, budget: NodeBudget, seen: frozenset[int]) -> ErrorNode:
    seen = seen | {id(exc)}
    cause = _wrapped_cause(exc)
    if cause is not None and id(cause) in seen:
        cause = None
    members = exc.exceptions if isinstance(exc, BaseExceptionGroup) else ()

    inner, parallel, truncated = _coerce_children(
        cause,
        [member for member in members if id(member) not in seen],
        depth,
        budget,
        lambda child: _from_exception(child, depth + 1, budget, seen),
    )
    return ErrorNode(
        type_name=qualified_type_name(type(exc)),
        message=_exception_message(exc),
        stack_trace=python_stack_trace(exc.__traceback__),
        inner=inner,
        inner_exceptions=parallel,
        truncated=truncated,
    )


# ============================================================================
# Mappings and duck-typed error objects
# ============================================================================


def _first(entry: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return None


def _from_fields(
    type_name: Any,
    message: Any,
    stack_trace: Any,
    inner: Any,
    parallel: Any,
    depth: int,
    budget: NodeBudget,
) -> ErrorNode:
    parallel_entries = list(parallel) if parallel else []
    if parallel_entries:
        # serialized aggregates repeat their first parallel cause as the single inner cause
        inner = None

    inner_node, parallel_nodes, truncated = _coerce_children(
        inner,
        parallel_entries,
        depth,
        budget,
        lambda child: _coerce(child, depth + 1, budget),
    )
    return ErrorNode(
        type_name=str(type_name) if type_name is not None else "<unknown>",
        message=str(message) if message is not None else "",
        stack_trace=str(stack_trace) if stack_trace is not None else "",
        inner=inner_node,
        inner_exceptions=parallel_nodes,
        truncated=truncated,
    )


def _coerce(error: Any, depth: int, budget: NodeBudget) -> ErrorNode:
    if isinstance(error, ErrorNode):
        return error
    if isinstance(error, BaseException):
        return _from_exception(error, depth, budget, frozenset())
    if isinstance(error, Mapping):
        return _from_fields(
            _first(error, _TYPE_KEYS),
            _first(error, _MESSAGE_KEYS),
            _first(error, _TRACE_KEYS),
            _first(error, _INNER_KEYS),
            _first(error, _PARALLEL_KEYS),
            depth,
            budget,
        )
    if hasattr(error, "type_name") and hasattr(error, "message"):
        return _from_fields(
            getattr(error, "type_name"),
            getattr(error, "message"),
            getattr(error, "stack_trace", None),
            getattr(error, "inner_exception", None),
            getattr(error, "inner_exceptions", None),
            depth,
            budget,
        )
    raise TypeError(f"Unsupported error object type: {type(error).__name__}")


def coerce_error_node(error: Any, *, max_depth: int = 32, max_nodes: int = 1000) -> ErrorNode:
    """Build the :class:`ErrorNode` tree for ``error``.

    Causes nested deeper than ``max_depth`` are cut, and so is every cause
    past the first ``max_nodes`` nodes (a cause shared by several parents
    counts once per parent). Nodes that lost causes are marked ``truncated``.
    """
    return _coerce(error, 0, NodeBudget(max_depth=max_depth, remaining=max_nodes - 1))


__all__ = ["ErrorNode", "NodeBudget", "coerce_error_node", "python_stack_trace", "qualified_type_name"]
