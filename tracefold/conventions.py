"""Toolchain naming conventions for asynchronous continuation frames.

A continuation-carrier type is the structure a compiler synthesizes to hold the
suspended state of an asynchronous method. Its name is derived from the method
it was generated from, and every carrier exposes a single resume entry point
that advances its state machine by one step. Frames for that entry point are
synchronous proxies for a logical asynchronous call.

Recognized carrier shapes:

- C# (Roslyn):       ``Outer.<MethodName>d__7.MoveNext``  (``d__7`` suffix may be just ``d``)
- C# generic:        ``Outer.<MethodName>d__7`1.MoveNext``
- C# local function: ``Outer.<<Container>g__MethodName|0_0>d.MoveNext``
- Visual Basic:      ``Outer.VB$StateMachine_7_MethodName.MoveNext``

Noise frames are recognized by the simple name of their declaring type, by
``(type, member)`` pairs, or by a scope prefix for whole modules that only host
event-loop machinery (Python's ``asyncio``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from re import Pattern

CSHARP_CARRIER = re.compile(
    r"^(?P<outer>.+)\.<"
    r"(?:<(?P<container>[A-Za-z_][A-Za-z0-9_]*)>g__)?"
    r"(?P<method>[A-Za-z_][A-Za-z0-9_]*)"
    r"(?:\|[0-9_]+)?"
    r">d(?:__\d+)?(?:`\d+)?$"
)
VB_CARRIER = re.compile(r"^(?P<outer>.+)\.VB\$StateMachine_\d+_(?P<method>[A-Za-z_][A-Za-z0-9_]*)(?:`\d+)?$")

CLR_ASYNC_SEPARATOR = re.compile(r"^\s*---\s*End of stack trace from previous location.*---\s*$")

_GENERIC_ARITY = re.compile(r"`\d+$")


@dataclass(frozen=True)
class CarrierMatch:
    """Structural decomposition of a continuation-carrier scope."""

    outer: str
    method: str
    carrier: str


def simple_type_name(scope: str) -> str:
    """Last dotted segment of ``scope`` without its generic arity suffix."""
    name = scope.rsplit(".", 1)[-1]
    return _GENERIC_ARITY.sub("", name)


@dataclass(frozen=True)
class FrameConventions:
    name: str
    resume_member: str = "MoveNext"
    carrier_patterns: tuple[Pattern[str], ...] = ()
    noise_types: frozenset[str] = field(default_factory=frozenset)
    noise_members: frozenset[tuple[str, str]] = field(default_factory=frozenset)
    noise_scope_prefixes: tuple[str, ...] = ()
    separator_patterns: tuple[Pattern[str], ...] = ()

    def is_noise(self, scope: str, member: str) -> bool:
        type_name = simple_type_name(scope)
        if type_name in self.noise_types:
            return True
        if (type_name, member) in self.noise_members:
            return True
        return any(
            scope == prefix.rstrip(".") or scope.startswith(prefix)
            for prefix in self.noise_scope_prefixes
        )

    def match_carrier(self, scope: str, member: str) -> CarrierMatch | None:
        if member != self.resume_member:
            return None
        for pattern in self.carrier_patterns:
            match = pattern.match(scope)
            if match is not None:
                return CarrierMatch(
                    outer=match.group("outer"),
                    method=match.group("method"),
                    carrier=scope,
                )
        return None

    def is_separator(self, line: str) -> bool:
        return any(pattern.match(line) for pattern in self.separator_patterns)

    def merge(self, other: FrameConventions) -> FrameConventions:
        """Union of both rule sets; the resume member of ``self`` wins."""
        return FrameConventions(
            name=f"{self.name}+{other.name}",
            resume_member=self.resume_member,
            carrier_patterns=self.carrier_patterns + other.carrier_patterns,
            noise_types=self.noise_types | other.noise_types,
            noise_members=self.noise_members | other.noise_members,
            noise_scope_prefixes=self.noise_scope_prefixes + other.noise_scope_prefixes,
            separator_patterns=self.separator_patterns + other.separator_patterns,
        )


CLR_CONVENTIONS = FrameConventions(
    name="clr",
    resume_member="MoveNext",
    carrier_patterns=(CSHARP_CARRIER, VB_CARRIER),
    noise_types=frozenset(
        {
            # state machine drivers
            "AsyncMethodBuilderCore",
            "MoveNextRunner",
            "AsyncTaskMethodBuilder",
            "AsyncValueTaskMethodBuilder",
            "AsyncVoidMethodBuilder",
            "AsyncStateMachineBox",
            # awaiters and combinators
            "TaskAwaiter",
            "ConfiguredTaskAwaiter",
            "ConfiguredValueTaskAwaiter",
            "ValueTaskAwaiter",
            "YieldAwaiter",
            # deferred rethrow
            "ExceptionDispatchInfo",
        }
    ),
    noise_members=frozenset(
        {
            ("ExecutionContext", "Run"),
            ("ExecutionContext", "RunInternal"),
            ("ExecutionContext", "RunFromThreadPoolDispatchLoop"),
            ("AwaitTaskContinuation", "RunOrScheduleAction"),
            ("AwaitTaskContinuation", "InvokeAction"),
            ("Task", "RunContinuations"),
            ("Task", "FinishContinuations"),
        }
    ),
    separator_patterns=(CLR_ASYNC_SEPARATOR,),
)

PYTHON_CONVENTIONS = FrameConventions(
    name="python",
    resume_member="MoveNext",
    noise_scope_prefixes=("asyncio.", "_asyncio.", "concurrent.futures."),
)

DEFAULT_CONVENTIONS = CLR_CONVENTIONS.merge(PYTHON_CONVENTIONS)


__all__ = [
    "CLR_ASYNC_SEPARATOR",
    "CLR_CONVENTIONS",
    "CSHARP_CARRIER",
    "CarrierMatch",
    "DEFAULT_CONVENTIONS",
    "FrameConventions",
    "PYTHON_CONVENTIONS",
    "VB_CARRIER",
    "simple_type_name",
]
