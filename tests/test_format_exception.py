"""End-to-end tests for format_exception on CLR-shaped error trees."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from tests.clr_traces import SCOPE, SOURCE, async_trace, rendered, sync_frame
from tracefold import (
    ErrorNode,
    ExceptionFormatter,
    FormatterConfig,
    StaticMetadata,
    format_exception,
)

TEST_METHOD = f"   at Tests.ExceptionFormatterTests.FormatException_Test() in {SOURCE}:line 60\n"
TEST_METHOD_RENDERED = f"   at Tests.ExceptionFormatterTests.FormatException_Test() at {SOURCE} : 60"


def _chain(depth: int) -> ErrorNode:
    node: ErrorNode | None = None
    for level in reversed(range(depth)):
        node = ErrorNode(
            type_name="App.LevelError",
            message=f"level {level}",
            stack_trace=sync_frame(f"Level{level}()", 100 + level),
            inner=node,
        )
    assert node is not None
    return node


def _aggregate(*causes: ErrorNode, trace: str = "") -> ErrorNode:
    return ErrorNode(
        type_name="System.AggregateException",
        message="One or more errors occurred.",
        stack_trace=trace,
        inner_exceptions=causes,
    )


def test_sync_wrapped_exception() -> None:
    inner = ErrorNode(
        type_name="System.Exception",
        message="Sync crash!",
        stack_trace=sync_frame("Run1()", 160) + sync_frame("Run(String arg)", 155),
    )
    outer = ErrorNode(
        type_name="System.Exception",
        message="Crash!",
        stack_trace=sync_frame("Run(String arg)", 158) + TEST_METHOD,
        inner=inner,
    )

    assert format_exception(outer) == "\n".join(
        [
            "System.Exception : Crash! ---> System.Exception : Sync crash!",
            rendered("Run1()", 160),
            rendered("Run(String arg)", 155),
            "   End of inner exception",
            rendered("Run(String arg)", 158),
            TEST_METHOD_RENDERED,
        ]
    )


def test_async_chain_inside_aggregate(
    wait_trace: str,
    crash_chain_trace: str,
    test_class_metadata: StaticMetadata,
) -> None:
    error = _aggregate(
        ErrorNode(type_name="System.Exception", message="Crash!", stack_trace=crash_chain_trace),
        trace=wait_trace,
    )

    assert format_exception(error, metadata=test_class_metadata) == "\n".join(
        [
            "System.AggregateException : One or more errors occurred. ---> Crash!",
            "   at System.Threading.Tasks.Task.ThrowIfExceptional(Boolean includeTaskCanceledExceptions)",
            "   at System.Threading.Tasks.Task.Wait(Int32 millisecondsTimeout,CancellationToken cancellationToken)",
            "   at System.Threading.Tasks.Task.Wait()",
            rendered("Run(String arg)", 150),
            rendered("Run()", 143),
            "---> (Inner Exception #0) System.Exception : Crash!",
            rendered("CrashAsync()", 190, is_async=True),
            rendered("Run2Async()", 184, is_async=True),
            rendered("Run1Async()", 179, is_async=True) + "<---",
        ]
    )


def test_async_machinery_is_removed(crash_chain_trace: str) -> None:
    text = format_exception(
        ErrorNode(type_name="System.Exception", message="Crash!", stack_trace=crash_chain_trace)
    )

    assert "TaskAwaiter" not in text
    assert "ExceptionDispatchInfo" not in text
    assert "MoveNext" not in text
    assert "d__" not in text
    assert "End of stack trace" not in text


def test_async_method_names_are_resolved(
    crash_chain_trace: str, test_class_metadata: StaticMetadata
) -> None:
    text = format_exception(
        ErrorNode(type_name="System.Exception", message="Crash!", stack_trace=crash_chain_trace),
        metadata=test_class_metadata,
    )

    assert f"async {SCOPE}.Run1Async()" in text
    assert f"async {SCOPE}.Run2Async()" in text
    assert f"async {SCOPE}.CrashAsync()" in text
    assert text.index("CrashAsync") < text.index("Run2Async") < text.index("Run1Async")


def test_async_parameters_and_unresolved_overloads(
    wait_trace: str,
    overload_chain_trace: str,
    test_class_metadata: StaticMetadata,
) -> None:
    error = _aggregate(
        ErrorNode(type_name="System.Exception", message="Crash!", stack_trace=overload_chain_trace),
        trace=wait_trace,
    )

    text = format_exception(error, metadata=test_class_metadata)

    assert f"async {SCOPE}.Run4Async(String arg)" in text
    assert f"async {SCOPE}.Run5Async(??)" in text
    assert f"{SCOPE}.Run(String arg)" in text


def test_without_metadata_parameters_are_placeholders(crash_chain_trace: str) -> None:
    text = format_exception(
        ErrorNode(type_name="System.Exception", message="Crash!", stack_trace=crash_chain_trace)
    )

    assert text.splitlines()[1:] == [
        rendered("CrashAsync(??)", 190, is_async=True),
        rendered("Run2Async(??)", 184, is_async=True),
        rendered("Run1Async(??)", 179, is_async=True),
    ]


def test_generic_carrier_renders_as_async_call() -> None:
    error = ErrorNode(
        type_name="System.Exception",
        message="Crash!",
        stack_trace=r"   at App.Worker.<FetchAsync>d__4`1.MoveNext() in C:\src\Worker.cs:line 12",
    )

    assert format_exception(error).splitlines()[1] == r"   at async App.Worker.FetchAsync(??) at C:\src\Worker.cs : 12"


def test_unknown_method_on_known_type_keeps_raw_frame() -> None:
    metadata = StaticMetadata({SCOPE: {"OtherAsync": [[]]}})
    trace = async_trace(("Run1Async", 6, 179))

    text = format_exception(
        ErrorNode(type_name="System.Exception", message="Crash!", stack_trace=trace),
        metadata=metadata,
    )

    assert text.splitlines()[1] == f"   at {SCOPE}.<Run1Async>d__6.MoveNext() at {SOURCE} : 179"


@pytest.mark.parametrize("depth", [1, 2, 3, 6])
def test_chain_markers_match_depth(depth: int) -> None:
    text = format_exception(_chain(depth))

    assert text.count(" ---> ") == depth - 1
    assert text.count("End of inner exception") == depth - 1
    assert text.splitlines()[0] == " ---> ".join(
        f"App.LevelError : level {level}" for level in range(depth)
    )


def test_chain_frames_nest_innermost_first() -> None:
    lines = format_exception(_chain(3)).splitlines()

    assert lines[1:] == [
        rendered("Level2()", 102),
        "   End of inner exception",
        rendered("Level1()", 101),
        "   End of inner exception",
        rendered("Level0()", 100),
    ]


@pytest.mark.parametrize("count", [1, 2, 5])
def test_aggregate_causes_are_indexed(count: int) -> None:
    causes = tuple(
        ErrorNode(type_name="App.JobError", message=f"job {index}", stack_trace=sync_frame(f"Job{index}()", index))
        for index in range(count)
    )

    text = format_exception(_aggregate(*causes))

    positions = [text.index(f"(Inner Exception #{index}) App.JobError : job {index}") for index in range(count)]
    assert positions == sorted(positions)
    assert f"(Inner Exception #{count})" not in text
    assert text.count("<---") == count
    assert "End of inner exception" not in text


def test_aggregate_header_summarizes_first_cause() -> None:
    causes = (
        ErrorNode(type_name="App.JobError", message="job 0"),
        ErrorNode(type_name="App.JobError", message="job 1"),
    )

    lines = format_exception(_aggregate(*causes, trace=sync_frame("Run()", 143))).splitlines()

    assert lines == [
        "System.AggregateException : One or more errors occurred. ---> job 0",
        rendered("Run()", 143),
        "---> (Inner Exception #0) App.JobError : job 0<---",
        "---> (Inner Exception #1) App.JobError : job 1<---",
    ]


def test_aggregate_cause_with_its_own_wrapped_cause() -> None:
    cause = ErrorNode(
        type_name="App.JobError",
        message="job failed",
        stack_trace=sync_frame("Job()", 20),
        inner=ErrorNode(type_name="App.IoError", message="disk", stack_trace=sync_frame("Read()", 10)),
    )

    lines = format_exception(_aggregate(cause)).splitlines()

    assert lines == [
        "System.AggregateException : One or more errors occurred. ---> job failed",
        "---> (Inner Exception #0) App.JobError : job failed ---> App.IoError : disk",
        rendered("Read()", 10),
        "   End of inner exception",
        rendered("Job()", 20) + "<---",
    ]


def test_rendered_frame_count_excludes_only_dropped_frames(crash_chain_trace: str) -> None:
    trace = crash_chain_trace + "   [External Code]\n" + sync_frame("Run()", 143)

    lines = format_exception(
        ErrorNode(type_name="System.Exception", message="Crash!", stack_trace=trace)
    ).splitlines()

    # 3 resume frames, 1 pass-through line, 1 ordinary frame; 2 separators and 6 noise frames dropped
    assert len(lines) - 1 == 5
    assert lines[4] == "   [External Code]"


def test_serialized_clr_exception(crash_chain_trace: str, test_class_metadata: StaticMetadata) -> None:
    inner = {
        "ClassName": "System.Exception",
        "Message": "Crash!",
        "StackTraceString": crash_chain_trace,
    }
    payload = {
        "ClassName": "System.AggregateException",
        "Message": "One or more errors occurred.",
        "StackTraceString": None,
        "InnerException": inner,
        "InnerExceptions": [inner],
    }

    lines = format_exception(payload, metadata=test_class_metadata).splitlines()

    assert lines[0] == "System.AggregateException : One or more errors occurred. ---> Crash!"
    assert lines[1] == "---> (Inner Exception #0) System.Exception : Crash!"
    assert "End of inner exception" not in "\n".join(lines)


def test_cause_depth_is_limited() -> None:
    text = format_exception(_chain(10), config=FormatterConfig(max_depth=3))

    assert text.count(" ---> ") == 3
    assert text.count("   ... (inner exceptions omitted) ...") == 1
    assert "level 4" not in text


def _doubling(levels: int) -> ErrorNode:
    node = ErrorNode(type_name="App.Leaf", message="leaf")
    for _ in range(levels):
        node = ErrorNode(type_name="App.Batch", message="batch", inner_exceptions=(node, node))
    return node


def test_shared_causes_are_bounded_by_node_budget() -> None:
    text = format_exception(_doubling(18))

    assert text.count("\n") < 10_000
    assert "   ... (inner exceptions omitted) ..." in text


def test_node_budget_counts_every_appearance() -> None:
    text = format_exception(_doubling(3), config=FormatterConfig(max_nodes=5))

    assert text.count("(Inner Exception #") == 4
    assert text.count("   ... (inner exceptions omitted) ...") == 2


def test_frame_count_is_limited() -> None:
    trace = "".join(sync_frame(f"Step{index}()", index) for index in range(30))
    config = FormatterConfig(max_frames=5, head_frames=2)

    lines = format_exception(
        ErrorNode(type_name="App.Error", message="deep", stack_trace=trace), config=config
    ).splitlines()

    assert lines[1:] == [
        rendered("Step0()", 0),
        rendered("Step1()", 1),
        "   ... (25 frames omitted) ...",
        rendered("Step27()", 27),
        rendered("Step28()", 28),
        rendered("Step29()", 29),
    ]


def test_header_without_trace() -> None:
    assert format_exception(ErrorNode(type_name="App.Error", message="")) == "App.Error : "


class _HostileError:
    @property
    def type_name(self) -> str:
        raise RuntimeError("no type for you")

    message = "hostile"


def test_unsupported_objects_do_not_raise() -> None:
    assert format_exception(42) == "int : "
    assert format_exception(_HostileError()) == "<unformattable error>"


def test_internal_failure_is_logged_and_degrades(caplog: pytest.LogCaptureFixture) -> None:
    broken = ErrorNode(type_name="App.Error", message="boom", stack_trace=123)  # type: ignore[arg-type]

    with caplog.at_level(logging.WARNING, logger="tracefold.formatter"):
        text = format_exception(broken)

    assert text == "App.Error : boom"
    assert any("Failed to format" in record.getMessage() for record in caplog.records)


def test_formatter_is_deterministic_across_threads(
    wait_trace: str,
    crash_chain_trace: str,
    test_class_metadata: StaticMetadata,
) -> None:
    formatter = ExceptionFormatter(metadata=test_class_metadata)
    error = _aggregate(
        ErrorNode(type_name="System.Exception", message="Crash!", stack_trace=crash_chain_trace),
        trace=wait_trace,
    )

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(formatter.format, [error] * 16))

    assert len(set(results)) == 1
    assert results[0] == formatter.format(error)
