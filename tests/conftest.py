"""
Shared fixtures: raw CLR traces of async and sync call chains.

The traces model a test class with these methods::

    Run() -> Run(String arg) -> Run1Async().Wait()
    Run1Async() -> Run2Async() -> CrashAsync()      # throws "Crash!" after a yield
    Run4Async(String arg) -> Run5Async() -> CrashAsync()
    Run5Async() / Run5Async(String arg)             # overloads
"""

from __future__ import annotations

import pytest

from tests.clr_traces import SCOPE, async_trace, sync_frame
from tracefold import StaticMetadata


@pytest.fixture
def crash_chain_trace() -> str:
    return async_trace(("CrashAsync", 8, 190), ("Run2Async", 7, 184), ("Run1Async", 6, 179))


@pytest.fixture
def overload_chain_trace() -> str:
    return async_trace(("CrashAsync", 8, 190), ("Run5Async", 10, 200), ("Run4Async", 9, 195))


@pytest.fixture
def wait_trace() -> str:
    return (
        "   at System.Threading.Tasks.Task.ThrowIfExceptional(Boolean includeTaskCanceledExceptions)\n"
        "   at System.Threading.Tasks.Task.Wait(Int32 millisecondsTimeout, CancellationToken cancellationToken)\n"
        "   at System.Threading.Tasks.Task.Wait()\n"
        + sync_frame("Run(String arg)", 150)
        + sync_frame("Run()", 143)
    )


@pytest.fixture
def test_class_metadata() -> StaticMetadata:
    return StaticMetadata(
        {
            SCOPE: {
                "Run": [[], [("String", "arg")]],
                "Run1Async": [[]],
                "Run2Async": [[]],
                "CrashAsync": [[]],
                "Run4Async": [[("String", "arg")]],
                "Run5Async": [[], [("String", "arg")]],
            }
        }
    )
