"""Tests for FormatterConfig."""

from __future__ import annotations

import logging

import pytest

from tracefold import CLR_CONVENTIONS, DEFAULT_CONVENTIONS, FormatterConfig
from tracefold.config import ENV_MAX_DEPTH, ENV_MAX_FRAMES, ENV_MAX_NODES


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ENV_MAX_DEPTH, raising=False)
    monkeypatch.delenv(ENV_MAX_FRAMES, raising=False)
    monkeypatch.delenv(ENV_MAX_NODES, raising=False)


def test_defaults() -> None:
    config = FormatterConfig()

    assert config.conventions is DEFAULT_CONVENTIONS
    assert config.max_depth == 32
    assert config.max_frames == 200
    assert config.head_frames == 10
    assert config.max_nodes == 1000


def test_from_env_without_variables_matches_defaults() -> None:
    assert FormatterConfig.from_env() == FormatterConfig()


def test_from_env_reads_limits(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_MAX_DEPTH, "4")
    monkeypatch.setenv(ENV_MAX_FRAMES, " 50 ")
    monkeypatch.setenv(ENV_MAX_NODES, "64")

    config = FormatterConfig.from_env()

    assert config.max_depth == 4
    assert config.max_frames == 50
    assert config.max_nodes == 64


def test_keyword_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_MAX_DEPTH, "4")

    config = FormatterConfig.from_env(max_depth=7, conventions=CLR_CONVENTIONS)

    assert config.max_depth == 7
    assert config.conventions is CLR_CONVENTIONS


@pytest.mark.parametrize("raw", ["many", "0", "-3", "1.5"])
def test_invalid_values_are_ignored_with_warning(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture, raw: str
) -> None:
    monkeypatch.setenv(ENV_MAX_FRAMES, raw)

    with caplog.at_level(logging.WARNING, logger="tracefold.config"):
        config = FormatterConfig.from_env()

    assert config.max_frames == 200
    assert ENV_MAX_FRAMES in caplog.text


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_frames": -1},
        {"head_frames": -2},
        {"max_depth": -1},
        {"max_nodes": 0},
    ],
)
def test_negative_limits_are_rejected(overrides: dict[str, int]) -> None:
    with pytest.raises(ValueError, match=next(iter(overrides))):
        FormatterConfig(**overrides)


def test_zero_limits_are_accepted() -> None:
    config = FormatterConfig(max_depth=0, max_frames=0, head_frames=0, max_nodes=1)

    assert config.max_frames == 0
