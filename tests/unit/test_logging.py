"""Unit tests for the femtologging helpers."""

from __future__ import annotations

import pytest

from ghrelay.logging import (
    configure_logging,
    format_log_message,
    log_debug,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        assert stack_info is False
        self.calls.append((level, message, exc_info))
        return message


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("debug", ("DEBUG", False)),
        (" warn ", ("WARN", False)),
        ("TRACE", ("TRACE", False)),
        (None, ("INFO", True)),
        ("", ("INFO", True)),
        ("verbose", ("INFO", True)),
    ],
)
def test_normalize_log_level(raw: str | None, expected: tuple[str, bool]) -> None:
    """Known levels are upper-cased; anything else falls back to INFO."""
    assert normalize_log_level(raw) == expected


def test_format_without_args_leaves_percent_signs() -> None:
    """Templates are only interpolated when arguments are given."""
    assert format_log_message("100% delivered") == "100% delivered"
    assert format_log_message("%d of %d", 2, 3) == "2 of 3"


@pytest.mark.parametrize(
    ("helper", "level"),
    [
        (log_debug, "DEBUG"),
        (log_info, "INFO"),
        (log_warning, "WARNING"),
        (log_error, "ERROR"),
    ],
)
def test_level_helpers(helper: object, level: str) -> None:
    """Each helper formats its template and emits at its level."""
    logger = _FakeLogger()
    exc = RuntimeError("channel full")

    helper(logger, "dropped %s event for %s", "push", "acme/widgets", exc_info=exc)  # type: ignore[operator]

    assert logger.calls == [(level, "dropped push event for acme/widgets", exc)]


def test_log_exception_attaches_exception() -> None:
    """log_exception logs the message verbatim at ERROR."""
    logger = _FakeLogger()
    exc = ValueError("boom")

    log_exception(logger, "Unexpected failure handling 100% of events", exc)

    assert logger.calls == [
        ("ERROR", "Unexpected failure handling 100% of events", exc)
    ]


def test_configure_logging_forwards_to_basic_config(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """configure_logging applies the normalised level and force flag."""
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr("ghrelay.logging.basicConfig", fake_basic_config)

    assert configure_logging("nonsense", force=True) == ("INFO", True)
    assert captured == {"level": "INFO", "force": True}
