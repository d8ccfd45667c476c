"""Unit tests for poller error categorisation and structured logs."""

from __future__ import annotations

import datetime as dt

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ghrelay.github import (
    ErrorCategory,
    GitHubAPIError,
    GitHubResponseShapeError,
    PollEventLogger,
    RepositoryScanResult,
    categorize_error,
)
from ghrelay.ledger import LedgerStorageError
from tests.helpers.femtologging_capture import capture_logs


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (GitHubAPIError("x", status_code=429, rate_limited=True), ErrorCategory.RATE_LIMITED),
        (GitHubAPIError("x", status_code=503), ErrorCategory.TRANSIENT),
        (GitHubAPIError("x"), ErrorCategory.TRANSIENT),
        (GitHubAPIError("x", status_code=404), ErrorCategory.CLIENT_ERROR),
        (GitHubResponseShapeError("x"), ErrorCategory.SCHEMA_DRIFT),
        (TimeoutError(), ErrorCategory.TIMEOUT),
        (LedgerStorageError("x"), ErrorCategory.DATABASE_ERROR),
        (
            OperationalError("SELECT 1", {}, Exception("gone")),
            ErrorCategory.DATABASE_CONNECTIVITY,
        ),
        (SQLAlchemyError("x"), ErrorCategory.DATABASE_ERROR),
        (KeyError("x"), ErrorCategory.UNKNOWN),
    ],
)
def test_categorize_error(error: BaseException, expected: ErrorCategory) -> None:
    """Each error family maps onto its alerting category."""
    assert categorize_error(error) is expected


def test_repository_failure_logs_category() -> None:
    """Failed scans are logged with their slug and error category."""
    error = GitHubAPIError("slow down", status_code=429, rate_limited=True)

    with capture_logs("ghrelay.github.observability") as capture:
        PollEventLogger().log_repository_failed(
            "acme/widgets", error, dt.timedelta(seconds=1.5)
        )
        record = capture.wait_for_message("poll.repository.failed")

    assert "repo_slug=acme/widgets" in record.message
    assert "error_category=rate_limited" in record.message
    assert "duration_seconds=1.500" in record.message


def test_run_completed_totals_results() -> None:
    """Pass summaries add up emitted and dropped events."""
    results = [
        RepositoryScanResult("acme/widgets", commits=2, issues=1, dropped=1),
        RepositoryScanResult("acme/broken", error=RuntimeError("down")),
    ]

    with capture_logs("ghrelay.github.observability") as capture:
        PollEventLogger().log_run_completed(results, dt.timedelta(seconds=2))
        record = capture.wait_for_message("poll.run.completed")

    assert "failed=1" in record.message
    assert "events_emitted=3 events_dropped=1" in record.message
