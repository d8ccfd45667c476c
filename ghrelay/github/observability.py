"""Structured log events for the repository poller.

Each event is a single ``[event.type] key=value ...`` line so log
aggregators can parse throughput and failure data without a metrics stack.
"""

from __future__ import annotations

import enum
import typing as typ

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from ghrelay.ledger.errors import LedgerStorageError
from ghrelay.logging import get_logger, log_error, log_info, log_warning

from .errors import GitHubAPIError, GitHubResponseShapeError

if typ.TYPE_CHECKING:
    import datetime as dt

    from .poller import RepositoryScanResult

logger = get_logger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class PollEventType(enum.StrEnum):
    """Structured log event types emitted by the poller."""

    INIT_COMPLETED = "poll.init.completed"
    INIT_REPOSITORY_FAILED = "poll.init.repository_failed"
    RUN_STARTED = "poll.run.started"
    RUN_COMPLETED = "poll.run.completed"
    REPOSITORY_SCANNED = "poll.repository.scanned"
    REPOSITORY_FAILED = "poll.repository.failed"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    RATE_LIMITED = "rate_limited"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    TIMEOUT = "timeout"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (GitHubResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (TimeoutError, ErrorCategory.TIMEOUT),
    (LedgerStorageError, ErrorCategory.DATABASE_ERROR),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception raised while scanning a repository."""
    if isinstance(exc, GitHubAPIError):
        if exc.rate_limited:
            return ErrorCategory.RATE_LIMITED
        if exc.status_code is None or exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD:
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class PollEventLogger:
    """Emit structured poller events through femtologging."""

    def log_init_completed(self, repositories: int, keys_seeded: int) -> None:
        """Log the end of the silent initialisation pass."""
        log_info(
            logger,
            "[%s] repositories=%d keys_seeded=%d",
            PollEventType.INIT_COMPLETED,
            repositories,
            keys_seeded,
        )

    def log_init_repository_failed(self, repo_slug: str, error: BaseException) -> None:
        """Log a repository whose history could not be seeded."""
        log_warning(
            logger,
            "[%s] repo_slug=%s error_type=%s error_category=%s error_message=%s",
            PollEventType.INIT_REPOSITORY_FAILED,
            repo_slug,
            type(error).__name__,
            categorize_error(error),
            str(error),
        )

    def log_run_started(self, started_at: dt.datetime, repositories: int) -> None:
        """Log the start of a steady-state polling pass."""
        log_info(
            logger,
            "[%s] started_at=%s repositories=%d",
            PollEventType.RUN_STARTED,
            started_at.isoformat(),
            repositories,
        )

    def log_run_completed(
        self, results: typ.Sequence[RepositoryScanResult], duration: dt.timedelta
    ) -> None:
        """Log pass totals across all repositories."""
        failed = sum(1 for result in results if result.error is not None)
        log_info(
            logger,
            "[%s] duration_seconds=%.3f repositories=%d failed=%d "
            "events_emitted=%d events_dropped=%d",
            PollEventType.RUN_COMPLETED,
            duration.total_seconds(),
            len(results),
            failed,
            sum(result.emitted for result in results),
            sum(result.dropped for result in results),
        )

    def log_repository_scanned(
        self, result: RepositoryScanResult, duration: dt.timedelta
    ) -> None:
        """Log a successful repository scan with per-feed counts."""
        log_info(
            logger,
            "[%s] repo_slug=%s duration_seconds=%.3f commits=%d releases=%d "
            "issues=%d pull_requests=%d emitted=%d dropped=%d",
            PollEventType.REPOSITORY_SCANNED,
            result.repo_slug,
            duration.total_seconds(),
            result.commits,
            result.releases,
            result.issues,
            result.pull_requests,
            result.emitted,
            result.dropped,
        )

    def log_repository_failed(
        self, repo_slug: str, error: BaseException, duration: dt.timedelta
    ) -> None:
        """Log a failed repository scan with error categorization."""
        log_error(
            logger,
            "[%s] repo_slug=%s duration_seconds=%.3f error_type=%s "
            "error_category=%s error_message=%s",
            PollEventType.REPOSITORY_FAILED,
            repo_slug,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )


__all__ = [
    "ErrorCategory",
    "PollEventLogger",
    "PollEventType",
    "categorize_error",
]
