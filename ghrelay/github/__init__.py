"""GitHub REST client and repository poller."""

from __future__ import annotations

from .client import (
    DEFAULT_API_URL,
    GitHubActivityClient,
    GitHubRestClient,
    GitHubRestConfig,
)
from .errors import GitHubAPIError, GitHubResponseShapeError
from .models import CommitRecord, IssueRecord, PullRequestRecord, ReleaseRecord
from .observability import ErrorCategory, PollEventLogger, categorize_error
from .poller import (
    MIN_POLL_INTERVAL,
    PollerConfig,
    RepositoryPoller,
    RepositoryScanResult,
    classify_issue,
    classify_pull_request,
    classify_release,
)

__all__ = [
    "DEFAULT_API_URL",
    "MIN_POLL_INTERVAL",
    "CommitRecord",
    "ErrorCategory",
    "GitHubAPIError",
    "GitHubActivityClient",
    "GitHubResponseShapeError",
    "GitHubRestClient",
    "GitHubRestConfig",
    "IssueRecord",
    "PollEventLogger",
    "PollerConfig",
    "PullRequestRecord",
    "ReleaseRecord",
    "RepositoryPoller",
    "RepositoryScanResult",
    "categorize_error",
    "classify_issue",
    "classify_pull_request",
    "classify_release",
]
