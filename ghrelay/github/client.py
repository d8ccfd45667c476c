"""GitHub REST client used by the repository poller."""

from __future__ import annotations

import dataclasses
import datetime as dt
import os
import typing as typ

import httpx
import msgspec

from ghrelay.common.time import ensure_utc

from .errors import GitHubAPIError, GitHubResponseShapeError
from .models import CommitRecord, IssueRecord, PullRequestRecord, ReleaseRecord

DEFAULT_API_URL = "https://api.github.com"

_HTTP_ERROR_STATUS_THRESHOLD = 400
_MAX_PER_PAGE = 100


class GitHubActivityClient(typ.Protocol):
    """Interface for fetching recent repository activity."""

    async def list_recent_commits(
        self,
        owner: str,
        name: str,
        *,
        since: dt.datetime | None = None,
        limit: int,
    ) -> list[CommitRecord]:
        """Return the newest commits on the default branch."""
        ...

    async def list_recent_releases(
        self, owner: str, name: str, *, limit: int
    ) -> list[ReleaseRecord]:
        """Return the newest releases, drafts included."""
        ...

    async def list_issues(
        self,
        owner: str,
        name: str,
        *,
        since: dt.datetime | None = None,
        limit: int,
    ) -> list[IssueRecord]:
        """Return issues of any state, newest first."""
        ...

    async def list_pull_requests(
        self, owner: str, name: str, *, limit: int
    ) -> list[PullRequestRecord]:
        """Return pull requests of any state, newest first."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubRestConfig:
    """Configuration for the GitHub REST API client.

    ``token`` is optional; without it requests are unauthenticated and
    subject to GitHub's lower anonymous rate limit.
    """

    token: str | None = None
    api_url: str = DEFAULT_API_URL
    timeout_s: float = 20.0
    user_agent: str = "ghrelay/0.1"

    @classmethod
    def from_env(cls) -> GitHubRestConfig:
        """Build configuration from ``GHRELAY_GITHUB_TOKEN`` and friends."""
        token = os.environ.get("GHRELAY_GITHUB_TOKEN", "").strip() or None
        api_url = (
            os.environ.get("GHRELAY_GITHUB_API_URL", "").strip() or DEFAULT_API_URL
        )
        return cls(token=token, api_url=api_url.rstrip("/"))


def _format_since(value: dt.datetime) -> str:
    since = ensure_utc(value, field="since")
    return since.isoformat().replace("+00:00", "Z")


def _per_page(limit: int) -> int:
    if limit < 1:
        msg = f"limit must be positive, got: {limit}"
        raise ValueError(msg)
    return min(limit, _MAX_PER_PAGE)


class GitHubRestClient:
    """GitHub REST implementation of :class:`GitHubActivityClient`.

    Each call fetches a single page sized by ``limit``; the poller only
    ever looks at a bounded recent window of each feed.
    """

    def __init__(
        self,
        config: GitHubRestConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        self._config = config
        self._owns_client = http_client is None
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": config.user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = http_client or httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.timeout_s,
            headers=headers,
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def list_recent_commits(
        self,
        owner: str,
        name: str,
        *,
        since: dt.datetime | None = None,
        limit: int,
    ) -> list[CommitRecord]:
        """Return up to ``limit`` commits, optionally only those after ``since``."""
        params: dict[str, str | int] = {"per_page": _per_page(limit)}
        if since is not None:
            params["since"] = _format_since(since)
        return await self._get_list(
            f"/repos/{owner}/{name}/commits", params, CommitRecord
        )

    async def list_recent_releases(
        self, owner: str, name: str, *, limit: int
    ) -> list[ReleaseRecord]:
        """Return up to ``limit`` of the newest releases."""
        return await self._get_list(
            f"/repos/{owner}/{name}/releases",
            {"per_page": _per_page(limit)},
            ReleaseRecord,
        )

    async def list_issues(
        self,
        owner: str,
        name: str,
        *,
        since: dt.datetime | None = None,
        limit: int,
    ) -> list[IssueRecord]:
        """Return up to ``limit`` issues sorted by creation time, newest first.

        GitHub applies ``since`` to the update time, so callers still need to
        compare ``created_at`` themselves.
        """
        params: dict[str, str | int] = {
            "state": "all",
            "sort": "created",
            "direction": "desc",
            "per_page": _per_page(limit),
        }
        if since is not None:
            params["since"] = _format_since(since)
        return await self._get_list(
            f"/repos/{owner}/{name}/issues", params, IssueRecord
        )

    async def list_pull_requests(
        self, owner: str, name: str, *, limit: int
    ) -> list[PullRequestRecord]:
        """Return up to ``limit`` pull requests sorted by creation time."""
        return await self._get_list(
            f"/repos/{owner}/{name}/pulls",
            {
                "state": "all",
                "sort": "created",
                "direction": "desc",
                "per_page": _per_page(limit),
            },
            PullRequestRecord,
        )

    async def _get_list[T](
        self,
        path: str,
        params: dict[str, str | int],
        record_type: type[T],
    ) -> list[T]:
        """GET ``path`` and decode the body as a list of ``record_type``."""
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise GitHubAPIError.transport_error(path, exc) from exc

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GitHubAPIError.http_error(
                response.status_code,
                path=path,
                rate_limit_remaining=response.headers.get("X-RateLimit-Remaining"),
            )
        try:
            return msgspec.json.decode(response.content, type=list[record_type])
        except msgspec.DecodeError as exc:
            raise GitHubResponseShapeError.undecodable(path, str(exc)) from exc


__all__ = [
    "DEFAULT_API_URL",
    "GitHubActivityClient",
    "GitHubRestClient",
    "GitHubRestConfig",
]
