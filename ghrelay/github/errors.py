"""GitHub REST client errors."""

from __future__ import annotations

_HTTP_TOO_MANY_REQUESTS = 429


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns an error response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        rate_limited: bool = False,
    ) -> None:
        """Initialise with a message, HTTP status and rate-limit flag."""
        self.status_code = status_code
        self.rate_limited = rate_limited
        super().__init__(message)

    @classmethod
    def http_error(
        cls, status_code: int, *, path: str, rate_limit_remaining: str | None = None
    ) -> GitHubAPIError:
        """Return an error for a non-2xx response to ``path``.

        A 429, or a 403 that reports zero remaining requests, is flagged as
        rate limited.
        """
        rate_limited = status_code == _HTTP_TOO_MANY_REQUESTS or (
            rate_limit_remaining is not None and rate_limit_remaining.strip() == "0"
        )
        suffix = " (rate limited)" if rate_limited else ""
        return cls(
            f"GitHub REST HTTP {status_code} for {path}{suffix}",
            status_code=status_code,
            rate_limited=rate_limited,
        )

    @classmethod
    def transport_error(cls, path: str, exc: BaseException) -> GitHubAPIError:
        """Return an error for a request that never produced a response."""
        return cls(f"GitHub REST request to {path} failed: {exc}")


class GitHubResponseShapeError(RuntimeError):
    """Raised when a GitHub REST response cannot be decoded."""

    @classmethod
    def undecodable(cls, path: str, detail: str) -> GitHubResponseShapeError:
        """Return an error for a body that does not match the expected shape."""
        return cls(f"GitHub REST response for {path} has unexpected shape: {detail}")


__all__ = ["GitHubAPIError", "GitHubResponseShapeError"]
