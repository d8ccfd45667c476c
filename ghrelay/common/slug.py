"""Repository slug utilities.

Slugs are GitHub identifiers in ``owner/name`` format, used as the
human-readable repository label in logs and notifications.
"""

from __future__ import annotations


def repo_slug(owner: str, name: str) -> str:
    """Build a repository slug from owner and name.

    Examples
    --------
    >>> repo_slug("acme", "widgets")
    'acme/widgets'

    """
    return f"{owner}/{name}"
