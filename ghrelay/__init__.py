"""ghrelay: relay GitHub repository activity to chat subscribers.

Two ingestion paths feed one deduplicated stream. The poller re-reads the
commit, release, issue, and pull request feeds of every watched repository,
while the webhook ingestor accepts signed push payloads. Both hand normalised
events to a bounded channel that the notifier drains, fanning each event out
to interested subscribers exactly once.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
