"""Normalised event model shared by both ingestion paths."""

from __future__ import annotations

from .formatting import escape_markdown, format_event_message, truncate
from .models import (
    CommitSummary,
    DedupKey,
    EventKind,
    EventPayload,
    IssuePayload,
    LifecyclePhase,
    NormalizedEvent,
    PullRequestPayload,
    PushPayload,
    ReleasePayload,
    UnknownActionError,
    UserRef,
    dedup_key_for,
    event_id_for,
    issue_event_id,
    phase_for_action,
    pull_request_event_id,
    release_event_id,
)

__all__ = [
    "CommitSummary",
    "DedupKey",
    "EventKind",
    "EventPayload",
    "IssuePayload",
    "LifecyclePhase",
    "NormalizedEvent",
    "PullRequestPayload",
    "PushPayload",
    "ReleasePayload",
    "UnknownActionError",
    "UserRef",
    "dedup_key_for",
    "escape_markdown",
    "event_id_for",
    "format_event_message",
    "issue_event_id",
    "phase_for_action",
    "pull_request_event_id",
    "release_event_id",
    "truncate",
]
