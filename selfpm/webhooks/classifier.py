"""Event normalization: provider payload -> canonical event type.

Every function here is pure. Nothing is fetched from the provider at
classification time; the returned refs only record where the issue and
comment can be found once somebody asks for them.
"""

from __future__ import annotations

from typing import Any, Callable

from selfpm.webhooks.models import (
    Classification,
    CommentRef,
    EventType,
    IssueRef,
    Provider,
)

# ---------------------------------------------------------------------------
# GitHub
# ---------------------------------------------------------------------------

_GITHUB_ISSUE_EVENTS = frozenset({"issues", "pull_request"})


def classify_github(raw_type: str, payload: dict[str, Any]) -> Classification:
    event_type: str = raw_type
    if raw_type.lower() in _GITHUB_ISSUE_EVENTS:
        action = str(payload.get("action") or "").lower()
        if action == "opened":
            event_type = EventType.NEW_ISSUE
        elif action == "reopened":
            event_type = EventType.REOPENED_ISSUE

    issue_ref = _github_issue(payload)
    comment_ref = None
    comment = payload.get("comment")
    if issue_ref is not None and isinstance(comment, dict):
        comment_ref = CommentRef(payload=comment)

    return Classification(event_type, issue_ref, comment_ref)


def _github_issue(payload: dict[str, Any]) -> IssueRef | None:
    # Comments on PRs still arrive with an "issue" object
    issue = payload.get("issue")
    if not isinstance(issue, dict):
        issue = payload.get("pull_request")
    if not isinstance(issue, dict):
        return None
    return IssueRef(issue_id=str(issue.get("number", "")), payload=issue)


# ---------------------------------------------------------------------------
# GitLab
# ---------------------------------------------------------------------------

_GITLAB_ISSUE_HOOKS = frozenset({"issue hook", "merge request hook"})
_GITLAB_NOTE_HOOK = "note hook"

# noteable_type -> payload key holding the noted issue/MR
_GITLAB_NOTEABLES = {
    "issue": "issue",
    "mergerequest": "merge_request",
}


def classify_gitlab(raw_type: str, payload: dict[str, Any]) -> Classification:
    kind = raw_type.lower()
    attributes = _object(payload, "object_attributes")

    if kind in _GITLAB_ISSUE_HOOKS:
        state = str(attributes.get("state") or "").lower()
        event_type: str = raw_type
        if state.startswith("open"):
            event_type = EventType.NEW_ISSUE
        elif state.startswith("reopen"):
            event_type = EventType.REOPENED_ISSUE
        return Classification(event_type, _iid_ref(attributes))

    if kind == _GITLAB_NOTE_HOOK:
        noteable = str(attributes.get("noteable_type") or "").lower()
        key = _GITLAB_NOTEABLES.get(noteable)
        if key is None:
            return Classification(raw_type)
        comment = {
            "id": _text(attributes.get("id")),
            "body": _text(attributes.get("note")),
            "author": {"username": _text(_object(payload, "user").get("username"))},
        }
        return Classification(
            EventType.ISSUE_COMMENT,
            _iid_ref(_object(payload, key)),
            CommentRef(payload=comment),
        )

    return Classification(raw_type)


def _iid_ref(obj: dict[str, Any]) -> IssueRef | None:
    iid = obj.get("iid")
    if iid is None:
        return None
    return IssueRef(issue_id=_text(iid))


def _object(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str:
    return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

_CLASSIFIERS: dict[Provider, Callable[[str, dict[str, Any]], Classification]] = {
    Provider.GITHUB: classify_github,
    Provider.GITLAB: classify_gitlab,
}


def classify(
    provider: Provider, raw_type: str, payload: dict[str, Any]
) -> Classification:
    """Classify a raw provider payload into a canonical event type."""
    return _CLASSIFIERS[provider](raw_type, payload)
