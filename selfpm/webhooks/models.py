"""Webhook event models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from selfpm.core.api import Comment, Issue, Project, Repo
from selfpm.core.errors import UnsupportedEventAccess


class Provider(str, Enum):
    GITHUB = "github"
    GITLAB = "gitlab"


class EventType(str, Enum):
    NEW_ISSUE = "newIssue"
    REOPENED_ISSUE = "reopened"
    # Same label as GitHub's own comment event, which passes through verbatim
    ISSUE_COMMENT = "issue_comment"
    UNASSIGNED_TASKS = "unassignedTasks"


@dataclass(frozen=True)
class IssueRef:
    """Identifies the issue an event is about, without fetching it.

    GitHub ships the whole issue object, which the core ingests as-is;
    GitLab only gives us the iid to look up.
    """
    issue_id: str
    payload: dict[str, Any] | None = field(default=None, hash=False)


@dataclass(frozen=True)
class CommentRef:
    payload: dict[str, Any] = field(hash=False)


@dataclass(frozen=True)
class Classification:
    type: str
    issue_ref: IssueRef | None = None
    comment_ref: CommentRef | None = None


@dataclass(frozen=True)
class Event:
    type: str
    project: Project = field(compare=False)
    provider: Provider | None = None
    raw_type: str = ""
    issue_ref: IssueRef | None = None
    comment_ref: CommentRef | None = None

    @classmethod
    def classified(
        cls,
        project: Project,
        provider: Provider,
        raw_type: str,
        classification: Classification,
    ) -> Event:
        return cls(
            type=classification.type,
            project=project,
            provider=provider,
            raw_type=raw_type,
            issue_ref=classification.issue_ref,
            comment_ref=classification.comment_ref,
        )

    @classmethod
    def unassigned_tasks(cls, project: Project) -> Event:
        """Project-wide review trigger; carries no issue, comment or commit."""
        return cls(type=EventType.UNASSIGNED_TASKS, project=project)

    @property
    def has_issue(self) -> bool:
        return self.issue_ref is not None

    @property
    def has_comment(self) -> bool:
        return self.comment_ref is not None

    def issue(self) -> Issue:
        """Fetch the issue from the provider. Check ``has_issue`` first."""
        if self.issue_ref is None:
            raise UnsupportedEventAccess("Issue", self.type)
        issues = self._repo().issues()
        if self.issue_ref.payload is not None:
            return issues.received(self.issue_ref.payload)
        return issues.get_by_id(self.issue_ref.issue_id)

    def comment(self) -> Comment:
        """Hand the comment to the issue's comments. Check ``has_comment`` first."""
        if self.comment_ref is None:
            raise UnsupportedEventAccess("Comment", self.type)
        return self.issue().comments().received(self.comment_ref.payload)

    def commit(self) -> Any:
        raise UnsupportedEventAccess("Commit", self.type)

    def _repo(self) -> Repo:
        owner, name = self.project.repo_full_name().split("/", 1)
        return self.project.project_manager().provider().repo(owner, name)
