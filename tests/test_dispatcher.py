"""Tests for the webhook dispatcher state machine."""

import hashlib
import hmac
import json
from http import HTTPStatus
from unittest.mock import MagicMock

import pytest

from selfpm.webhooks.dispatcher import WebhookDispatcher, parse_payload
from selfpm.webhooks.models import Event, EventType, Provider

SECRET = "project_wh_token"


def sign(body: bytes, secret: str = SECRET) -> str:
    return "sha1=" + hmac.new(secret.encode(), body, hashlib.sha1).hexdigest()


def make_project(full_name="john/test"):
    project = MagicMock()
    project.webhook_token.return_value = SECRET
    project.repo_full_name.return_value = full_name
    return project


@pytest.fixture
def project():
    return make_project()


@pytest.fixture
def registered(project):
    return {("john/test", "github"): project, ("john/test", "gitlab"): project}


@pytest.fixture
def core(registered):
    core = MagicMock()
    core.projects.return_value.get_project_by_id.side_effect = (
        lambda full, provider: registered.get((full, provider))
    )
    return core


@pytest.fixture
def todos():
    return MagicMock()


@pytest.fixture
def dispatcher(core, todos):
    return WebhookDispatcher(core, todos)


def resolved_event(project) -> Event:
    project.resolve.assert_called_once()
    return project.resolve.call_args.args[0]


class TestParsePayload:
    def test_object(self):
        assert parse_payload(b'{"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b"\xff\xfe", b""])
    def test_not_an_object(self, body):
        assert parse_payload(body) is None


class TestGitHubDispatch:
    def test_project_not_found(self, dispatcher, core, todos):
        body = b'{"action": "opened"}'
        status = dispatcher.github("john", "missing", "issues", sign(body), body)
        assert status == HTTPStatus.NO_CONTENT
        todos.post.assert_not_called()

    def test_bad_signature(self, dispatcher, project, todos):
        body = b'{"action": "opened"}'
        status = dispatcher.github("john", "test", "issues", "sha1=bad", body)
        assert status == HTTPStatus.BAD_REQUEST
        project.resolve.assert_not_called()
        todos.post.assert_not_called()

    def test_undecodable_signature(self, dispatcher, project):
        status = dispatcher.github("john", "test", "issues", "sha1=\udcff", b"{}")
        assert status == HTTPStatus.BAD_REQUEST
        project.resolve.assert_not_called()

    def test_new_issue_resolved(self, dispatcher, project, todos):
        body = json.dumps(
            {"action": "opened", "repository": {"full_name": "john/test"}}
        ).encode()
        status = dispatcher.github("john", "test", "issues", sign(body), body)
        assert status == HTTPStatus.OK
        event = resolved_event(project)
        assert event.type == EventType.NEW_ISSUE
        assert event.provider == Provider.GITHUB
        assert event.raw_type == "issues"
        assert event.project is project
        todos.post.assert_not_called()

    def test_reopened_issue_resolved(self, dispatcher, project):
        body = b'{"action": "reopened"}'
        dispatcher.github("john", "test", "pull_request", sign(body), body)
        assert resolved_event(project).type == EventType.REOPENED_ISSUE

    def test_other_event_resolved_with_raw_type(self, dispatcher, project):
        body = b'{"action": "created", "issue": {"number": 1}, "comment": {"id": 2}}'
        dispatcher.github("john", "test", "issue_comment", sign(body), body)
        event = resolved_event(project)
        assert event.type == "issue_comment"
        assert event.has_comment

    def test_push_is_forwarded_to_todos(self, dispatcher, project, todos):
        body = b'{"ref": "refs/heads/master", "commits": []}'
        status = dispatcher.github("john", "test", "push", sign(body), body)
        assert status == HTTPStatus.OK
        todos.post.assert_called_once_with(project, body.decode())
        project.resolve.assert_not_called()

    def test_renamed_repository(self, core, todos):
        renamed = make_project("john/old")
        core.projects.return_value.get_project_by_id.side_effect = (
            lambda full, provider: renamed if full == "john/old" else None
        )
        body = json.dumps(
            {
                "action": "renamed",
                "changes": {"repository": {"name": {"from": "old"}}},
                "repository": {"full_name": "john/new", "owner": {"login": "john"}},
            }
        ).encode()
        status = WebhookDispatcher(core, todos).github(
            "john", "new", "repository", sign(body), body
        )
        assert status == HTTPStatus.OK
        renamed.resolve.assert_called_once()

    def test_malformed_body_with_valid_signature(self, dispatcher, project, todos):
        body = b"not json"
        status = dispatcher.github("john", "test", "issues", sign(body), body)
        assert status == HTTPStatus.BAD_REQUEST
        project.resolve.assert_not_called()
        todos.post.assert_not_called()

    def test_resolve_failure_propagates(self, dispatcher, project):
        project.resolve.side_effect = RuntimeError("core down")
        body = b'{"action": "opened"}'
        with pytest.raises(RuntimeError, match="core down"):
            dispatcher.github("john", "test", "issues", sign(body), body)

    def test_sha256_configured(self, core, project, todos):
        body = b'{"action": "opened"}'
        sig = "sha256=" + hmac.new(SECRET.encode(), body, hashlib.sha256).hexdigest()
        dispatcher = WebhookDispatcher(core, todos, github_algorithm="sha256")
        assert dispatcher.github("john", "test", "issues", sig, body) == HTTPStatus.OK


class TestGitLabDispatch:
    def test_project_not_found(self, dispatcher, core):
        status = dispatcher.gitlab("john", "missing", "Issue Hook", SECRET, b"{}")
        assert status == HTTPStatus.NO_CONTENT

    def test_no_rename_fallback(self, dispatcher, project):
        body = json.dumps({"repository": {"full_name": "john/test"}}).encode()
        status = dispatcher.gitlab("john", "renamed", "Issue Hook", SECRET, body)
        assert status == HTTPStatus.NO_CONTENT
        project.resolve.assert_not_called()

    def test_bad_token(self, dispatcher, project, todos):
        status = dispatcher.gitlab("john", "test", "Issue Hook", "wrong", b"{}")
        assert status == HTTPStatus.BAD_REQUEST
        project.resolve.assert_not_called()
        todos.post.assert_not_called()

    def test_undecodable_token(self, dispatcher, project):
        status = dispatcher.gitlab("john", "test", "Issue Hook", "tok\udcff", b"{}")
        assert status == HTTPStatus.BAD_REQUEST
        project.resolve.assert_not_called()

    def test_new_merge_request(self, dispatcher, project):
        body = b'{"object_attributes": {"iid": 3, "state": "opened"}}'
        status = dispatcher.gitlab("john", "test", "Merge Request Hook", SECRET, body)
        assert status == HTTPStatus.OK
        event = resolved_event(project)
        assert event.type == EventType.NEW_ISSUE
        assert event.provider == Provider.GITLAB

    def test_note_is_issue_comment(self, dispatcher, project):
        body = json.dumps(
            {
                "object_attributes": {"id": 1, "note": "hi", "noteable_type": "Issue"},
                "user": {"username": "vlad"},
                "issue": {"iid": 2},
            }
        ).encode()
        dispatcher.gitlab("john", "test", "Note Hook", SECRET, body)
        assert resolved_event(project).type == EventType.ISSUE_COMMENT

    def test_push_hook_is_forwarded(self, dispatcher, project, todos):
        body = b'{"object_kind": "push"}'
        status = dispatcher.gitlab("john", "test", "Push Hook", SECRET, body)
        assert status == HTTPStatus.OK
        todos.post.assert_called_once_with(project, body.decode())
        project.resolve.assert_not_called()
