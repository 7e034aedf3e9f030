"""Per-provider webhook handling: authenticate, resolve, hand over.

The dispatcher is synchronous and transport-agnostic; the aiohttp server
only extracts path segments and headers and maps the returned status onto
a response. Each valid, authenticated request results in exactly one call
into the core: either ``SelfTodos.post`` for pushes or ``Project.resolve``
for everything else. Failures of that call are not handled here.
"""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

from selfpm.core.api import Project, SelfCore, SelfTodos
from selfpm.utils.logging import get_logger
from selfpm.webhooks.classifier import classify
from selfpm.webhooks.models import Event, Provider
from selfpm.webhooks.resolver import ProjectResolver
from selfpm.webhooks.signatures import validate_github_signature, validate_gitlab_token

log = get_logger(__name__)

PUSH_EVENTS = {
    Provider.GITHUB: "push",
    Provider.GITLAB: "push hook",
}


def parse_payload(body: bytes) -> dict[str, Any] | None:
    """Parse a webhook body, returning None unless it is a JSON object."""
    try:
        payload = json.loads(body.decode("utf-8"))
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


class WebhookDispatcher:
    def __init__(
        self,
        core: SelfCore,
        todos: SelfTodos,
        github_algorithm: str = "sha1",
    ) -> None:
        self._core = core
        self._todos = todos
        self._github_algorithm = github_algorithm

    def github(
        self, owner: str, name: str, event_type: str, signature: str, body: bytes
    ) -> HTTPStatus:
        payload = parse_payload(body)
        project = ProjectResolver(self._core.projects()).github(owner, name, payload)
        if project is None:
            log.info("webhook_project_not_found", provider="github", repo=f"{owner}/{name}")
            return HTTPStatus.NO_CONTENT

        if not validate_github_signature(
            body, signature, project.webhook_token(), self._github_algorithm
        ):
            log.warning(
                "webhook_invalid_signature",
                provider="github",
                repo=project.repo_full_name(),
            )
            return HTTPStatus.BAD_REQUEST

        return self._deliver(project, Provider.GITHUB, event_type, body, payload)

    def gitlab(
        self, owner: str, name: str, event_type: str, token: str, body: bytes
    ) -> HTTPStatus:
        project = ProjectResolver(self._core.projects()).gitlab(owner, name)
        if project is None:
            log.info("webhook_project_not_found", provider="gitlab", repo=f"{owner}/{name}")
            return HTTPStatus.NO_CONTENT

        if not validate_gitlab_token(token, project.webhook_token()):
            log.warning(
                "webhook_invalid_token",
                provider="gitlab",
                repo=project.repo_full_name(),
            )
            return HTTPStatus.BAD_REQUEST

        return self._deliver(project, Provider.GITLAB, event_type, body, parse_payload(body))

    def _deliver(
        self,
        project: Project,
        provider: Provider,
        event_type: str,
        body: bytes,
        payload: dict[str, Any] | None,
    ) -> HTTPStatus:
        if payload is None:
            log.warning(
                "webhook_malformed_payload",
                provider=provider.value,
                repo=project.repo_full_name(),
            )
            return HTTPStatus.BAD_REQUEST

        if event_type.lower() == PUSH_EVENTS[provider]:
            self._todos.post(project, body.decode("utf-8"))
            log.info(
                "webhook_push_forwarded",
                provider=provider.value,
                repo=project.repo_full_name(),
            )
            return HTTPStatus.OK

        event = Event.classified(
            project, provider, event_type, classify(provider, event_type, payload)
        )
        project.resolve(event)
        log.info(
            "webhook_resolved",
            provider=provider.value,
            repo=project.repo_full_name(),
            raw_type=event_type,
            event_type=str(getattr(event.type, "value", event.type)),
        )
        return HTTPStatus.OK
