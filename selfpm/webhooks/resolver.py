"""Maps webhook URLs (and payloads) to registered projects."""

from __future__ import annotations

from typing import Any

from selfpm.core.api import Project, Projects
from selfpm.utils.logging import get_logger
from selfpm.webhooks.models import Provider

log = get_logger(__name__)


class ProjectResolver:
    def __init__(self, projects: Projects) -> None:
        self._projects = projects

    def github(
        self, owner: str, name: str, payload: dict[str, Any] | None
    ) -> Project | None:
        """Find the GitHub project a webhook is meant for.

        A repository rename races with its webhooks: the URL may still carry
        the old name while the payload already has the new one, or the other
        way round. Tried in order:

        1. the ``owner/name`` from the URL;
        2. the previous name, from a rename notification in the payload;
        3. the ``repository.full_name`` the payload declares.
        """
        project = self._lookup(f"{owner}/{name}", Provider.GITHUB)
        if project is not None or payload is None:
            return project

        previous = _renamed_from(payload)
        if previous is not None:
            project = self._lookup(previous, Provider.GITHUB)
            if project is not None:
                log.info("webhook_project_found_by_rename", url=f"{owner}/{name}", previous=previous)
                return project

        repository = payload.get("repository")
        declared = repository.get("full_name") if isinstance(repository, dict) else None
        if isinstance(declared, str) and declared:
            project = self._lookup(declared, Provider.GITHUB)
            if project is not None:
                log.info("webhook_project_found_by_payload", url=f"{owner}/{name}", declared=declared)
        return project

    def gitlab(self, owner: str, name: str) -> Project | None:
        return self._lookup(f"{owner}/{name}", Provider.GITLAB)

    def _lookup(self, full_name: str, provider: Provider) -> Project | None:
        return self._projects.get_project_by_id(full_name, provider.value)


def _renamed_from(payload: dict[str, Any]) -> str | None:
    try:
        old_name = payload["changes"]["repository"]["name"]["from"]
        login = payload["repository"]["owner"]["login"]
    except (KeyError, TypeError):
        return None
    if not old_name or not login:
        return None
    return f"{login}/{old_name}"
