"""PMs look for tasks nobody is assigned to yet."""

from __future__ import annotations

from selfpm.core.api import Project, ProjectManager
from selfpm.jobs.base import Job, SweepReport, describe_manager, describe_project, sweep
from selfpm.utils.logging import get_logger
from selfpm.webhooks.models import Event

log = get_logger(__name__)


class ReviewUnassignedTasks(Job):
    name = "review_unassigned_tasks"

    def run(self) -> SweepReport:
        log.debug("reviewing_unassigned_tasks")
        report = SweepReport(self.name)
        sweep(
            report,
            self._core.project_managers(),
            lambda manager: self._review_manager(report, manager),
            describe_manager,
            leaf=False,
        )
        log.debug("unassigned_tasks_done", projects=report.processed)
        return report

    def _review_manager(self, report: SweepReport, manager: ProjectManager) -> None:
        log.debug("pm_reviewing_unassigned_tasks", pm=manager.username())
        sweep(report, manager.projects(), _review, describe_project)


def _review(project: Project) -> None:
    project.resolve(Event.unassigned_tasks(project))
