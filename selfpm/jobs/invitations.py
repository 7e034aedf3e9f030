"""PMs accept every pending collaboration invitation."""

from __future__ import annotations

from selfpm.core.api import Invitation, ProjectManager
from selfpm.jobs.base import Job, SweepReport, describe_manager, sweep
from selfpm.utils.logging import get_logger

log = get_logger(__name__)


class AcceptInvitations(Job):
    name = "accept_invitations"

    def run(self) -> SweepReport:
        log.debug("checking_pm_invitations")
        report = SweepReport(self.name)
        sweep(
            report,
            self._core.project_managers(),
            lambda manager: self._accept_all(report, manager),
            describe_manager,
            leaf=False,
        )
        log.debug("pm_invitations_done", accepted=report.processed - len(report.failures))
        return report

    def _accept_all(self, report: SweepReport, manager: ProjectManager) -> None:
        def accept(invitation: Invitation) -> None:
            log.debug(
                "accepting_invitation",
                pm=manager.username(),
                invitation=invitation.json(),
            )
            invitation.accept()
            log.debug("invitation_accepted", pm=manager.username())

        sweep(
            report,
            manager.provider().invitations(),
            accept,
            lambda invitation: f"invitation of {describe_manager(manager)}",
        )
