"""Removal of contracts whose grace period after being marked has passed."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable

from selfpm.core.api import Contract, Project, ProjectManager, SelfCore
from selfpm.jobs.base import Job, SweepReport, describe_manager, describe_project, sweep
from selfpm.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_GRACE_DAYS = 30


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from ``start`` to ``end``, truncated."""
    if start.tzinfo is None and end.tzinfo is not None:
        end = end.astimezone().replace(tzinfo=None)
    elif start.tzinfo is not None and end.tzinfo is None:
        end = end.astimezone()
    return (end - start).days


def contracts_to_remove(
    contracts: Iterable[Contract], now: datetime, grace_days: int = DEFAULT_GRACE_DAYS
) -> list[Contract]:
    """Contracts marked for removal more than ``grace_days`` whole days ago."""
    selected = []
    for contract in contracts:
        marked = contract.marked_for_removal()
        if marked is not None and days_between(marked, now) > grace_days:
            selected.append(contract)
    return selected


class ReviewContractsMarkedForRemoval(Job):
    name = "review_contracts"

    def __init__(
        self,
        core: SelfCore,
        now: Callable[[], datetime] = datetime.now,
        grace_days: int = DEFAULT_GRACE_DAYS,
    ) -> None:
        super().__init__(core)
        self._now = now
        self._grace_days = grace_days

    def run(self) -> SweepReport:
        log.debug("reviewing_contracts_marked_for_removal")
        report = SweepReport(self.name)
        sweep(
            report,
            self._core.project_managers(),
            lambda manager: self._review_manager(report, manager),
            describe_manager,
            leaf=False,
        )
        log.debug(
            "contracts_review_done",
            removed=report.processed - len(report.failures),
            failures=len(report.failures),
        )
        return report

    def _review_manager(self, report: SweepReport, manager: ProjectManager) -> None:
        log.debug("pm_reviewing_contracts", pm=manager.username())
        sweep(
            report,
            manager.projects(),
            lambda project: self._review_project(report, project),
            describe_project,
            leaf=False,
        )

    def _review_project(self, report: SweepReport, project: Project) -> None:
        to_remove = contracts_to_remove(project.contracts(), self._now(), self._grace_days)
        log.debug(
            "contracts_to_remove",
            project=project.repo_full_name(),
            provider=project.provider(),
            count=len(to_remove),
        )

        def remove(contract: Contract) -> None:
            contract.remove()
            log.debug("contract_removed", contract=contract.contract_id())

        sweep(
            report,
            to_remove,
            remove,
            lambda contract: f"contract {contract.contract_id()} of {describe_project(project)}",
        )
