"""Reconciliation job base class and the failure-isolating sweep."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterable, TypeVar

from selfpm.core.api import Project, ProjectManager, SelfCore
from selfpm.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


@dataclass
class SweepFailure:
    item: str
    error: Exception


@dataclass
class SweepReport:
    job: str
    processed: int = 0
    failures: list[SweepFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def sweep(
    report: SweepReport,
    items: Iterable[T],
    action: Callable[[T], None],
    describe: Callable[[T], str],
    *,
    leaf: bool = True,
) -> SweepReport:
    """Apply ``action`` to every item, folding failures into ``report``.

    An exception from one item is logged and recorded and the sweep moves
    on to the next item; it never escapes. Nested sweeps pass
    ``leaf=False`` on the outer levels so that ``processed`` only counts
    the items the job actually acts on.
    """
    for item in items:
        if leaf:
            report.processed += 1
        try:
            action(item)
        except Exception as exc:
            label = describe(item)
            log.exception("sweep_item_failed", job=report.job, item=label)
            report.failures.append(SweepFailure(item=label, error=exc))
    return report


def describe_manager(manager: ProjectManager) -> str:
    return f"PM @{manager.username()}"


def describe_project(project: Project) -> str:
    return f"project {project.repo_full_name()} at {project.provider()}"


class Job(ABC):
    """One periodic sweep over the projects managed by Self's PMs."""

    name: str = ""

    def __init__(self, core: SelfCore) -> None:
        self._core = core

    @abstractmethod
    def run(self) -> SweepReport: ...
