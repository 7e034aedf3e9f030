"""Periodic reconciliation jobs."""

from .base import Job, SweepFailure, SweepReport, sweep
from .contracts import ReviewContractsMarkedForRemoval
from .invitations import AcceptInvitations
from .invoices import PayInvoices
from .tasks import ReviewUnassignedTasks

__all__ = [
    "Job",
    "SweepFailure",
    "SweepReport",
    "sweep",
    "AcceptInvitations",
    "PayInvoices",
    "ReviewContractsMarkedForRemoval",
    "ReviewUnassignedTasks",
]
