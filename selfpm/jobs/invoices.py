"""Weekly payment of unpaid contract invoices."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from selfpm.core.api import Contract, Invoice, Project, ProjectManager, SelfCore, Wallet
from selfpm.jobs.base import Job, SweepReport, describe_manager, describe_project, sweep
from selfpm.utils.logging import get_logger

log = get_logger(__name__)

# 108.00 in the invoice's currency, in minor units
DEFAULT_PAYOUT_THRESHOLD = 10_800


def first_payable(invoices: Iterable[Invoice], threshold: int) -> Invoice | None:
    """First unpaid invoice whose total reaches the payout threshold."""
    for invoice in invoices:
        if not invoice.is_paid() and Decimal(invoice.total_amount()) >= threshold:
            return invoice
    return None


class PayInvoices(Job):
    """At most one payment attempt per contract and run.

    Only the first payable invoice of a contract is tried; whatever the
    outcome, the job moves on to the next contract.
    """

    name = "pay_invoices"

    def __init__(self, core: SelfCore, threshold: int = DEFAULT_PAYOUT_THRESHOLD) -> None:
        super().__init__(core)
        self._threshold = threshold

    def run(self) -> SweepReport:
        log.debug("checking_invoices_to_pay", threshold=self._threshold)
        report = SweepReport(self.name)
        sweep(
            report,
            self._core.project_managers(),
            lambda manager: self._review_manager(report, manager),
            describe_manager,
            leaf=False,
        )
        log.debug("invoices_done", contracts=report.processed, failures=len(report.failures))
        return report

    def _review_manager(self, report: SweepReport, manager: ProjectManager) -> None:
        sweep(
            report,
            manager.projects(),
            lambda project: self._review_project(report, manager, project),
            describe_project,
            leaf=False,
        )

    def _review_project(
        self, report: SweepReport, manager: ProjectManager, project: Project
    ) -> None:
        wallet = project.wallet()
        sweep(
            report,
            project.contracts(),
            lambda contract: self._pay(manager, wallet, contract),
            lambda contract: f"contract {contract.contract_id()} of {describe_project(project)}",
        )

    def _pay(self, manager: ProjectManager, wallet: Wallet, contract: Contract) -> None:
        invoice = first_payable(contract.invoices(), self._threshold)
        if invoice is None:
            return
        log.debug(
            "paying_invoice",
            pm=manager.username(),
            invoice=invoice.invoice_id(),
            contract=contract.contract_id(),
        )
        payment = wallet.pay(invoice)
        log.debug(
            "payment_finished",
            invoice=invoice.invoice_id(),
            status=payment.status(),
            fail_reason=payment.fail_reason(),
        )
