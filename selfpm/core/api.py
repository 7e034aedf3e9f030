"""Interfaces of the external Self core consumed by selfpm.

The core owns projects, contracts, invoices and everything that talks to the
providers' APIs. selfpm only reads it and triggers domain operations, so these
are structural protocols: any object with the right methods will do.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Protocol


class Comment(Protocol):
    def json(self) -> dict[str, Any]: ...


class Comments(Protocol):
    def received(self, comment: dict[str, Any]) -> Comment: ...


class Issue(Protocol):
    def issue_id(self) -> str: ...

    def comments(self) -> Comments: ...


class Issues(Protocol):
    def get_by_id(self, issue_id: str) -> Issue: ...

    def received(self, issue: dict[str, Any]) -> Issue: ...


class Repo(Protocol):
    def issues(self) -> Issues: ...


class Invitation(Protocol):
    def json(self) -> dict[str, Any]: ...

    def accept(self) -> None: ...


class Provider(Protocol):
    def name(self) -> str: ...

    def repo(self, owner: str, name: str) -> Repo: ...

    def invitations(self) -> Iterable[Invitation]: ...


class Payment(Protocol):
    def status(self) -> str: ...

    def fail_reason(self) -> str: ...


class Invoice(Protocol):
    def invoice_id(self) -> int: ...

    def is_paid(self) -> bool: ...

    def total_amount(self) -> int | Decimal:
        """Total in minor currency units."""
        ...


class Contract(Protocol):
    def contract_id(self) -> Any: ...

    def invoices(self) -> Iterable[Invoice]: ...

    def marked_for_removal(self) -> datetime | None: ...

    def remove(self) -> None: ...


class Wallet(Protocol):
    def pay(self, invoice: Invoice) -> Payment: ...


class Project(Protocol):
    def repo_full_name(self) -> str: ...

    def provider(self) -> str: ...

    def webhook_token(self) -> str: ...

    def project_manager(self) -> ProjectManager: ...

    def wallet(self) -> Wallet: ...

    def contracts(self) -> Iterable[Contract]: ...

    def resolve(self, event: Any) -> None: ...


class Projects(Protocol):
    def get_project_by_id(self, repo_full_name: str, provider: str) -> Project | None: ...


class ProjectManager(Protocol):
    def username(self) -> str: ...

    def provider(self) -> Provider: ...

    def projects(self) -> Iterable[Project]: ...


class SelfCore(Protocol):
    def projects(self) -> Projects: ...

    def project_managers(self) -> Iterable[ProjectManager]: ...


class SelfTodos(Protocol):
    """Extracts todo markers from pushed commits."""

    def post(self, project: Project, payload: str) -> None: ...
