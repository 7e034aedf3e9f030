"""selfpm entry point: wires the core, webhooks and jobs together and runs."""

from __future__ import annotations

import asyncio
import importlib
import signal
import sys
from typing import Any

import click

from selfpm import __version__
from selfpm.config import JobsConfig, Settings, load_settings
from selfpm.core.api import SelfCore, SelfTodos
from selfpm.core.errors import CoreLoadError
from selfpm.core.scheduler import Schedule, Scheduler
from selfpm.jobs import (
    AcceptInvitations,
    PayInvoices,
    ReviewContractsMarkedForRemoval,
    ReviewUnassignedTasks,
)
from selfpm.utils.logging import get_logger, setup_logging
from selfpm.webhooks.dispatcher import WebhookDispatcher
from selfpm.webhooks.server import WebhookServer

log = get_logger(__name__)


def load_object(path: str) -> Any:
    """Import ``module:attribute`` and call it to build a collaborator."""
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise CoreLoadError(f"Expected 'module:attribute', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise CoreLoadError(f"Cannot import {module_name!r}: {exc}") from exc
    factory = getattr(module, attribute, None)
    if factory is None:
        raise CoreLoadError(f"{module_name!r} has no attribute {attribute!r}")
    return factory()


def build_schedules(core: SelfCore, config: JobsConfig) -> list[Schedule]:
    schedules: list[Schedule] = []
    if config.accept_invitations:
        schedules.append(
            Schedule(AcceptInvitations(core), interval=config.invitations_interval)
        )
    if config.review_unassigned_tasks:
        schedules.append(
            Schedule(ReviewUnassignedTasks(core), interval=config.unassigned_tasks_interval)
        )
    if config.review_contracts:
        # Delayed so that it does not overlap with the other jobs at startup
        schedules.append(
            Schedule(
                ReviewContractsMarkedForRemoval(core, grace_days=config.removal_grace_days),
                interval=config.contracts_interval,
                initial_delay=config.contracts_initial_delay,
            )
        )
    if config.pay_invoices:
        schedules.append(
            Schedule(
                PayInvoices(core, threshold=config.payout_threshold),
                cron=config.invoices_cron,
            )
        )
    return schedules


class SelfPm:
    """Main application orchestrator."""

    def __init__(
        self,
        settings: Settings,
        core: SelfCore,
        todos: SelfTodos | None = None,
    ) -> None:
        self.settings = settings
        self.core = core

        self.webhooks: WebhookServer | None = None
        if settings.webhooks.enabled:
            if todos is None:
                raise CoreLoadError("Webhooks need a todos collaborator (core.todos_factory)")
            dispatcher = WebhookDispatcher(
                core, todos, github_algorithm=settings.webhooks.github_algorithm
            )
            self.webhooks = WebhookServer(settings.webhooks, dispatcher)

        self.scheduler: Scheduler | None = None
        if settings.jobs.enabled:
            self.scheduler = Scheduler(
                build_schedules(core, settings.jobs), settings.get_data_dir()
            )

    async def start(self) -> None:
        log.info("selfpm_starting", version=__version__)
        if self.scheduler is not None:
            await self.scheduler.start()
        if self.webhooks is not None:
            await self.webhooks.start()
        log.info("selfpm_ready")

    async def stop(self) -> None:
        log.info("selfpm_stopping")
        if self.webhooks is not None:
            await self.webhooks.stop()
        if self.scheduler is not None:
            await self.scheduler.stop()
        log.info("selfpm_stopped")


def create_app(settings: Settings) -> SelfPm:
    if not settings.core.factory:
        raise CoreLoadError("No core configured; set core.factory to 'module:attribute'")
    core = load_object(settings.core.factory)
    todos = load_object(settings.core.todos_factory) if settings.core.todos_factory else None
    return SelfPm(settings, core, todos)


async def run(settings: Settings) -> None:
    app = create_app(settings)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    await app.start()

    try:
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await app.stop()


@click.command()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--no-webhooks", is_flag=True, help="Don't serve the webhook endpoints")
@click.option("--no-jobs", is_flag=True, help="Don't run the scheduled jobs")
def cli(
    config_path: str | None, log_level: str | None, no_webhooks: bool, no_jobs: bool
) -> None:
    """Start selfpm: provider webhooks and the PMs' periodic jobs."""
    overrides: dict[str, Any] = {}
    if log_level:
        overrides["log_level"] = log_level
    if no_webhooks:
        overrides["webhooks"] = {"enabled": False}
    if no_jobs:
        overrides["jobs"] = {"enabled": False}
    settings = load_settings(config_path, overrides)
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    try:
        asyncio.run(run(settings))
    except CoreLoadError as exc:
        raise click.ClickException(str(exc)) from exc


if __name__ == "__main__":
    cli()
