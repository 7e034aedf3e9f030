"""Tests for application wiring."""

import sys
import types
from unittest.mock import MagicMock

import pytest

from selfpm.config import JobsConfig, Settings
from selfpm.core.errors import CoreLoadError
from selfpm.jobs import (
    AcceptInvitations,
    PayInvoices,
    ReviewContractsMarkedForRemoval,
    ReviewUnassignedTasks,
)
from selfpm.main import SelfPm, build_schedules, create_app, load_object


@pytest.fixture
def fake_module(monkeypatch):
    module = types.ModuleType("fake_self_core")
    module.core = MagicMock(name="core")
    module.todos = MagicMock(name="todos")
    module.build_core = lambda: module.core
    module.build_todos = lambda: module.todos
    monkeypatch.setitem(sys.modules, "fake_self_core", module)
    return module


class TestLoadObject:
    def test_calls_factory(self, fake_module):
        assert load_object("fake_self_core:build_core") is fake_module.core

    @pytest.mark.parametrize("path", ["fake_self_core", ":build", "fake_self_core:"])
    def test_bad_path(self, path):
        with pytest.raises(CoreLoadError):
            load_object(path)

    def test_missing_module(self):
        with pytest.raises(CoreLoadError, match="Cannot import"):
            load_object("no_such_module_anywhere:build")

    def test_missing_attribute(self, fake_module):
        with pytest.raises(CoreLoadError, match="no attribute"):
            load_object("fake_self_core:nope")


class TestBuildSchedules:
    def test_all_jobs(self):
        schedules = {s.job.name: s for s in build_schedules(MagicMock(), JobsConfig())}
        assert isinstance(schedules["accept_invitations"].job, AcceptInvitations)
        assert schedules["accept_invitations"].interval == 600
        assert isinstance(schedules["review_unassigned_tasks"].job, ReviewUnassignedTasks)
        contracts = schedules["review_contracts"]
        assert isinstance(contracts.job, ReviewContractsMarkedForRemoval)
        assert contracts.interval == 86_400
        assert contracts.initial_delay == 900
        invoices = schedules["pay_invoices"]
        assert isinstance(invoices.job, PayInvoices)
        assert invoices.cron == "0 0 * * MON"

    def test_disabled_jobs(self):
        config = JobsConfig(pay_invoices=False, accept_invitations=False)
        names = [s.job.name for s in build_schedules(MagicMock(), config)]
        assert names == ["review_unassigned_tasks", "review_contracts"]


class TestApp:
    def test_create_app(self, fake_module, tmp_path):
        settings = Settings(
            data_dir=str(tmp_path),
            core={"factory": "fake_self_core:build_core", "todos_factory": "fake_self_core:build_todos"},
        )
        app = create_app(settings)
        assert app.core is fake_module.core
        assert app.webhooks is not None
        assert app.scheduler is not None

    def test_core_required(self):
        with pytest.raises(CoreLoadError):
            create_app(Settings())

    def test_webhooks_need_todos(self, tmp_path):
        with pytest.raises(CoreLoadError):
            SelfPm(Settings(data_dir=str(tmp_path)), MagicMock())

    def test_jobs_only(self, tmp_path):
        settings = Settings(data_dir=str(tmp_path), webhooks={"enabled": False})
        app = SelfPm(settings, MagicMock())
        assert app.webhooks is None
        assert app.scheduler is not None

    async def test_start_stop_without_webhooks(self, tmp_path):
        settings = Settings(
            data_dir=str(tmp_path),
            webhooks={"enabled": False},
            jobs={"accept_invitations": False, "review_unassigned_tasks": False, "pay_invoices": False},
        )
        app = SelfPm(settings, MagicMock())
        await app.start()
        await app.stop()
        assert (tmp_path / "scheduler.db").exists()
