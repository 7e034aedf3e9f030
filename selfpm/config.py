"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _xdg_dir(override: str, xdg: str, fallback: Path) -> Path:
    env = os.environ.get(override)
    if env:
        return Path(env)
    return Path(os.environ.get(xdg) or fallback) / "selfpm"


def default_config_dir() -> Path:
    return _xdg_dir("SELFPM_CONFIG_DIR", "XDG_CONFIG_HOME", Path.home() / ".config")


def default_data_dir() -> Path:
    """Where the scheduler keeps its run history when ``data_dir`` is unset."""
    return _xdg_dir("SELFPM_DATA_DIR", "XDG_DATA_HOME", Path.home() / ".local" / "share")


class WebhooksConfig(BaseModel):
    enabled: bool = True
    bind: str = "0.0.0.0"
    port: int = 8080
    # HMAC digest GitHub uses for the X-Hub-Signature header
    github_algorithm: str = "sha1"


class JobsConfig(BaseModel):
    enabled: bool = True

    accept_invitations: bool = True
    invitations_interval: int = 600

    review_unassigned_tasks: bool = True
    unassigned_tasks_interval: int = 600

    review_contracts: bool = True
    contracts_interval: int = 86_400
    contracts_initial_delay: int = 900
    removal_grace_days: int = 30

    pay_invoices: bool = True
    invoices_cron: str = "0 0 * * MON"
    # Minor currency units (108.00)
    payout_threshold: int = 10_800

    @field_validator(
        "invitations_interval", "unassigned_tasks_interval", "contracts_interval"
    )
    @classmethod
    def _positive_interval(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("interval must be a positive number of seconds")
        return value


class CoreConfig(BaseModel):
    """Import paths (``module:attribute``) of the external core collaborators."""
    factory: str = ""
    todos_factory: str = ""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SELFPM_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    webhooks: WebhooksConfig = Field(default_factory=WebhooksConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)
    core: CoreConfig = Field(default_factory=CoreConfig)
    data_dir: str = ""
    log_level: str = "INFO"
    log_json: bool = False

    def get_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir)
        return default_data_dir()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config.

    ``overrides`` (typically CLI flags) win over both the YAML file and
    the environment.
    """
    yaml_data: dict[str, Any] = {}

    if config_path is None:
        config_path = os.environ.get("SELFPM_CONFIG")
    if config_path is None:
        default = default_config_dir() / "config.yaml"
        if default.exists():
            config_path = default

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    if overrides:
        yaml_data = _deep_merge(yaml_data, overrides)

    # YAML values as init kwargs, env vars fill whatever YAML leaves out
    return Settings(**yaml_data)
