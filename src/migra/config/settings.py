"""
Environment settings for migra.

Values that depend on where migra runs rather than what it deploys live
here instead of in ``migra.yaml``: the tenant list locations, the work
directory that holds ``.migra/state.json``, and an optional ceiling on a
single migration command.

Every field can be set through a ``MIGRA_*`` environment variable (or a
``.env`` file in the current directory), e.g. ``MIGRA_TENANTS_FILE``.

Tags:
    configuration, settings, pydantic, environment
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from migra.tenant.sources import DEFAULT_TENANTS_ENV, DEFAULT_TENANTS_FILE


class MigraSettings(BaseSettings):
    """Process-level settings read from ``MIGRA_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="MIGRA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tenants_env_var: str = Field(
        default=DEFAULT_TENANTS_ENV,
        description="Variable holding the comma-separated tenant list (env source)",
    )
    tenants_file: Path = Field(
        default=Path(DEFAULT_TENANTS_FILE),
        description="JSON or YAML tenant list (file source)",
    )
    tenants_command: str | None = Field(
        default=None,
        description="Command printing a JSON tenant list (command source)",
    )
    work_dir: Path | None = Field(
        default=None,
        description="Directory holding .migra/state.json (defaults to the config file's directory)",
    )
    command_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-command timeout in seconds for migration tools",
    )


__all__ = ["MigraSettings"]
