"""Tenant sources: where the list of tenants comes from.

Three sources ship with migra:

- ``EnvTenantSource``: ``MIGRA_TENANTS="acme:postgres://...,globex"``;
  ``id:url`` sets the tenant's ``DATABASE_URL``.
- ``FileTenantSource``: a JSON or YAML list of ``{id, connection}`` objects.
- ``CommandTenantSource``: runs a command and reads that same JSON list
  from its stdout.

Every source fails with ``TenantSourceError`` rather than returning an empty
list, so a misconfigured tenant list stops a run before anything executes.
"""

from __future__ import annotations

import json
import os
import shlex
import subprocess
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml
from pydantic import ValidationError

from migra.core.cancellation import CancellationToken
from migra.core.errors import ConfigError, TenantSourceError
from migra.core.logging import get_logger
from migra.models import Tenant

logger = get_logger(__name__)

DEFAULT_TENANTS_ENV = "MIGRA_TENANTS"
DEFAULT_TENANTS_FILE = "tenants.json"


@runtime_checkable
class TenantSource(Protocol):
    """Anything that can produce the current tenant list."""

    def load_tenants(self, token: CancellationToken | None = None) -> list[Tenant]: ...


def parse_tenant_list(data: Any, origin: str) -> list[Tenant]:
    """Validate a decoded ``[{id, connection}, ...]`` document.

    Raises:
        TenantSourceError: Not a list, empty, an entry without an id, or a
            duplicate id.
    """
    if data is None or (isinstance(data, list) and not data):
        raise TenantSourceError(f"no tenants found in {origin}")
    if not isinstance(data, list):
        raise TenantSourceError(f"tenant list in {origin} must be a list, got {type(data).__name__}")

    tenants: list[Tenant] = []
    seen: set[str] = set()
    for index, entry in enumerate(data):
        if not isinstance(entry, dict) or not str(entry.get("id") or "").strip():
            raise TenantSourceError(f"tenant at index {index} has no ID ({origin})")
        try:
            tenant = Tenant.model_validate(
                {"id": str(entry["id"]), "connection": entry.get("connection")}
            )
        except ValidationError as e:
            raise TenantSourceError(f"invalid tenant at index {index} ({origin}): {e}", cause=e) from e
        if tenant.id in seen:
            raise TenantSourceError(f"duplicate tenant id {tenant.id!r} ({origin})")
        seen.add(tenant.id)
        tenants.append(tenant)
    return tenants


class EnvTenantSource:
    """Read tenants from a comma-separated environment variable."""

    def __init__(self, env_var: str = DEFAULT_TENANTS_ENV):
        self.env_var = env_var or DEFAULT_TENANTS_ENV

    def load_tenants(self, token: CancellationToken | None = None) -> list[Tenant]:
        value = os.environ.get(self.env_var, "")
        if not value.strip():
            raise TenantSourceError(f"environment variable {self.env_var} is not set")

        entries: list[dict[str, Any]] = []
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            if ":" in part:
                tenant_id, url = part.split(":", 1)
                entries.append({"id": tenant_id.strip(), "connection": {"DATABASE_URL": url.strip()}})
            else:
                entries.append({"id": part, "connection": {}})

        tenants = parse_tenant_list(entries, f"environment variable {self.env_var}")
        logger.debug("tenant.source.loaded", source="env", count=len(tenants))
        return tenants


class FileTenantSource:
    """Read tenants from a JSON or YAML file."""

    def __init__(self, path: str | Path = DEFAULT_TENANTS_FILE):
        self.path = Path(path)

    def load_tenants(self, token: CancellationToken | None = None) -> list[Tenant]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise TenantSourceError(f"failed to read tenants file {self.path}: {e}", cause=e) from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            try:
                data = yaml.safe_load(raw)
            except yaml.YAMLError as e:
                raise TenantSourceError(
                    f"failed to parse tenants file {self.path} (tried JSON and YAML): {e}",
                    cause=e,
                ) from e

        tenants = parse_tenant_list(data, f"file {self.path}")
        logger.debug("tenant.source.loaded", source="file", path=str(self.path), count=len(tenants))
        return tenants


class CommandTenantSource:
    """Run a command and parse its stdout as a JSON tenant list."""

    def __init__(self, command: str | list[str], timeout: float = 60.0):
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        if not self.command:
            raise ConfigError("tenant command must not be empty")
        self.timeout = timeout

    def load_tenants(self, token: CancellationToken | None = None) -> list[Tenant]:
        if token is not None and token.cancelled:
            raise TenantSourceError("tenant command cancelled before start")

        timeout = self.timeout
        if token is not None and token.remaining is not None:
            timeout = min(timeout, token.remaining)

        try:
            proc = subprocess.run(
                self.command,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise TenantSourceError(f"tenant command timed out after {timeout}s", cause=e) from e
        except OSError as e:
            raise TenantSourceError(f"failed to execute tenant command: {e}", cause=e) from e

        if proc.returncode != 0:
            raise TenantSourceError(
                f"tenant command exited with status {proc.returncode}: {proc.stderr.strip()}"
            )

        try:
            data = json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            raise TenantSourceError(f"failed to parse command output as JSON: {e}", cause=e) from e

        tenants = parse_tenant_list(data, "command output")
        logger.debug("tenant.source.loaded", source="command", count=len(tenants))
        return tenants


class FilteredTenantSource:
    """Restrict another source to the given tenant ids, in source order."""

    def __init__(self, source: TenantSource, tenant_ids: list[str]):
        self.source = source
        self.tenant_ids = list(tenant_ids)

    def load_tenants(self, token: CancellationToken | None = None) -> list[Tenant]:
        wanted = set(self.tenant_ids)
        tenants = [t for t in self.source.load_tenants(token) if t.id in wanted]
        missing = wanted - {t.id for t in tenants}
        if missing:
            raise TenantSourceError(f"unknown tenant(s): {', '.join(sorted(missing))}")
        return tenants


def build_tenant_source(
    kind: str,
    *,
    env_var: str = DEFAULT_TENANTS_ENV,
    file_path: str | Path = DEFAULT_TENANTS_FILE,
    command: str | None = None,
) -> TenantSource:
    """Create the tenant source named by ``tenancy.tenant_source``.

    Raises:
        ConfigError: Unknown kind, or ``command`` kind without a command.
    """
    if kind == "env":
        return EnvTenantSource(env_var)
    if kind == "file":
        return FileTenantSource(file_path)
    if kind == "command":
        if not command:
            raise ConfigError("tenant source 'command' requires MIGRA_TENANTS_COMMAND to be set")
        return CommandTenantSource(command)
    raise ConfigError(f"unknown tenant source: {kind}")


__all__ = [
    "DEFAULT_TENANTS_ENV",
    "DEFAULT_TENANTS_FILE",
    "TenantSource",
    "EnvTenantSource",
    "FileTenantSource",
    "CommandTenantSource",
    "FilteredTenantSource",
    "build_tenant_source",
    "parse_tenant_list",
]
