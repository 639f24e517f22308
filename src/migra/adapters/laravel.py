"""Laravel adapter: ``php artisan migrate``."""

from __future__ import annotations

import re

from migra.adapters.base import BaseAdapter
from migra.core.cancellation import CancellationToken
from migra.models import OperationResult, Service, StatusResult, Tenant

ARTISAN = ["php", "artisan"]

_APPLIED_FLAGS = {"y", "yes", "ran"}
_PENDING_FLAGS = {"n", "no", "pending"}
# Laravel 9+: "2014_10_12_000000_create_users_table ........ [1] Ran"
_DOTTED_ROW = re.compile(r"^(?P<name>\S+)\s+\.+\s+(?:\[\d+\]\s+)?(?P<state>Ran|Pending)$")


def parse_migrate_status(output: str) -> StatusResult:
    """Parse ``migrate:status`` output in both the boxed and the dotted layout."""
    status = StatusResult()
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("+"):
            continue

        if line.startswith("|"):
            cells = [cell.strip() for cell in line.strip("|").split("|")]
            if len(cells) < 2:
                continue
            flag, name = cells[0].lower(), cells[1]
            if flag in _APPLIED_FLAGS:
                status.applied.append(name)
            elif flag in _PENDING_FLAGS:
                status.pending.append(name)
            continue

        match = _DOTTED_ROW.match(line)
        if match:
            target = status.applied if match.group("state") == "Ran" else status.pending
            target.append(match.group("name"))
    return status


class LaravelAdapter(BaseAdapter):
    name = "laravel"

    def deploy(
        self,
        service: Service,
        tenant: Tenant | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> OperationResult:
        return self._run_command(service, tenant, [*ARTISAN, "migrate", "--force"], token)

    def rollback(
        self,
        service: Service,
        tenant: Tenant | None = None,
        steps: int = 1,
        *,
        token: CancellationToken | None = None,
    ) -> OperationResult:
        self._require_steps(steps)
        return self._run_command(
            service,
            tenant,
            [*ARTISAN, "migrate:rollback", f"--step={steps}", "--force"],
            token,
        )

    def status(
        self,
        service: Service,
        tenant: Tenant | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> StatusResult:
        output = self._status_output(service, tenant, [*ARTISAN, "migrate:status"], token)
        return parse_migrate_status(output)
