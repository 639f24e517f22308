"""Prisma adapter: ``npx prisma migrate deploy``.

Prisma has no down migrations, so ``rollback`` is refused with
``UnsupportedOperationError``; reverting requires ``prisma migrate resolve``
and a hand-written migration.
"""

from __future__ import annotations

import re

from migra.adapters.base import BaseAdapter
from migra.core.cancellation import CancellationToken
from migra.core.errors import UnsupportedOperationError
from migra.models import OperationResult, Service, StatusResult, Tenant

PRISMA = ["npx", "prisma"]

# Migration directories are named "<14-digit timestamp>_<name>".
_MIGRATION_NAME = re.compile(r"^\d{14}_\w+$")


def parse_migrate_status(output: str) -> StatusResult:
    """Parse ``prisma migrate status`` output by section headings."""
    status = StatusResult()
    section: list[str] | None = None
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        lowered = line.lower()
        if ("not yet" in lowered and "applied" in lowered) or "pending migration" in lowered:
            section = status.pending
            continue
        if "migrations applied" in lowered or "following migration" in lowered:
            section = status.applied
            continue
        if section is not None and _MIGRATION_NAME.match(line):
            section.append(line)
    return status


class PrismaAdapter(BaseAdapter):
    name = "prisma"

    def deploy(
        self,
        service: Service,
        tenant: Tenant | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> OperationResult:
        return self._run_command(service, tenant, [*PRISMA, "migrate", "deploy"], token)

    def rollback(
        self,
        service: Service,
        tenant: Tenant | None = None,
        steps: int = 1,
        *,
        token: CancellationToken | None = None,
    ) -> OperationResult:
        raise UnsupportedOperationError(
            "prisma does not support automatic rollback - manual intervention required"
        ).with_context(service=service.name, operation="rollback", adapter=self.name)

    def status(
        self,
        service: Service,
        tenant: Tenant | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> StatusResult:
        output = self._status_output(service, tenant, [*PRISMA, "migrate", "status"], token)
        return parse_migrate_status(output)
