"""Django adapter: ``python manage.py migrate``.

Rollback in Django means migrating an app back to an earlier migration, so
the adapter reads the applied plan (``showmigrations --plan``) and, for each
step, migrates the app owning the most recently applied migration back to
its predecessor (or ``zero``).
"""

from __future__ import annotations

from migra.adapters.base import BaseAdapter
from migra.core.cancellation import CancellationToken
from migra.models import OperationResult, Service, StatusResult, Tenant

MANAGE = ["python", "manage.py"]


def parse_showmigrations(output: str) -> StatusResult:
    """Parse ``showmigrations --plan`` output (``[X]`` applied, ``[ ]`` pending)."""
    status = StatusResult()
    for line in output.splitlines():
        line = line.strip()
        if line.startswith("[X]"):
            status.applied.append(line[3:].strip())
        elif line.startswith("[ ]"):
            status.pending.append(line[3:].strip())
    return status


def rollback_targets(applied: list[str], steps: int) -> list[tuple[str, str]]:
    """Work out ``(app, target)`` pairs that undo the last ``steps`` migrations.

    >>> rollback_targets(["auth.0001_initial", "shop.0001_initial", "shop.0002_price"], 1)
    [('shop', '0001_initial')]
    >>> rollback_targets(["auth.0001_initial", "shop.0001_initial", "shop.0002_price"], 3)
    [('shop', 'zero'), ('auth', 'zero')]
    """
    remaining = [name.split(" ", 1)[0] for name in applied]
    targets: list[tuple[str, str]] = []
    for _ in range(min(steps, len(remaining))):
        last = remaining.pop()
        app = last.split(".", 1)[0]
        previous = [m for m in remaining if m.split(".", 1)[0] == app]
        target = previous[-1].split(".", 1)[1] if previous else "zero"
        # Multiple steps within one app collapse into a single migrate call.
        if targets and targets[-1][0] == app:
            targets[-1] = (app, target)
        else:
            targets.append((app, target))
    return targets


class DjangoAdapter(BaseAdapter):
    name = "django"

    def deploy(
        self,
        service: Service,
        tenant: Tenant | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> OperationResult:
        return self._run_command(service, tenant, [*MANAGE, "migrate", "--no-input"], token)

    def rollback(
        self,
        service: Service,
        tenant: Tenant | None = None,
        steps: int = 1,
        *,
        token: CancellationToken | None = None,
    ) -> OperationResult:
        self._require_steps(steps)
        current = self.status(service, tenant, token=token)
        targets = rollback_targets(current.applied, steps)
        if not targets:
            return OperationResult(success=True, output="No applied migrations to roll back")

        outputs: list[str] = []
        duration = 0.0
        for app, target in targets:
            result = self._run_command(
                service, tenant, [*MANAGE, "migrate", app, target, "--no-input"], token
            )
            outputs.append(result.output)
            duration += result.duration
            if not result.success:
                result.output = "".join(outputs)
                result.duration = duration
                return result
        return OperationResult(success=True, output="".join(outputs), duration=duration)

    def status(
        self,
        service: Service,
        tenant: Tenant | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> StatusResult:
        output = self._status_output(
            service, tenant, [*MANAGE, "showmigrations", "--plan"], token
        )
        return parse_showmigrations(output)
