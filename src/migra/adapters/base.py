"""Adapter protocol and the subprocess plumbing shared by every framework.

An adapter knows how to drive one framework's migration tool (Django's
``manage.py``, Laravel's ``artisan``, Prisma's CLI). The engines never talk
to a tool directly; they resolve an adapter through the registry and call
``deploy`` / ``rollback`` / ``status``.

Key Concepts:
    Environment layering: the tool sees ``os.environ``, overlaid with the
        service's ``env``, overlaid with the tenant's ``connection``. The
        tenant wins so a per-tenant ``DATABASE_URL`` always applies.
    Combined output: stdout and stderr are merged, matching what an
        operator would see running the tool by hand.
    Cancellation: the child process is killed when the caller's token is
        cancelled or its deadline passes. A sibling failing under
        stop-on-failure never reaches this token.
    Redaction: ``password=``, ``pass=``, ``secret=`` and ``token=`` values
        are masked before output leaves the adapter.

Related Modules:
    - :mod:`migra.adapters.registry`: name → adapter lookup
    - :mod:`migra.engine.dispatch`: invokes adapters per service

Tags:
    adapter, subprocess, migration-tool, protocol
"""

from __future__ import annotations

import os
import re
import subprocess
import time
from typing import Protocol, runtime_checkable

from migra.core.cancellation import CancellationToken
from migra.core.errors import AdapterError
from migra.core.logging import get_logger
from migra.models import OperationResult, Service, StatusResult, Tenant

logger = get_logger(__name__)

_POLL_INTERVAL = 0.1

_SENSITIVE = re.compile(r"(?i)\b(password|pass|secret|token)=([^\s&;,'\"]+)")


@runtime_checkable
class Adapter(Protocol):
    """Contract every framework adapter implements."""

    name: str

    def deploy(
        self,
        service: Service,
        tenant: Tenant | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> OperationResult: ...

    def rollback(
        self,
        service: Service,
        tenant: Tenant | None = None,
        steps: int = 1,
        *,
        token: CancellationToken | None = None,
    ) -> OperationResult: ...

    def status(
        self,
        service: Service,
        tenant: Tenant | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> StatusResult: ...


def sanitize_output(output: str) -> str:
    """Mask credential-looking ``key=value`` pairs in tool output.

    >>> sanitize_output("connecting with password=hunter2 ok")
    'connecting with password=[REDACTED] ok'
    """
    return _SENSITIVE.sub(lambda m: f"{m.group(1)}=[REDACTED]", output)


def build_env(service: Service, tenant: Tenant | None) -> dict[str, str]:
    """Process env, then service env, then tenant connection."""
    env = dict(os.environ)
    env.update(service.env)
    if tenant is not None:
        env.update(tenant.connection)
    return env


class BaseAdapter:
    """Shared command runner for concrete adapters.

    Parameters
    ----------
    name
        Adapter type name as used in configuration.
    command_timeout
        Optional per-command ceiling in seconds. ``None`` waits as long as
        the caller's token allows.
    """

    name: str = "base"

    def __init__(self, name: str | None = None, command_timeout: float | None = None) -> None:
        if name is not None:
            self.name = name
        self.command_timeout = command_timeout

    def _run_command(
        self,
        service: Service,
        tenant: Tenant | None,
        command: list[str],
        token: CancellationToken | None = None,
    ) -> OperationResult:
        """Run ``command`` in the service's working directory.

        Never raises for tool failures: a missing executable, a non-zero
        exit or a cancellation all produce ``success=False`` with the reason
        in ``error``.

        Returns
        -------
        OperationResult
            ``output`` holds the redacted combined stdout/stderr.
        """
        start = time.monotonic()
        deadline = start + self.command_timeout if self.command_timeout else None

        if token is not None and token.cancelled:
            logger.warning(
                "adapter.command.not_started",
                adapter=self.name,
                service=service.name,
                reason=token.reason,
            )
            return OperationResult(success=False, error=f"{command[0]} cancelled before start")

        logger.debug(
            "adapter.command.start",
            adapter=self.name,
            service=service.name,
            tenant=tenant.id if tenant else None,
            command=" ".join(command),
            cwd=service.working_dir,
        )

        try:
            proc = subprocess.Popen(
                command,
                cwd=service.working_dir or None,
                env=build_env(service, tenant),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            return OperationResult(
                success=False,
                error=f"failed to start {command[0]}: {e}",
                duration=time.monotonic() - start,
            )

        interrupted: str | None = None
        while True:
            try:
                output, _ = proc.communicate(timeout=_POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                if token is not None and token.cancelled:
                    interrupted = "cancelled"
                elif deadline is not None and time.monotonic() >= deadline:
                    interrupted = f"timed out after {self.command_timeout}s"
                if interrupted:
                    proc.kill()
                    output, _ = proc.communicate()
                    break

        duration = time.monotonic() - start
        output = sanitize_output(output or "")

        if interrupted:
            logger.warning(
                "adapter.command.interrupted",
                adapter=self.name,
                service=service.name,
                reason=interrupted,
            )
            return OperationResult(
                success=False,
                output=output,
                error=f"{command[0]} {interrupted}",
                duration=duration,
            )

        if proc.returncode != 0:
            error = f"exit status {proc.returncode}"
            if output:
                error = f"{error}: {output.strip()}"
            return OperationResult(success=False, output=output, error=error, duration=duration)

        return OperationResult(success=True, output=output, duration=duration)

    def _status_output(
        self,
        service: Service,
        tenant: Tenant | None,
        command: list[str],
        token: CancellationToken | None,
    ) -> str:
        """Run a status command and return its output, raising on failure."""
        result = self._run_command(service, tenant, command, token)
        if not result.success:
            raise AdapterError(f"{self.name} status failed: {result.error}").with_context(
                service=service.name,
                tenant=tenant.id if tenant else None,
                operation="status",
                adapter=self.name,
            )
        return result.output

    @staticmethod
    def _require_steps(steps: int) -> None:
        if steps <= 0:
            raise AdapterError("rollback steps must be positive", retryable=False)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


__all__ = ["Adapter", "BaseAdapter", "build_env", "sanitize_output"]
