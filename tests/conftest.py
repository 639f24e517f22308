"""
Shared pytest fixtures for migra tests.

This module provides:
- ``FakeAdapter``: an in-memory adapter with scripted outcomes, delays and
  a call log, so engines and the tenant executor can be tested without
  real framework tooling
- ``StaticTenantSource``: a tenant source backed by a fixed list
- Registry and state-store fixtures rooted in ``tmp_path``

Usage:
    def test_something(registry, fake_adapter, store):
        engine = SequentialEngine(registry, store)
        ...
"""

from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest

# Ensure migra package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from migra.adapters.registry import AdapterRegistry
from migra.models import OperationResult, Service, StatusResult, Tenant
from migra.state.store import ExecutionStateStore


# =============================================================================
# Fakes
# =============================================================================


class FakeAdapter:
    """Adapter double with scripted per-service outcomes.

    ``fail`` holds service names (``"billing"``) or tenant-qualified names
    (``"acme/billing"``) that should fail. ``raise_for`` names services whose
    call raises ``RuntimeError``. ``delays`` maps service name (or tenant-qualified name) to seconds.
    """

    def __init__(
        self,
        name: str = "fake",
        *,
        fail: set[str] | None = None,
        raise_for: set[str] | None = None,
        delays: dict[str, float] | None = None,
        delay: float = 0.0,
    ):
        self.name = name
        self.fail = set(fail or ())
        self.raise_for = set(raise_for or ())
        self.delays = dict(delays or {})
        self.delay = delay
        self.calls: list[tuple[str, str, str | None]] = []
        self.max_in_flight = 0
        self._in_flight = 0
        self._lock = threading.Lock()

    def _should_fail(self, service: Service, tenant: Tenant | None) -> bool:
        if service.name in self.fail:
            return True
        return tenant is not None and f"{tenant.id}/{service.name}" in self.fail

    def _run(self, operation: str, service: Service, tenant: Tenant | None) -> OperationResult:
        with self._lock:
            self.calls.append((operation, service.name, tenant.id if tenant else None))
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            pause = self.delays.get(service.name, self.delay)
            if tenant is not None:
                pause = self.delays.get(f"{tenant.id}/{service.name}", pause)
            if pause:
                time.sleep(pause)
            if service.name in self.raise_for:
                raise RuntimeError(f"{service.name} exploded")
            if self._should_fail(service, tenant):
                return OperationResult(success=False, error=f"{operation} {service.name} failed")
            return OperationResult(success=True, output=f"{operation} {service.name} ok")
        finally:
            with self._lock:
                self._in_flight -= 1

    def deploy(self, service, tenant=None, *, token=None):
        return self._run("deploy", service, tenant)

    def rollback(self, service, tenant=None, steps=1, *, token=None):
        return self._run(f"rollback:{steps}", service, tenant)

    def status(self, service, tenant=None, *, token=None):
        result = self._run("status", service, tenant)
        if not result.success:
            raise RuntimeError(result.error)
        return StatusResult(applied=["0001_initial"], pending=["0002_next"])

    def called_services(self) -> list[str]:
        return [name for _, name, _ in self.calls]


class StaticTenantSource:
    """Tenant source returning a fixed list."""

    def __init__(self, tenant_ids: list[str]):
        self.tenants = [Tenant(id=tid, connection={"DATABASE_URL": f"sqlite:///{tid}"}) for tid in tenant_ids]

    def load_tenants(self, token=None):
        return list(self.tenants)


def make_service(name: str, type: str = "fake", path: str = "/srv") -> Service:
    return Service(name=name, type=type, path=f"{path}/{name}")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def registry(fake_adapter: FakeAdapter) -> AdapterRegistry:
    reg = AdapterRegistry()
    reg.register("fake", fake_adapter)
    return reg


@pytest.fixture
def store(tmp_path: Path) -> ExecutionStateStore:
    st = ExecutionStateStore(tmp_path)
    st.load()
    return st


@pytest.fixture
def services() -> list[Service]:
    return [make_service("a"), make_service("b"), make_service("c")]
