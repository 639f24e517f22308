"""
Tests for TenantExecutor: per-tenant sequencing, tenant fan-out and recording.
"""

from __future__ import annotations

import threading

import pytest

from conftest import FakeAdapter, StaticTenantSource, make_service
from migra.adapters.registry import AdapterRegistry
from migra.core.cancellation import CancellationToken
from migra.core.errors import TenantSourceError
from migra.models import Operation
from migra.tenant.executor import TenantExecutor, TenantSummary


def _registry(adapter: FakeAdapter) -> AdapterRegistry:
    registry = AdapterRegistry()
    registry.register("fake", adapter)
    return registry


class TestTenantExecution:
    def test_all_tenants_all_services(self, registry, fake_adapter, store, services):
        executor = TenantExecutor(StaticTenantSource(["acme", "globex"]), registry, store)

        results = executor.execute(services, Operation.DEPLOY)

        assert [r.tenant_id for r in results] == ["acme", "globex"]
        assert all(r.success and r.succeeded == 3 for r in results)
        assert executor.last_tenant_count == 2
        assert len(fake_adapter.calls) == 6
        state = store.get_state()
        assert set(state.tenants) == {"acme", "globex"}
        assert state.tenants["acme"].success_count == 3

    def test_services_are_sequential_within_a_tenant(self, registry, fake_adapter, services):
        TenantExecutor(StaticTenantSource(["acme"]), registry).execute(services, Operation.DEPLOY)
        assert fake_adapter.calls == [
            ("deploy", "a", "acme"),
            ("deploy", "b", "acme"),
            ("deploy", "c", "acme"),
        ]

    def test_failing_service_short_circuits_tenant(self, store, services):
        adapter = FakeAdapter(fail={"b"})
        executor = TenantExecutor(StaticTenantSource(["acme"]), _registry(adapter), store)

        [result] = executor.execute(services, Operation.DEPLOY)

        assert not result.success
        assert result.succeeded == 1
        assert result.service_count == 3
        assert result.error == "service b failed: deploy b failed"
        assert "c" not in adapter.called_services()
        tenant = store.get_state().tenants["acme"]
        assert set(tenant.services) == {"a", "b"}
        assert tenant.services["b"].last_result == "failure"
        assert tenant.services["a"].last_result == "success"
        assert (tenant.success_count, tenant.failure_count) == (1, 1)

    def test_one_tenant_failure_does_not_stop_others_by_default(self, services):
        adapter = FakeAdapter(fail={"acme/a"})
        executor = TenantExecutor(StaticTenantSource(["acme", "globex"]), _registry(adapter))

        results = executor.execute(services, Operation.DEPLOY)

        assert [r.success for r in results] == [False, True]

    def test_missing_adapter_is_recorded(self, registry, store):
        executor = TenantExecutor(StaticTenantSource(["acme"]), registry, store)

        [result] = executor.execute([make_service("legacy", type="rails")], Operation.DEPLOY)

        assert not result.success
        assert result.error.startswith("failed to get adapter for service legacy:")
        assert store.get_state().tenants["acme"].services["legacy"].failure_count == 1

    def test_rollback_steps_reach_adapter(self, registry, fake_adapter, services):
        executor = TenantExecutor(StaticTenantSource(["acme"]), registry, rollback_steps=2)
        executor.execute(services[:1], Operation.ROLLBACK)
        assert fake_adapter.calls == [("rollback:2", "a", "acme")]


class TestTenantFanOut:
    def test_stop_on_failure_skips_queued_tenants(self, services):
        adapter = FakeAdapter(fail={"t1/a"})
        source = StaticTenantSource(["t1", "t2", "t3"])
        executor = TenantExecutor(source, _registry(adapter), stop_on_failure=True, max_parallel=1)

        results = executor.execute(services, Operation.DEPLOY)
        summary = TenantSummary("deploy", executor.last_tenant_count, results)

        assert [r.tenant_id for r in results] == ["t1"]
        assert summary.skipped == 2
        assert not summary.success

    def test_stop_on_failure_keeps_in_flight_tenant(self):
        adapter = FakeAdapter(fail={"t2/a"}, delays={"t1/a": 0.3})
        source = StaticTenantSource(["t1", "t2", "t3"])
        executor = TenantExecutor(source, _registry(adapter), stop_on_failure=True, max_parallel=2)

        results = executor.execute([make_service("a")], Operation.DEPLOY)

        by_tenant = {r.tenant_id: r for r in results}
        assert [r.tenant_id for r in results] == ["t1", "t2"]
        assert by_tenant["t1"].success is True
        assert by_tenant["t2"].success is False
        assert "t3" not in {tenant for _, _, tenant in adapter.calls}

    def test_tenant_ceiling(self):
        adapter = FakeAdapter(delay=0.05)
        source = StaticTenantSource([f"t{i}" for i in range(6)])
        executor = TenantExecutor(source, _registry(adapter), max_parallel=2)

        results = executor.execute([make_service("a")], Operation.DEPLOY)

        assert len(results) == 6
        assert adapter.max_in_flight <= 2

    def test_default_ceiling(self, registry):
        assert TenantExecutor(StaticTenantSource(["x"]), registry, max_parallel=0).max_parallel == 5


class TestTenantCancellation:
    def test_cancel_stops_remaining_services(self, store, services):
        adapter = FakeAdapter(delays={"a": 0.2})
        executor = TenantExecutor(StaticTenantSource(["acme"]), _registry(adapter), store)
        token = CancellationToken()
        threading.Timer(0.05, token.cancel, args=("SIGINT",)).start()

        [result] = executor.execute(services, Operation.DEPLOY, token=token)

        assert adapter.called_services() == ["a"]
        assert result.success is False
        assert result.succeeded == 1
        assert result.error == "cancelled before service b"
        assert set(store.get_state().tenants["acme"].services) == {"a"}

    def test_cancelled_before_start_runs_nothing(self, registry, fake_adapter, services):
        token = CancellationToken()
        token.cancel("SIGINT")
        executor = TenantExecutor(StaticTenantSource(["acme", "globex"]), registry)

        results = executor.execute(services, Operation.DEPLOY, token=token)

        assert fake_adapter.calls == []
        assert results == []


class TestTenantLoading:
    def test_empty_source_raises_before_running(self, registry, fake_adapter, services):
        executor = TenantExecutor(StaticTenantSource([]), registry)
        with pytest.raises(TenantSourceError):
            executor.execute(services, Operation.DEPLOY)
        assert fake_adapter.calls == []

    def test_summary_to_dict(self, registry, services):
        executor = TenantExecutor(StaticTenantSource(["acme"]), registry)
        results = executor.execute(services, Operation.STATUS)
        payload = TenantSummary("status", 1, results, 0.1).to_dict()
        assert payload["total"] == 1
        assert payload["successful"] == 1
        assert payload["results"][0]["tenant"] == "acme"
        assert payload["results"][0]["services_succeeded"] == 3
