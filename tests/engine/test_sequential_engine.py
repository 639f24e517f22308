"""
Tests for the sequential engine.
"""

from __future__ import annotations

import pytest

from conftest import FakeAdapter, make_service
from migra.adapters.registry import AdapterRegistry
from migra.core.cancellation import CancellationToken
from migra.core.errors import ConfigError
from migra.engine.dispatch import DRY_RUN_OUTPUT
from migra.engine.result import summarize_results
from migra.engine.sequential import SequentialEngine
from migra.models import Operation


class TestOrdering:
    def test_runs_in_input_order(self, registry, fake_adapter, services):
        results = SequentialEngine(registry).execute(services, Operation.DEPLOY)
        assert [r.service_name for r in results] == ["a", "b", "c"]
        assert fake_adapter.called_services() == ["a", "b", "c"]
        assert all(r.success for r in results)
        assert fake_adapter.max_in_flight == 1

    def test_empty_input(self, registry):
        assert SequentialEngine(registry).execute([], Operation.DEPLOY) == []


class TestStopOnFailure:
    def test_stops_after_first_failure(self, store, services):
        adapter = FakeAdapter(fail={"b"})
        registry = AdapterRegistry()
        registry.register("fake", adapter)

        results = SequentialEngine(registry, store, stop_on_failure=True).execute(services, Operation.DEPLOY)

        assert [r.service_name for r in results] == ["a", "b"]
        assert not results[-1].success
        assert results[-1].error == "deploy b failed"
        assert "c" not in adapter.called_services()
        assert "c" not in store.get_state().services

    def test_continue_on_failure(self, services):
        adapter = FakeAdapter(fail={"b"})
        registry = AdapterRegistry()
        registry.register("fake", adapter)

        results = SequentialEngine(registry, stop_on_failure=False).execute(services, Operation.DEPLOY)

        assert [r.success for r in results] == [True, False, True]

    def test_summary_counts_skipped(self, services):
        adapter = FakeAdapter(fail={"a"})
        registry = AdapterRegistry()
        registry.register("fake", adapter)

        results = SequentialEngine(registry).execute(services, Operation.DEPLOY)
        summary = summarize_results("deploy", len(services), results, 0.5)

        assert (summary.total, summary.succeeded, summary.failed, summary.skipped) == (1, 0, 1, 2)
        assert not summary.success
        assert summary.to_dict()["skipped"] == 2


class TestDryRun:
    def test_no_adapter_calls_and_no_records(self, registry, fake_adapter, store, services):
        results = SequentialEngine(registry, store, dry_run=True).execute(services, Operation.DEPLOY)

        assert len(results) == 3
        assert all(r.success and r.output == DRY_RUN_OUTPUT for r in results)
        assert fake_adapter.calls == []
        assert store.get_state().services == {}

    def test_dry_run_ignores_unknown_adapter(self, registry):
        results = SequentialEngine(registry, dry_run=True).execute(
            [make_service("x", type="rails")], Operation.DEPLOY
        )
        assert results[0].success


class TestRecording:
    def test_records_every_attempt(self, registry, store, services):
        SequentialEngine(registry, store).execute(services, Operation.DEPLOY)
        state = store.get_state()
        assert set(state.services) == {"a", "b", "c"}
        assert state.services["a"].success_count == 1

    def test_missing_adapter_is_recorded_failure(self, registry, store):
        results = SequentialEngine(registry, store).execute(
            [make_service("legacy", type="rails")], Operation.DEPLOY
        )

        assert not results[0].success
        assert results[0].error.startswith("failed to get adapter:")
        assert "rails" in results[0].error
        record = store.get_state().services["legacy"]
        assert record.failure_count == 1
        assert record.last_result == "failure"


class TestOperations:
    def test_rollback_passes_steps(self, registry, fake_adapter, services):
        SequentialEngine(registry, rollback_steps=3).execute(services[:1], Operation.ROLLBACK)
        assert fake_adapter.calls == [("rollback:3", "a", None)]

    def test_status_output_is_summary(self, registry, services):
        results = SequentialEngine(registry).execute(services[:1], Operation.STATUS)
        assert results[0].output == "Applied: 1, Pending: 1"

    def test_adapter_exception_becomes_failure(self, store):
        adapter = FakeAdapter(raise_for={"a"})
        registry = AdapterRegistry()
        registry.register("fake", adapter)

        results = SequentialEngine(registry, store).execute([make_service("a")], Operation.DEPLOY)

        assert not results[0].success
        assert results[0].error == "a exploded"
        assert store.get_state().services["a"].failure_count == 1

    def test_invalid_rollback_steps(self, registry):
        with pytest.raises(ConfigError):
            SequentialEngine(registry, rollback_steps=0)


class TestCancellation:
    def test_cancelled_token_runs_nothing(self, registry, fake_adapter, services):
        token = CancellationToken()
        token.cancel("SIGINT")
        results = SequentialEngine(registry).execute(services, Operation.DEPLOY, token=token)
        assert results == []
        assert fake_adapter.calls == []
