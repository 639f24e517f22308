"""Execution State Store: durable per-service and per-tenant run history.

The store keeps one ``OrchestrationState`` in memory and mirrors it to
``<work_dir>/.migra/state.json`` after every mutation. Writes go to a temp
file in the same directory which is then ``os.replace``-d onto the canonical
path, so readers only ever see the previous complete document or the new
complete document.

Concurrency:
    A single re-entrant lock guards the in-memory state. Each record call
    holds it across read-modify-write *and* the save, so concurrent callers
    (parallel engine workers, tenant workers) never lose an update and the
    file always reflects a consistent snapshot. The lock is per process;
    two processes sharing one work dir are not coordinated.

Related Modules:
    - :mod:`migra.state.model`: the persisted document
    - :mod:`migra.engine`: records service executions
    - :mod:`migra.tenant.executor`: records tenant executions
"""

from __future__ import annotations

import os
import tempfile
import threading
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from migra.core.errors import StateLoadError, StateSaveError
from migra.core.logging import get_logger
from migra.state.model import (
    OrchestrationState,
    ServiceExecutionRecord,
    TenantExecutionRecord,
)

logger = get_logger(__name__)

STATE_DIR = ".migra"
STATE_FILE = "state.json"


class ExecutionStateStore:
    """Thread-safe, file-backed run history.

    Example:
        >>> store = ExecutionStateStore("/srv/app")
        >>> store.load()
        >>> store.record_service_execution("billing", True, 1.2)
        >>> store.get_state().services["billing"].success_count
        1
    """

    def __init__(self, work_dir: str | Path = "."):
        self.state_dir = Path(work_dir) / STATE_DIR
        self.state_file = self.state_dir / STATE_FILE
        self._lock = threading.RLock()
        self._state = OrchestrationState()

    def load(self) -> None:
        """Load state from disk, starting fresh when no file exists.

        Raises:
            StateLoadError: Directory cannot be created, or the file exists
                but cannot be read or parsed. In-memory state is left fresh.
        """
        with self._lock:
            self._state = OrchestrationState()
            try:
                self.state_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StateLoadError(
                    f"failed to create state directory {self.state_dir}: {e}", cause=e
                ) from e

            if not self.state_file.exists():
                logger.debug("state.load.fresh", path=str(self.state_file))
                return

            try:
                raw = self.state_file.read_text(encoding="utf-8")
                self._state = OrchestrationState.model_validate_json(raw)
            except (OSError, ValueError, ValidationError) as e:
                self._state = OrchestrationState()
                raise StateLoadError(
                    f"failed to parse state file {self.state_file}: {e}", cause=e
                ) from e

            logger.debug(
                "state.load.done",
                path=str(self.state_file),
                services=len(self._state.services),
                tenants=len(self._state.tenants),
            )

    def save(self) -> None:
        """Atomically persist the full state.

        Raises:
            StateSaveError: Serialisation, write or rename failed. The temp
                file is removed; the canonical file is untouched.
        """
        with self._lock:
            payload = self._state.model_dump_json(indent=2)
            try:
                self.state_dir.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{STATE_FILE}.", suffix=".tmp", dir=self.state_dir
                )
            except OSError as e:
                raise StateSaveError(f"failed to create temp state file: {e}", cause=e) from e

            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self.state_file)
            except OSError as e:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
                raise StateSaveError(f"failed to save state file {self.state_file}: {e}", cause=e) from e

    def get_state(self) -> OrchestrationState:
        """Return a deep copy; mutating it does not affect the store."""
        with self._lock:
            return self._state.model_copy(deep=True)

    def record_service_execution(
        self,
        service_name: str,
        success: bool,
        duration: float,
        error: str = "",
    ) -> None:
        """Update the service's record and persist immediately."""
        with self._lock:
            record = self._state.services.get(service_name)
            if record is None:
                record = ServiceExecutionRecord()
                self._state.services[service_name] = record
            record.record(success, duration, error)
            self._state.last_execution = datetime.now(UTC)
            self.save()

    def record_tenant_execution(
        self,
        tenant_id: str,
        service_name: str,
        success: bool,
        duration: float,
        error: str = "",
    ) -> None:
        """Update the tenant's counters and its service sub-record, then persist."""
        with self._lock:
            tenant = self._state.tenants.get(tenant_id)
            if tenant is None:
                tenant = TenantExecutionRecord()
                self._state.tenants[tenant_id] = tenant

            record = tenant.services.get(service_name)
            if record is None:
                record = ServiceExecutionRecord()
                tenant.services[service_name] = record
            record.record(success, duration, error)

            tenant.last_run = datetime.now(UTC)
            if success:
                tenant.success_count += 1
            else:
                tenant.failure_count += 1
            self._state.last_execution = tenant.last_run
            self.save()

    def reset(self) -> None:
        """Discard all history and persist the empty state."""
        with self._lock:
            self._state = OrchestrationState()
            self.save()
        logger.info("state.reset", path=str(self.state_file))


__all__ = ["ExecutionStateStore", "STATE_DIR", "STATE_FILE"]
