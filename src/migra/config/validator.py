"""Semantic validation of a loaded ``MigraConfig``.

Unlike model parsing, which stops at the first bad value, the validator
walks the whole document and reports every problem together so an
operator can fix the file in one pass.
"""

from __future__ import annotations

from pathlib import Path

from migra.adapters import SUPPORTED_TYPES
from migra.config.models import (
    LOG_FORMATS,
    LOG_LEVELS,
    STRATEGIES,
    STRATEGY_PARALLEL,
    TENANCY_MODES,
    TENANT_SOURCES,
    MigraConfig,
)
from migra.core.errors import InvalidConfigError


class ConfigValidator:
    """Collect configuration problems; ``validate()`` raises if any were found."""

    def __init__(self, config: MigraConfig, base_dir: str | Path | None = None):
        self.config = config
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self.errors: list[str] = []

    def validate(self) -> None:
        """Run every check.

        Raises:
            InvalidConfigError: One or more problems; ``errors`` lists them.
        """
        self.errors = []
        self._validate_services()
        self._validate_execution()
        self._validate_tenancy()
        self._validate_logging()
        if self.errors:
            raise InvalidConfigError(self.errors)

    def _validate_services(self) -> None:
        cfg = self.config
        if not cfg.services and not cfg.discovery.enabled:
            self.errors.append("at least one service must be defined, or enable service discovery")
            return

        seen: set[str] = set()
        for i, svc in enumerate(cfg.services):
            label = f"services[{i}] ({svc.name})" if svc.name else f"services[{i}]"
            if not svc.name:
                self.errors.append(f"services[{i}]: name is required")
            elif svc.name in seen:
                self.errors.append(f"services[{i}]: duplicate service name '{svc.name}'")
            else:
                seen.add(svc.name)

            if not svc.type:
                self.errors.append(f"{label}: type is required")
            elif svc.type not in SUPPORTED_TYPES:
                self.errors.append(
                    f"{label}: unsupported type '{svc.type}' (supported: {', '.join(SUPPORTED_TYPES)})"
                )

            if not svc.path:
                self.errors.append(f"{label}: path is required")
            else:
                path = Path(svc.path)
                if not path.is_absolute():
                    path = self.base_dir / path
                if not path.exists():
                    self.errors.append(f"{label}: path does not exist: {path}")

    def _validate_execution(self) -> None:
        execution = self.config.execution
        if execution.strategy not in STRATEGIES:
            self.errors.append(
                f"execution.strategy must be 'sequential' or 'parallel', got '{execution.strategy}'"
            )

        if execution.strategy == STRATEGY_PARALLEL:
            if execution.parallel_limit < 1:
                self.errors.append("execution.parallel_limit must be at least 1 for parallel execution")
            elif execution.parallel_limit > 100:
                self.errors.append("execution.parallel_limit should not exceed 100")

        if self.config.parallel_limit < 0:
            self.errors.append("parallel_limit cannot be negative")
        elif self.config.parallel_limit > 100:
            self.errors.append("parallel_limit should not exceed 100")

    def _validate_tenancy(self) -> None:
        tenancy = self.config.tenancy
        if not tenancy.enabled:
            return

        if tenancy.mode not in TENANCY_MODES:
            self.errors.append(
                "tenancy.mode must be 'database_per_tenant' or 'schema_per_tenant', "
                f"got '{tenancy.mode}'"
            )

        if not tenancy.tenant_source:
            self.errors.append("tenancy.tenant_source is required when tenancy is enabled")
        elif tenancy.tenant_source not in TENANT_SOURCES:
            self.errors.append(
                f"tenancy.tenant_source must be 'env', 'file', or 'command', got '{tenancy.tenant_source}'"
            )

        if tenancy.max_parallel < 1:
            self.errors.append("tenancy.max_parallel must be at least 1")
        elif tenancy.max_parallel > 1000:
            self.errors.append("tenancy.max_parallel should not exceed 1000")

    def _validate_logging(self) -> None:
        logging_cfg = self.config.logging
        if logging_cfg.level not in LOG_LEVELS:
            self.errors.append(
                f"logging.level must be 'debug', 'info', 'warn', or 'error', got '{logging_cfg.level}'"
            )
        if logging_cfg.format not in LOG_FORMATS:
            self.errors.append(f"logging.format must be 'console' or 'json', got '{logging_cfg.format}'")


def validate_config(config: MigraConfig, base_dir: str | Path | None = None) -> None:
    ConfigValidator(config, base_dir).validate()


__all__ = ["ConfigValidator", "validate_config"]
