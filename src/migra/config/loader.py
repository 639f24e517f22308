"""Load ``migra.yaml``: parse, apply defaults, merge discovery.

Loading order:
    1. Read and parse the YAML document into ``MigraConfig``.
    2. Apply defaults (strategy, limits, logging, tenancy).
    3. Resolve relative service paths against the config file's directory
       and default ``working_dir`` to ``path``.
    4. Merge ``global_env`` into every service without overriding keys the
       service sets itself.
    5. If discovery is enabled, append discovered services whose names are
       not already configured explicitly.

Validation is a separate step (:func:`migra.config.validator.validate_config`)
so ``migra validate`` can report every problem instead of the first one.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from migra.config.discovery import discover_services
from migra.config.models import (
    DEFAULT_PARALLEL_LIMIT,
    STRATEGY_PARALLEL,
    STRATEGY_SEQUENTIAL,
    MigraConfig,
    ServiceConfig,
)
from migra.core.errors import ConfigError, MissingConfigError
from migra.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "migra.yaml"


def apply_defaults(config: MigraConfig) -> MigraConfig:
    """Fill unset values in place and return ``config``."""
    execution = config.execution
    if not execution.strategy:
        execution.strategy = STRATEGY_SEQUENTIAL
    if execution.strategy == STRATEGY_PARALLEL:
        if execution.parallel_limit == 0:
            execution.parallel_limit = config.parallel_limit or DEFAULT_PARALLEL_LIMIT
        if config.parallel_limit == 0:
            config.parallel_limit = DEFAULT_PARALLEL_LIMIT

    if not config.logging.level:
        config.logging.level = "info"
    if not config.logging.format:
        config.logging.format = "console"

    if config.tenancy.enabled:
        if not config.tenancy.mode:
            config.tenancy.mode = "database_per_tenant"
        if config.tenancy.max_parallel == 0:
            config.tenancy.max_parallel = DEFAULT_PARALLEL_LIMIT

    return config


def _merge_global_env(service: ServiceConfig, global_env: dict[str, str]) -> None:
    for key, value in global_env.items():
        service.env.setdefault(key, value)


def _resolve(base_dir: Path, value: str) -> str:
    if not value:
        return value
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return str(path)


class ConfigLoader:
    """Load a config file relative to its own directory."""

    def __init__(self, config_path: str | Path = DEFAULT_CONFIG_FILE):
        self.config_path = Path(config_path)

    @property
    def base_dir(self) -> Path:
        return self.config_path.resolve().parent

    def load(self) -> MigraConfig:
        """Read, default and merge the configuration.

        Raises:
            MissingConfigError: The file does not exist.
            ConfigError: The file cannot be read or parsed, or discovery failed.
        """
        if not self.config_path.exists():
            raise MissingConfigError(
                str(self.config_path), f"config file not found: {self.config_path}"
            )
        try:
            raw = self.config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"failed to read config file: {e}", cause=e) from e

        return self.loads(raw)

    def loads(self, raw: str) -> MigraConfig:
        """Parse ``raw`` YAML as if it were the file at ``config_path``."""
        try:
            data = yaml.safe_load(raw) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"failed to parse config file: {e}", cause=e) from e
        if not isinstance(data, dict):
            raise ConfigError("failed to parse config file: top level must be a mapping")

        try:
            config = MigraConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"failed to parse config file: {e}", cause=e) from e

        apply_defaults(config)

        base_dir = self.base_dir
        for service in config.services:
            service.path = _resolve(base_dir, service.path)
            service.working_dir = _resolve(base_dir, service.working_dir) or service.path
            _merge_global_env(service, config.global_env)

        if config.discovery.enabled:
            self._discover(config, base_dir)

        logger.debug(
            "config.loaded",
            path=str(self.config_path),
            services=len(config.services),
            strategy=config.execution.strategy,
        )
        return config

    def _discover(self, config: MigraConfig, base_dir: Path) -> None:
        if not config.discovery.root:
            raise ConfigError("discovery.root is required when discovery is enabled")

        root = _resolve(base_dir, config.discovery.root)
        existing = {svc.name for svc in config.services}
        for found in discover_services(root):
            if found.name in existing:
                continue
            entry = ServiceConfig(
                name=found.name,
                type=found.type,
                path=found.path,
                working_dir=found.working_dir,
            )
            _merge_global_env(entry, config.global_env)
            config.services.append(entry)
            existing.add(found.name)
            logger.info("config.discovery.service", service=found.name, type=found.type)


def load_config(path: str | Path = DEFAULT_CONFIG_FILE) -> MigraConfig:
    return ConfigLoader(path).load()


__all__ = ["DEFAULT_CONFIG_FILE", "ConfigLoader", "apply_defaults", "load_config"]
