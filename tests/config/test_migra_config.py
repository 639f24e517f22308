"""
Tests for migra.yaml loading, defaults, discovery, validation and env settings.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from migra.config.discovery import detect_framework, discover_services
from migra.config.loader import ConfigLoader
from migra.config.settings import MigraSettings
from migra.config.validator import ConfigValidator
from migra.core.errors import ConfigError, InvalidConfigError, MissingConfigError


def write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "migra.yaml"
    path.write_text(body)
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    for name in ("accounts", "billing"):
        (tmp_path / "services" / name).mkdir(parents=True)
    return tmp_path


# =============================================================================
# Loader
# =============================================================================


class TestLoader:
    def test_defaults(self, project):
        path = write_config(
            project,
            "services:\n  - name: accounts\n    type: django\n    path: services/accounts\n",
        )
        config = ConfigLoader(path).load()

        assert config.execution.strategy == "sequential"
        assert config.execution.stop_on_failure is True
        assert config.logging.level == "info"
        assert config.logging.format == "console"
        assert config.tenancy.enabled is False

    def test_relative_paths_resolve_against_config_dir(self, project):
        path = write_config(
            project,
            "services:\n  - name: accounts\n    type: django\n    path: services/accounts\n",
        )
        [service] = ConfigLoader(path).load().to_services()
        expected = str(project.resolve() / "services" / "accounts")
        assert service.path == expected
        assert service.working_dir == expected

    def test_parallel_strategy_gets_default_limit(self, project):
        path = write_config(
            project,
            "services: []\nexecution:\n  strategy: parallel\n",
        )
        config = ConfigLoader(path).load()
        assert config.execution.parallel_limit == 5
        assert config.effective_parallel_limit() == 5

    def test_top_level_parallel_limit_is_used(self, project):
        path = write_config(project, "services: []\nparallel_limit: 3\nexecution:\n  strategy: parallel\n")
        assert ConfigLoader(path).load().execution.parallel_limit == 3

    def test_tenancy_defaults(self, project):
        path = write_config(project, "services: []\ntenancy:\n  enabled: true\n  tenant_source: env\n")
        tenancy = ConfigLoader(path).load().tenancy
        assert tenancy.mode == "database_per_tenant"
        assert tenancy.max_parallel == 5
        assert tenancy.stop_on_failure is False

    def test_global_env_does_not_override_service_env(self, project):
        path = write_config(
            project,
            """\
services:
  - name: accounts
    type: django
    path: services/accounts
    env: {APP_ENV: staging}
global_env:
  APP_ENV: production
  LOG_LEVEL: info
""",
        )
        [service] = ConfigLoader(path).load().to_services()
        assert service.env == {"APP_ENV": "staging", "LOG_LEVEL": "info"}

    def test_null_sections_use_defaults(self, project):
        path = write_config(project, "services:\nexecution:\n  stop_on_failure:\nlogging:\n")
        config = ConfigLoader(path).load()
        assert config.services == []
        assert config.execution.stop_on_failure is True
        assert config.logging.level == "info"

    def test_missing_file(self, tmp_path):
        with pytest.raises(MissingConfigError, match="config file not found"):
            ConfigLoader(tmp_path / "absent.yaml").load()

    @pytest.mark.parametrize("body", ["services: [unclosed", "- just\n- a list\n", "parallel_limit: lots\n"])
    def test_unparseable(self, tmp_path, body):
        with pytest.raises(ConfigError, match="failed to parse config file"):
            ConfigLoader(write_config(tmp_path, body)).load()


# =============================================================================
# Discovery
# =============================================================================


class TestDiscovery:
    @pytest.fixture
    def apps(self, tmp_path: Path) -> Path:
        root = tmp_path / "apps"
        (root / "api").mkdir(parents=True)
        (root / "api" / "manage.py").write_text("")
        (root / "web").mkdir()
        (root / "web" / "artisan").write_text("")
        (root / "db" / "prisma").mkdir(parents=True)
        (root / "db" / "prisma" / "schema.prisma").write_text("")
        (root / "node_modules" / "pkg").mkdir(parents=True)
        (root / "node_modules" / "pkg" / "manage.py").write_text("")
        (root / ".cache" / "old").mkdir(parents=True)
        (root / ".cache" / "old" / "artisan").write_text("")
        (root / "api" / "nested").mkdir()
        (root / "api" / "nested" / "artisan").write_text("")
        return root

    def test_detect(self, apps):
        assert detect_framework(apps / "api") == "django"
        assert detect_framework(apps / "web") == "laravel"
        assert detect_framework(apps / "db") == "prisma"
        assert detect_framework(apps) is None

    def test_discover(self, apps):
        found = discover_services(apps)
        assert [(s.name, s.type) for s in found] == [("api", "django"), ("db", "prisma"), ("web", "laravel")]

    def test_discover_missing_root(self, tmp_path):
        with pytest.raises(ConfigError):
            discover_services(tmp_path / "missing")

    def test_loader_merges_discovered_services(self, apps):
        path = write_config(
            apps.parent,
            """\
services:
  - name: api
    type: django
    path: apps/api
    env: {ROLE: explicit}
discovery:
  enabled: true
  root: apps
global_env: {REGION: eu}
""",
        )
        services = ConfigLoader(path).load().to_services()
        assert [s.name for s in services] == ["api", "db", "web"]
        assert services[0].env == {"ROLE": "explicit", "REGION": "eu"}
        assert services[2].env == {"REGION": "eu"}

    def test_discovery_requires_root(self, tmp_path):
        path = write_config(tmp_path, "discovery:\n  enabled: true\n")
        with pytest.raises(ConfigError, match="discovery.root is required"):
            ConfigLoader(path).load()


# =============================================================================
# Validator
# =============================================================================


class TestValidator:
    def test_valid(self, project):
        path = write_config(
            project,
            "services:\n  - name: accounts\n    type: django\n    path: services/accounts\n",
        )
        loader = ConfigLoader(path)
        ConfigValidator(loader.load(), loader.base_dir).validate()

    def test_collects_every_problem(self, project):
        path = write_config(
            project,
            """\
services:
  - name: accounts
    type: rails
    path: services/accounts
  - name: accounts
    type: django
    path: services/missing
  - type: laravel
execution:
  strategy: random
tenancy:
  enabled: true
  tenant_source: ldap
logging:
  level: loud
""",
        )
        loader = ConfigLoader(path)
        validator = ConfigValidator(loader.load(), loader.base_dir)

        with pytest.raises(InvalidConfigError) as excinfo:
            validator.validate()

        errors = excinfo.value.errors
        assert errors == validator.errors
        assert any("unsupported type 'rails'" in e for e in errors)
        assert any("duplicate service name 'accounts'" in e for e in errors)
        assert any("path does not exist" in e for e in errors)
        assert "services[2]: name is required" in errors
        assert any("services[2]: path is required" in e for e in errors)
        assert any(e.startswith("execution.strategy must be") for e in errors)
        assert any(e.startswith("tenancy.tenant_source must be") for e in errors)
        assert any(e.startswith("logging.level must be") for e in errors)

    def test_requires_services_or_discovery(self, tmp_path):
        path = write_config(tmp_path, "services: []\n")
        loader = ConfigLoader(path)
        with pytest.raises(InvalidConfigError, match="at least one service"):
            ConfigValidator(loader.load(), loader.base_dir).validate()

    def test_parallel_limit_ceiling(self, project):
        path = write_config(
            project,
            "services:\n  - {name: accounts, type: django, path: services/accounts}\n"
            "execution: {strategy: parallel, parallel_limit: 500}\n",
        )
        loader = ConfigLoader(path)
        with pytest.raises(InvalidConfigError, match="should not exceed 100"):
            ConfigValidator(loader.load(), loader.base_dir).validate()


# =============================================================================
# Environment settings
# =============================================================================


class TestSettings:
    def test_defaults(self, monkeypatch):
        for var in ("MIGRA_TENANTS_FILE", "MIGRA_WORK_DIR", "MIGRA_TENANTS_COMMAND", "MIGRA_COMMAND_TIMEOUT"):
            monkeypatch.delenv(var, raising=False)
        settings = MigraSettings(_env_file=None)
        assert settings.tenants_env_var == "MIGRA_TENANTS"
        assert settings.tenants_file == Path("tenants.json")
        assert settings.work_dir is None
        assert settings.command_timeout is None

    def test_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MIGRA_TENANTS_FILE", str(tmp_path / "t.yaml"))
        monkeypatch.setenv("MIGRA_COMMAND_TIMEOUT", "90")
        settings = MigraSettings(_env_file=None)
        assert settings.tenants_file == tmp_path / "t.yaml"
        assert settings.command_timeout == 90.0
