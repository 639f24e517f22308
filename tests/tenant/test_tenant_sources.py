"""
Tests for tenant sources (env, file, command).
"""

from __future__ import annotations

import json
import sys

import pytest

from conftest import StaticTenantSource
from migra.core.errors import ConfigError, TenantSourceError
from migra.tenant.sources import (
    CommandTenantSource,
    EnvTenantSource,
    FileTenantSource,
    FilteredTenantSource,
    build_tenant_source,
    parse_tenant_list,
)


class TestParseTenantList:
    def test_valid(self):
        tenants = parse_tenant_list([{"id": "acme", "connection": {"DATABASE_URL": "x"}}, {"id": "b"}], "test")
        assert [t.id for t in tenants] == ["acme", "b"]
        assert tenants[1].connection == {}

    @pytest.mark.parametrize("data", [None, []])
    def test_empty(self, data):
        with pytest.raises(TenantSourceError, match="no tenants found"):
            parse_tenant_list(data, "test")

    def test_not_a_list(self):
        with pytest.raises(TenantSourceError, match="must be a list"):
            parse_tenant_list({"id": "acme"}, "test")

    def test_missing_id(self):
        with pytest.raises(TenantSourceError, match="tenant at index 1 has no ID"):
            parse_tenant_list([{"id": "acme"}, {"connection": {}}], "test")

    def test_duplicate_id(self):
        with pytest.raises(TenantSourceError, match="duplicate"):
            parse_tenant_list([{"id": "acme"}, {"id": "acme"}], "test")


class TestEnvTenantSource:
    def test_ids_and_urls(self, monkeypatch):
        monkeypatch.setenv("MIGRA_TENANTS", "acme:postgres://db/acme, globex ,")
        tenants = EnvTenantSource().load_tenants()
        assert [t.id for t in tenants] == ["acme", "globex"]
        assert tenants[0].connection == {"DATABASE_URL": "postgres://db/acme"}
        assert tenants[1].connection == {}

    def test_unset(self, monkeypatch):
        monkeypatch.delenv("MIGRA_TENANTS", raising=False)
        with pytest.raises(TenantSourceError, match="MIGRA_TENANTS is not set"):
            EnvTenantSource().load_tenants()

    def test_custom_variable(self, monkeypatch):
        monkeypatch.setenv("MY_TENANTS", "one")
        assert EnvTenantSource("MY_TENANTS").load_tenants()[0].id == "one"


class TestFileTenantSource:
    def test_json(self, tmp_path):
        path = tmp_path / "tenants.json"
        path.write_text(json.dumps([{"id": "acme", "connection": {"DATABASE_URL": "sqlite://"}}]))
        assert FileTenantSource(path).load_tenants()[0].connection["DATABASE_URL"] == "sqlite://"

    def test_yaml(self, tmp_path):
        path = tmp_path / "tenants.yaml"
        path.write_text("- id: acme\n  connection:\n    DATABASE_URL: sqlite://\n- id: globex\n")
        assert [t.id for t in FileTenantSource(path).load_tenants()] == ["acme", "globex"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(TenantSourceError, match="failed to read tenants file"):
            FileTenantSource(tmp_path / "nope.json").load_tenants()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "tenants.json"
        path.write_text("[]")
        with pytest.raises(TenantSourceError, match="no tenants found"):
            FileTenantSource(path).load_tenants()


class TestCommandTenantSource:
    def test_reads_json_stdout(self):
        script = "import json; print(json.dumps([{'id': 'acme'}, {'id': 'globex'}]))"
        source = CommandTenantSource([sys.executable, "-c", script])
        assert [t.id for t in source.load_tenants()] == ["acme", "globex"]

    def test_non_zero_exit(self):
        source = CommandTenantSource([sys.executable, "-c", "import sys; sys.exit(4)"])
        with pytest.raises(TenantSourceError, match="status 4"):
            source.load_tenants()

    def test_bad_json(self):
        source = CommandTenantSource([sys.executable, "-c", "print('not json')"])
        with pytest.raises(TenantSourceError, match="failed to parse command output"):
            source.load_tenants()

    def test_timeout(self):
        source = CommandTenantSource([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)
        with pytest.raises(TenantSourceError, match="timed out"):
            source.load_tenants()

    def test_string_command_is_split(self):
        assert CommandTenantSource("tenants-cli list --json").command == ["tenants-cli", "list", "--json"]

    def test_empty_command(self):
        with pytest.raises(ConfigError):
            CommandTenantSource("")


class TestFilteredAndFactory:
    def test_filter_keeps_source_order(self):
        source = FilteredTenantSource(StaticTenantSource(["a", "b", "c"]), ["c", "a"])
        assert [t.id for t in source.load_tenants()] == ["a", "c"]

    def test_filter_unknown_tenant(self):
        source = FilteredTenantSource(StaticTenantSource(["a"]), ["zzz"])
        with pytest.raises(TenantSourceError, match="unknown tenant"):
            source.load_tenants()

    def test_build(self, tmp_path):
        assert isinstance(build_tenant_source("env"), EnvTenantSource)
        assert isinstance(build_tenant_source("file", file_path=tmp_path / "t.json"), FileTenantSource)
        assert isinstance(build_tenant_source("command", command="echo []"), CommandTenantSource)

    def test_build_errors(self):
        with pytest.raises(ConfigError):
            build_tenant_source("command")
        with pytest.raises(ConfigError):
            build_tenant_source("ldap")
