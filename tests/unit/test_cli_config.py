"""
Tests for hierarchical CLI configuration.
"""

import json
import os

import pytest
import yaml

from cli.config import (
    DEFAULT_CONFIG,
    ConfigurationError,
    ConfigurationManager,
    deep_merge,
    profile_defaults,
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in list(os.environ):
        if key.startswith("MINTGATE_"):
            monkeypatch.delenv(key)


@pytest.fixture
def yaml_config(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(yaml.safe_dump({
        "cli": {"output_format": "json"},
        "collection": {"mint_price": 250},
    }))
    return path


class TestConfigurationManager:

    def test_defaults(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        manager = ConfigurationManager(str(path))

        assert manager.get("cli.output_format") == "table"
        assert manager.get("collection.total_supply_cap") == 10000
        assert manager.get("missing.key", "fallback") == "fallback"
        assert manager.validate() == []

    def test_file_overrides_defaults(self, yaml_config):
        manager = ConfigurationManager(str(yaml_config))

        assert manager.get("cli.output_format") == "json"
        assert manager.get("collection.mint_price") == 250
        assert manager.get("collection.whitelist_price") == 0
        assert manager.get_sources() == ["defaults", f"file:{yaml_config}"]

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"storage": {"backup_count": 9}}))
        assert ConfigurationManager(str(path)).get("storage.backup_count") == 9

    def test_profile(self, yaml_config):
        manager = ConfigurationManager(str(yaml_config), profile="development")
        assert manager.get("storage.backup_count") == 1
        assert manager.get("collection.allow_general_mint") is True
        assert "profile:development" in manager.get_sources()

    def test_environment_wins(self, yaml_config, monkeypatch):
        monkeypatch.setenv("MINTGATE_COLLECTION_MINT_PRICE", "999")
        monkeypatch.setenv("MINTGATE_STORAGE_STATE_FILE", "/tmp/x/state.json")
        monkeypatch.setenv("MINTGATE_CLI_COLOR_OUTPUT", "false")
        manager = ConfigurationManager(str(yaml_config))

        assert manager.get("collection.mint_price") == 999
        assert manager.get("storage.state_file") == "/tmp/x/state.json"
        assert manager.get("cli.color_output") is False
        assert manager.get_sources()[-1] == "environment"

    def test_paths_expanded(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert "~" not in ConfigurationManager(str(path)).get("storage.state_file")

    def test_errors(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigurationManager(str(tmp_path / "missing.yml")).load()

        bad = tmp_path / "bad.yml"
        bad.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            ConfigurationManager(str(bad)).load()

        with pytest.raises(ConfigurationError):
            ConfigurationManager(str(bad), profile="staging").load()

    def test_validate(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(yaml.safe_dump({
            "cli": {"output_format": "xml"},
            "collection": {"mint_price": -1},
        }))
        errors = ConfigurationManager(str(path)).validate()

        assert any("output format" in e for e in errors)
        assert any("mint_price" in e for e in errors)

    def test_whitelist_cap_above_total(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(yaml.safe_dump({"collection": {"total_supply_cap": 5}}))
        errors = ConfigurationManager(str(path)).validate()
        assert errors == ["collection.whitelist_supply_cap cannot exceed collection.total_supply_cap"]

    def test_lock_timeout_must_be_positive(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(yaml.safe_dump({"storage": {"lock_timeout": 0}}))
        manager = ConfigurationManager(str(path))

        assert manager.validate() == ["storage.lock_timeout must be a positive number"]

    def test_set_and_save(self, yaml_config, tmp_path):
        manager = ConfigurationManager(str(yaml_config))
        manager.set("collection.base_uri", "ipfs://x/")
        saved = manager.save(str(tmp_path / "out" / "saved.yml"))

        assert yaml.safe_load(saved.read_text())["collection"]["base_uri"] == "ipfs://x/"

    def test_reset(self, yaml_config):
        manager = ConfigurationManager(str(yaml_config))
        manager.set("cli.output_format", "yaml")
        manager.reset()
        assert manager.get("cli.output_format") == "json"


class TestHelpers:

    def test_deep_merge_does_not_alias(self):
        merged = deep_merge(DEFAULT_CONFIG, {"cli": {"verbose": 3}})
        merged["collection"]["mint_price"] = 12345

        assert merged["cli"]["output_format"] == "table"
        assert DEFAULT_CONFIG["collection"]["mint_price"] == 0

    def test_profile_defaults(self):
        assert profile_defaults()["storage"]["backup_count"] == 5
        assert profile_defaults("production")["storage"]["backup_count"] == 20
        with pytest.raises(ConfigurationError):
            profile_defaults("unknown")
