"""Unit tests for configuration loading."""

import json
import tomllib

import pytest
import yaml

from breeze.config import (
    BreezeConfig,
    ConfigError,
    find_config_file,
    generate_config_template,
    load_config,
    load_config_file,
    load_config_from_env,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove Breeze environment variables for every test."""
    for name in (
        "BREEZE_NEO4J_URI",
        "BREEZE_NEO4J_USERNAME",
        "BREEZE_NEO4J_PASSWORD",
        "BREEZE_NEO4J_DATABASE",
        "BREEZE_DB_MAX_RETRIES",
        "BREEZE_DETECT_COMMUNITIES",
        "BREEZE_PROJECTION_NAME",
        "BREEZE_LOG_LEVEL",
        "BREEZE_LOG_FORMAT",
        "BREEZE_LOG_FILE",
        "BREEZE_API_HOST",
        "BREEZE_API_PORT",
        "LOG_LEVEL",
        "LOG_FORMAT",
        "LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


class TestBreezeConfig:
    def test_defaults(self):
        config = BreezeConfig()
        assert config.database.uri == "bolt://localhost:7687"
        assert config.communities.projection_name == "breeze-imports"
        assert config.communities.enabled is True
        assert config.api.port == 4000

    def test_from_dict_partial_sections(self):
        config = BreezeConfig.from_dict({"database": {"uri": "bolt://db:7687"}})
        assert config.database.uri == "bolt://db:7687"
        assert config.database.username == "neo4j"

    def test_unknown_key_raises_config_error(self):
        with pytest.raises(ConfigError):
            BreezeConfig.from_dict({"database": {"host": "db"}})

    def test_env_vars_expanded(self, monkeypatch):
        monkeypatch.setenv("TEST_NEO4J_SECRET", "s3cret")
        config = BreezeConfig.from_dict({"database": {"password": "${TEST_NEO4J_SECRET}"}})
        assert config.database.password == "s3cret"

    def test_to_dict_round_trip(self):
        config = BreezeConfig.from_dict({"logging": {"level": "DEBUG"}})
        assert BreezeConfig.from_dict(config.to_dict()) == config


class TestConfigFiles:
    def test_yaml_breezerc(self, tmp_path):
        path = tmp_path / ".breezerc"
        path.write_text("database:\n  database: imports\ncommunities:\n  enabled: false\n")

        data = load_config_file(path)

        assert data == {"database": {"database": "imports"}, "communities": {"enabled": False}}

    def test_json_breezerc(self, tmp_path):
        path = tmp_path / ".breezerc"
        path.write_text(json.dumps({"api": {"port": 5000}}))
        assert load_config_file(path) == {"api": {"port": 5000}}

    def test_toml(self, tmp_path):
        path = tmp_path / "breeze.toml"
        path.write_text('[logging]\nlevel = "WARNING"\n')
        assert load_config_file(path) == {"logging": {"level": "WARNING"}}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / ".breezerc"
        path.write_text("database: [unclosed")
        with pytest.raises(ConfigError):
            load_config_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config_file(tmp_path / "nope.yaml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "config.ini"
        path.write_text("[database]")
        with pytest.raises(ConfigError, match="Unsupported"):
            load_config_file(path)

    def test_find_config_file_searches_parents(self, tmp_path):
        (tmp_path / ".breezerc").write_text("{}")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config_file(nested) == tmp_path.resolve() / ".breezerc"


class TestEnvironment:
    def test_reads_breeze_variables(self, monkeypatch):
        monkeypatch.setenv("BREEZE_NEO4J_URI", "neo4j://graph:7687")
        monkeypatch.setenv("BREEZE_DETECT_COMMUNITIES", "false")
        monkeypatch.setenv("BREEZE_API_PORT", "8080")

        data = load_config_from_env()

        assert data["database"]["uri"] == "neo4j://graph:7687"
        assert data["communities"]["enabled"] is False
        assert data["api"]["port"] == 8080

    def test_invalid_port_ignored(self, monkeypatch):
        monkeypatch.setenv("BREEZE_API_PORT", "eighty")
        assert "api" not in load_config_from_env()

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / ".breezerc"
        path.write_text("database:\n  uri: bolt://file:7687\n  username: reader\n")
        monkeypatch.setenv("BREEZE_NEO4J_URI", "bolt://env:7687")

        config = load_config(config_file=path)

        assert config.database.uri == "bolt://env:7687"
        assert config.database.username == "reader"


class TestTemplates:
    def test_yaml_template_parses(self):
        data = yaml.safe_load(generate_config_template("yaml"))
        assert data["database"]["password"] == "${NEO4J_PASSWORD}"

    def test_json_template_parses(self):
        assert json.loads(generate_config_template("json"))["api"]["port"] == 4000

    def test_toml_template_parses(self):
        data = tomllib.loads(generate_config_template("toml"))
        assert data["communities"]["projection_name"] == "breeze-imports"
        assert "file" not in data["logging"]

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            generate_config_template("ini")
