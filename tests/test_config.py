"""Tests for configuration loading."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from queryartifacts.config import (
    Config,
    HintJoinMethod,
    get_config,
    load_config_from_env,
    load_config_from_file,
)
from queryartifacts.exceptions import ConfigurationError

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Environment with every QUERYARTIFACTS_ variable removed."""
    for key in list(os.environ):
        if key.startswith("QUERYARTIFACTS_"):
            monkeypatch.delenv(key)
    return monkeypatch


class TestDefaults:

    def test_defaults(self) -> None:
        config = Config()

        assert config.default_schema == "PUBLIC"
        assert config.max_identifier_length == 30
        assert config.hint_join_method is HintJoinMethod.USE_NL
        assert config.metadata_timeout_seconds == 5.0
        assert config.connections == {}


class TestEnvironmentVariables:

    def test_values(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("QUERYARTIFACTS_DEFAULT_SCHEMA", "sales")
        clean_env.setenv("QUERYARTIFACTS_METADATA_TIMEOUT_SECONDS", "2.5")
        clean_env.setenv("QUERYARTIFACTS_MAX_IDENTIFIER_LENGTH", "128")
        clean_env.setenv("QUERYARTIFACTS_HINT_JOIN_METHOD", "use_hash")

        config = load_config_from_env()

        assert config.default_schema == "SALES"
        assert config.metadata_timeout_seconds == 2.5
        assert config.max_identifier_length == 128
        assert config.hint_join_method is HintJoinMethod.USE_HASH

    def test_bad_numbers_fall_back(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("QUERYARTIFACTS_MAX_TABLES", "lots")
        clean_env.setenv("QUERYARTIFACTS_METADATA_TIMEOUT_SECONDS", "soon")

        config = load_config_from_env()

        assert config.max_tables == 200
        assert config.metadata_timeout_seconds == 5.0

    def test_unknown_join_method_is_ignored(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("QUERYARTIFACTS_HINT_JOIN_METHOD", "USE_CARTESIAN")

        assert load_config_from_env().hint_join_method is HintJoinMethod.USE_NL

    def test_connection_profiles(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("QUERYARTIFACTS_CONNECTION_PROD_DSN", "dbhost:1521/ORCLPDB1")
        clean_env.setenv("QUERYARTIFACTS_CONNECTION_PROD_USER", "tuning_ro")
        clean_env.setenv("QUERYARTIFACTS_CONNECTION_PROD_PASSWORD", "secret")
        clean_env.setenv("QUERYARTIFACTS_CONNECTION_DW_EU_DSN", "dw/EU")
        clean_env.setenv("QUERYARTIFACTS_CONNECTION_DW_EU_USER", "reader")
        clean_env.setenv("QUERYARTIFACTS_CONNECTION_BROKEN_DSN", "nowhere")

        config = load_config_from_env()

        assert set(config.connections) == {"prod", "dw_eu"}
        prod = config.get_connection("PROD")
        assert (prod.user, prod.password, prod.dsn) == ("tuning_ro", "secret", "dbhost:1521/ORCLPDB1")
        assert config.get_connection("dw_eu").password == ""

    def test_unknown_connection(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            Config().get_connection("prod")

        assert exc_info.value.config_key == "connections.prod"

    def test_password_not_in_repr(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("QUERYARTIFACTS_CONNECTION_PROD_DSN", "db")
        clean_env.setenv("QUERYARTIFACTS_CONNECTION_PROD_USER", "u")
        clean_env.setenv("QUERYARTIFACTS_CONNECTION_PROD_PASSWORD", "hunter2")

        assert "hunter2" not in repr(load_config_from_env().get_connection("prod"))


class TestConfigFile:

    def test_yaml_fixture(self) -> None:
        config = load_config_from_file(FIXTURES / "config.yaml")

        assert config.default_schema == "SALES"
        assert config.metadata_timeout_seconds == 2.5
        assert config.hint_join_method is HintJoinMethod.USE_HASH
        assert config.get_connection("prod").user == "tuning_ro"

    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text('{"default_schema": "HR", "max_tables": 10}')

        config = load_config_from_file(path)

        assert config.default_schema == "HR"
        assert config.max_tables == 10

    def test_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("metadata_timeout_seconds: -1\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config_from_file(path)

        assert exc_info.value.config_key == "metadata_timeout_seconds"

    def test_missing_file_uses_environment(self, clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        clean_env.setenv("QUERYARTIFACTS_DEFAULT_SCHEMA", "ENVSCHEMA")

        assert load_config_from_file(tmp_path / "nope.yaml").default_schema == "ENVSCHEMA"

    def test_get_config_reads_config_file_variable(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("QUERYARTIFACTS_CONFIG_FILE", str(FIXTURES / "config.yaml"))

        assert get_config().default_schema == "SALES"
        assert get_config() is get_config()

    def test_config_hash_ignores_credentials(self) -> None:
        base = Config()
        with_connection = load_config_from_file(FIXTURES / "config.yaml")

        assert len(base.config_hash()) == 16
        assert base.config_hash() == Config().config_hash()
        assert with_connection.config_hash() != base.config_hash()
        assert with_connection.config_hash() == with_connection.model_copy(
            update={"connections": {}}
        ).config_hash()
