"""Tests for configuration and target row files."""

import pytest

from synth_db.config.settings import FillerConfig, get_config, set_config
from synth_db.config.targets import load_target_rows
from synth_db.errors import ConfigurationError

ENV_VARS = [
    "SYNTH_DB_PROVIDER", "SYNTH_DB_URL", "SYNTH_DB_MODEL", "OPENAI_API_KEY",
    "SYNTH_DB_REQUEST_TIMEOUT", "DATABRICKS_HOST", "DATABRICKS_TOKEN",
    "SYNTH_DB_DATABASE_URL", "SYNTH_DB_DIALECT", "SYNTH_DB_EXAMPLES_PER_TABLE",
    "SYNTH_DB_TARGET_ROWS", "SYNTH_DB_MAX_FAILURES",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch
    set_config(None)


class TestFillerConfig:
    """Tests for FillerConfig."""

    def test_defaults(self, clean_env):
        config = FillerConfig.from_env()
        assert config.provider == "ollama"
        assert config.resolved_url == "http://localhost:11434/api/chat"
        assert config.resolved_model == "llama3.1"
        assert config.database_url == "sqlite://"
        assert config.dialect == "mysql"
        assert config.examples_per_table == 2
        assert config.target_row_number == 5
        assert config.request_timeout == 60.0
        assert config.max_consecutive_failures is None

    def test_provider_defaults_follow_provider(self, clean_env):
        config = FillerConfig(provider="openai")
        assert config.resolved_url == "https://api.openai.com/v1"
        assert config.resolved_model == "gpt-4o-mini"

    def test_explicit_values_win_over_defaults(self, clean_env):
        config = FillerConfig(provider="ollama", url="http://gpu-box:11434/api/chat", model="mistral")
        assert config.resolved_url == "http://gpu-box:11434/api/chat"
        assert config.resolved_model == "mistral"

    def test_from_env(self, clean_env):
        clean_env.setenv("SYNTH_DB_PROVIDER", "OpenAI")
        clean_env.setenv("OPENAI_API_KEY", "sk-test")
        clean_env.setenv("SYNTH_DB_TARGET_ROWS", "12")
        clean_env.setenv("SYNTH_DB_MAX_FAILURES", "7")
        clean_env.setenv("SYNTH_DB_REQUEST_TIMEOUT", "2.5")
        clean_env.setenv("SYNTH_DB_DATABASE_URL", "sqlite:///seed.db")

        config = FillerConfig.from_env()
        assert config.provider == "openai"
        assert config.openai_api_key == "sk-test"
        assert config.target_row_number == 12
        assert config.max_consecutive_failures == 7
        assert config.request_timeout == 2.5
        assert config.database_url == "sqlite:///seed.db"

    def test_invalid_number_raises(self, clean_env):
        clean_env.setenv("SYNTH_DB_TARGET_ROWS", "many")
        with pytest.raises(ConfigurationError, match="SYNTH_DB_TARGET_ROWS"):
            FillerConfig.from_env()

    def test_singleton(self, clean_env):
        set_config(None)
        assert get_config() is get_config()
        custom = FillerConfig(provider="databricks")
        set_config(custom)
        assert get_config() is custom


class TestLoadTargetRows:
    """Tests for load_target_rows."""

    def test_yaml_mapping(self, tmp_path):
        path = tmp_path / "targets.yaml"
        path.write_text("department: 5\nemployee: 10\n", encoding="utf-8")
        assert load_target_rows(path) == {"department": 5, "employee": 10}

    def test_json_mapping(self, tmp_path):
        path = tmp_path / "targets.json"
        path.write_text('{"department": 5, "employee": "10"}', encoding="utf-8")
        assert load_target_rows(path) == {"department": 5, "employee": 10}

    def test_properties(self, tmp_path):
        path = tmp_path / "targets.properties"
        path.write_text("# rows per table\ndepartment=5\n\nemployee : 10\n", encoding="utf-8")
        assert load_target_rows(path) == {"department": 5, "employee": 10}

    def test_non_integer_raises(self, tmp_path):
        path = tmp_path / "targets.yaml"
        path.write_text("department: lots\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="department"):
            load_target_rows(path)

    def test_negative_raises(self, tmp_path):
        path = tmp_path / "targets.properties"
        path.write_text("department=-1\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_target_rows(path)

    def test_not_a_mapping_raises(self, tmp_path):
        path = tmp_path / "targets.yaml"
        path.write_text("- department\n- employee\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_target_rows(path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_target_rows(tmp_path / "missing.yaml")
