"""Tests for engine configuration loading and logging setup."""

import logging

import pytest

from prompt_workflows import configure_logging
from prompt_workflows.engine.exceptions import ConfigurationError
from prompt_workflows.engine.llm_config import (
    ConfigLoader,
    EngineConfig,
    ModelPricing,
    ProviderConfig,
)

CONFIG_YAML = """
version: "1.0"
providers:
  local:
    type: openai
    api_url: http://localhost:11434/v1
    timeout: 30
    max_retries: 1
  claude:
    type: anthropic
    api_key_env: MY_ANTHROPIC_KEY
default_provider: local
model_routes:
  "claude-": claude
  "claude-instant": local
pricing:
  llama3:
    input_per_1k: 0.0
    output_per_1k: 0.0
history_limit: 20
"""


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep a developer's ~/.prompt-workflows/config.yml out of the tests."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("PROMPT_WORKFLOWS_CONFIG", raising=False)


class TestConfigLoader:
    def test_defaults_when_no_file(self):
        config = ConfigLoader().load_config()

        assert config == EngineConfig()
        assert config.default_provider == "openai"
        assert set(config.providers) == {"openai", "anthropic"}

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "engine.yml"
        path.write_text(CONFIG_YAML, encoding="utf-8")

        config = ConfigLoader(path).load_config()

        assert config.default_provider == "local"
        assert config.providers["local"].timeout == 30
        assert config.providers["local"].max_retries == 1
        assert config.history_limit == 20

    def test_missing_explicit_path_falls_back_to_defaults(self, tmp_path):
        config = ConfigLoader(tmp_path / "missing.yml").load_config()
        assert config == EngineConfig()

    def test_environment_variable(self, tmp_path, monkeypatch):
        path = tmp_path / "engine.yml"
        path.write_text(CONFIG_YAML, encoding="utf-8")
        monkeypatch.setenv("PROMPT_WORKFLOWS_CONFIG", str(path))

        assert ConfigLoader().get_config_path() == path
        assert ConfigLoader().load_config().default_provider == "local"

    def test_standard_location(self, tmp_path):
        standard = tmp_path / "home" / ".prompt-workflows" / "config.yml"
        standard.parent.mkdir(parents=True)
        standard.write_text("history_limit: 5\n", encoding="utf-8")

        assert ConfigLoader().load_config().history_limit == 5

    def test_config_is_cached(self, tmp_path):
        path = tmp_path / "engine.yml"
        path.write_text("history_limit: 5\n", encoding="utf-8")
        loader = ConfigLoader(path)

        first = loader.load_config()
        path.write_text("history_limit: 6\n", encoding="utf-8")

        assert loader.load_config() is first

    @pytest.mark.parametrize(
        "content",
        [
            "providers: [unclosed",
            "- just\n- a list\n",
            "unknown_key: 1\n",
            "default_provider: nowhere\n",
            "model_routes:\n  'gpt-': nowhere\n",
            "providers:\n  openai:\n    type: openai\n    max_retries: 0\n",
        ],
    )
    def test_invalid_config_raises(self, tmp_path, content):
        path = tmp_path / "engine.yml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigurationError):
            ConfigLoader(path).load_config()


class TestEngineConfig:
    def test_provider_for_model_prefers_longest_prefix(self, tmp_path):
        path = tmp_path / "engine.yml"
        path.write_text(CONFIG_YAML, encoding="utf-8")
        config = ConfigLoader(path).load_config()

        assert config.provider_for_model("claude-3-opus") == "claude"
        assert config.provider_for_model("claude-instant-1.2") == "local"
        assert config.provider_for_model("llama3") == "local"

    def test_pricing_exact_then_prefix(self):
        config = EngineConfig()

        assert config.pricing_for_model("gpt-4o") == ModelPricing(
            input_per_1k=0.0025, output_per_1k=0.01
        )
        assert config.pricing_for_model("gpt-4o-mini-2024-07-18").input_per_1k == 0.00015
        assert config.pricing_for_model("unknown-model") is None

    def test_pricing_cost(self):
        pricing = ModelPricing(input_per_1k=0.01, output_per_1k=0.03)
        assert pricing.cost(500, 1000) == pytest.approx(0.035)

    def test_api_key_read_from_environment(self, monkeypatch):
        provider = ProviderConfig(type="openai", api_key_env="SOME_KEY_VAR")
        monkeypatch.setenv("SOME_KEY_VAR", "sk-env")

        assert provider.resolve_api_key() == "sk-env"
        assert ProviderConfig(type="openai").resolve_api_key() is None


class TestConfigureLogging:
    def test_explicit_level(self):
        assert configure_logging("debug") == logging.DEBUG

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("PROMPT_WORKFLOWS_LOG_LEVEL", "warning")
        assert configure_logging() == logging.WARNING

    def test_invalid_level_falls_back_to_info(self, capsys):
        assert configure_logging("chatty") == logging.INFO
        assert "Invalid PROMPT_WORKFLOWS_LOG_LEVEL 'CHATTY'" in capsys.readouterr().err
