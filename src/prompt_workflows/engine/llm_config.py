"""
Completion-service configuration.

Configuration file location priority:
1. Explicit path passed to ConfigLoader
2. PROMPT_WORKFLOWS_CONFIG environment variable
3. Standard location: ~/.prompt-workflows/config.yml
4. Built-in defaults (if no config file found)

Example config file:
```yaml
version: "1.0"

providers:
  openai:
    type: openai
    api_key_env: OPENAI_API_KEY
    timeout: 60
    max_retries: 3
    retry_delay: 1.0

  anthropic:
    type: anthropic
    api_key_env: ANTHROPIC_API_KEY
    timeout: 120

default_provider: openai

model_routes:
  "gpt-": openai
  "claude-": anthropic

pricing:
  gpt-4o:
    input_per_1k: 0.0025
    output_per_1k: 0.01
```

API keys never live in the file: ``api_key_env`` names the environment
variable that holds the key.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ===========================================================================
# Configuration Models
# ===========================================================================


class ProviderConfig(BaseModel):
    """Connection settings and retry policy for one provider."""

    type: str = Field(description="Provider type (openai, anthropic)")
    api_url: str | None = Field(
        default=None,
        description="API endpoint URL (optional, uses provider defaults if not specified)",
    )
    api_key_env: str | None = Field(
        default=None,
        description="Environment variable holding the API key",
    )
    timeout: float = Field(default=60.0, gt=0, le=1800, description="Request timeout (s)")
    max_retries: int = Field(
        default=3, ge=1, le=10, description="Attempts per request, including the first"
    )
    retry_delay: float = Field(
        default=1.0, ge=0.0, le=60.0, description="Initial retry delay (exponential backoff)"
    )

    def resolve_api_key(self) -> str | None:
        """Read the API key from the configured environment variable."""
        if not self.api_key_env:
            return None
        return os.getenv(self.api_key_env)


class ModelPricing(BaseModel):
    """USD cost per 1000 tokens."""

    input_per_1k: float = Field(ge=0.0)
    output_per_1k: float = Field(ge=0.0)

    def cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        return (prompt_tokens * self.input_per_1k + completion_tokens * self.output_per_1k) / 1000


def _default_providers() -> dict[str, ProviderConfig]:
    return {
        "openai": ProviderConfig(type="openai", api_key_env="OPENAI_API_KEY"),
        "anthropic": ProviderConfig(
            type="anthropic", api_key_env="ANTHROPIC_API_KEY", timeout=120.0
        ),
    }


def _default_routes() -> dict[str, str]:
    return {"gpt-": "openai", "o1": "openai", "o3": "openai", "claude-": "anthropic"}


def _default_pricing() -> dict[str, ModelPricing]:
    return {
        "gpt-4o-mini": ModelPricing(input_per_1k=0.00015, output_per_1k=0.0006),
        "gpt-4o": ModelPricing(input_per_1k=0.0025, output_per_1k=0.01),
        "gpt-4-turbo": ModelPricing(input_per_1k=0.01, output_per_1k=0.03),
        "gpt-4": ModelPricing(input_per_1k=0.03, output_per_1k=0.06),
        "gpt-3.5-turbo": ModelPricing(input_per_1k=0.0005, output_per_1k=0.0015),
        "claude-3-5-haiku": ModelPricing(input_per_1k=0.0008, output_per_1k=0.004),
        "claude-3-5-sonnet": ModelPricing(input_per_1k=0.003, output_per_1k=0.015),
        "claude-3-opus": ModelPricing(input_per_1k=0.015, output_per_1k=0.075),
    }


class EngineConfig(BaseModel):
    """Root configuration model."""

    version: str = Field(default="1.0")
    providers: dict[str, ProviderConfig] = Field(default_factory=_default_providers)
    default_provider: str = Field(default="openai")
    model_routes: dict[str, str] = Field(
        default_factory=_default_routes,
        description="Model name prefix -> provider name",
    )
    pricing: dict[str, ModelPricing] = Field(default_factory=_default_pricing)
    history_limit: int = Field(default=50, ge=1, le=1000)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_provider_references(self) -> EngineConfig:
        """Routes and default_provider must name configured providers."""
        if self.default_provider not in self.providers:
            raise ValueError(
                f"default_provider '{self.default_provider}' not found in providers. "
                f"Available providers: {', '.join(self.providers)}"
            )
        for prefix, provider in self.model_routes.items():
            if provider not in self.providers:
                raise ValueError(
                    f"Model route '{prefix}' references unknown provider '{provider}'"
                )
        return self

    def provider_for_model(self, model: str) -> str:
        """Pick a provider by the longest matching model prefix."""
        matches = [prefix for prefix in self.model_routes if model.startswith(prefix)]
        if not matches:
            return self.default_provider
        return self.model_routes[max(matches, key=len)]

    def pricing_for_model(self, model: str) -> ModelPricing | None:
        """Pricing for an exact model name, else the longest matching prefix."""
        if model in self.pricing:
            return self.pricing[model]
        matches = [name for name in self.pricing if model.startswith(name)]
        if not matches:
            return None
        return self.pricing[max(matches, key=len)]


# ===========================================================================
# Configuration Loader
# ===========================================================================


class ConfigLoader:
    """
    Loads EngineConfig from YAML, once.

    Usage:
        ```python
        loader = ConfigLoader()
        config = loader.load_config()
        provider = config.provider_for_model("claude-3-5-sonnet-20241022")
        ```
    """

    def __init__(self, config_path: str | Path | None = None):
        self._config: EngineConfig | None = None
        self._explicit_path = Path(config_path) if config_path else None

    def get_config_path(self) -> Path | None:
        """Determine config file path using priority order."""
        if self._explicit_path:
            if self._explicit_path.exists():
                return self._explicit_path
            logger.warning(f"Explicit config path does not exist: {self._explicit_path}")
            return None

        env_path_str = os.getenv("PROMPT_WORKFLOWS_CONFIG")
        if env_path_str:
            env_path = Path(env_path_str).expanduser()
            if env_path.exists():
                return env_path
            logger.warning(f"PROMPT_WORKFLOWS_CONFIG path does not exist: {env_path}")
            return None

        standard_path = Path.home() / ".prompt-workflows" / "config.yml"
        if standard_path.exists():
            return standard_path

        return None

    def load_config(self) -> EngineConfig:
        """
        Load and validate configuration (cached after the first call).

        Raises:
            ConfigurationError: If the file is not valid YAML or fails validation
        """
        if self._config is not None:
            return self._config

        config_path = self.get_config_path()
        if config_path is None:
            logger.info("No config file found. Using built-in defaults.")
            self._config = EngineConfig()
            return self._config

        logger.info(f"Loading config from: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                raw_config = yaml.safe_load(f) or {}

            if not isinstance(raw_config, dict):
                raise ConfigurationError("Config file must contain a YAML dictionary")

            config = EngineConfig(**raw_config)
        except (yaml.YAMLError, ValidationError) as e:
            raise ConfigurationError(f"Failed to load config from {config_path}: {e}")

        logger.info(
            f"Loaded config: {len(config.providers)} providers, "
            f"{len(config.pricing)} priced models"
        )
        self._config = config
        return config


__all__ = ["ProviderConfig", "ModelPricing", "EngineConfig", "ConfigLoader"]
