"""Generative provider configuration.

Supports multiple providers through pydantic-ai:
- Anthropic (Claude)
- OpenAI (GPT) and OpenAI-compatible endpoints
- Ollama (local, OpenAI-compatible)
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.providers.openai import OpenAIProvider

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("anthropic", "openai", "ollama")

DEFAULT_OLLAMA_URL = "http://localhost:11434/v1"


def _expand_env(value: Optional[str]) -> Optional[str]:
    """Resolve ``${VAR}`` references to environment values."""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return os.environ.get(value[2:-1])
    return value


@dataclass
class ProviderConfig:
    """Configuration for the generative provider."""

    provider: str = "anthropic"
    model: str = "claude-haiku-4-5-20251001"
    api_key: Optional[str] = None
    max_tokens: int = 4096
    temperature: float = 0.3
    analysis_temperature: float = 0.2
    analysis_max_tokens: int = 2000
    answer_max_tokens: int = 2048
    base_url: Optional[str] = None
    request_timeout: float = 25.0
    extra_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.provider = self.provider.lower()
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported provider: {self.provider}. "
                f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
            )
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

    @classmethod
    def from_kwargs(cls, **kwargs) -> "ProviderConfig":
        """Create config from keyword arguments, ignoring unknown keys."""
        known = {f for f in cls.__dataclass_fields__}
        values = {k: v for k, v in kwargs.items() if k in known and v is not None}
        if "api_key" in values:
            values["api_key"] = _expand_env(values["api_key"])
        for name in ("max_tokens", "analysis_max_tokens", "answer_max_tokens"):
            if name in values:
                values[name] = int(values[name])
        for name in ("temperature", "analysis_temperature", "request_timeout"):
            if name in values:
                values[name] = float(values[name])
        return cls(**values)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "ProviderConfig":
        """Load configuration from a YAML file.

        Top-level keys: provider, model, api_key, request_timeout. A section
        named after the provider may set max_tokens, temperature, base_url.
        """
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        provider = str(data.get("provider", cls.provider)).lower()
        provider_settings = data.get(provider) or {}
        merged = {k: v for k, v in data.items() if not isinstance(v, dict)}
        merged.update(provider_settings)
        merged["provider"] = provider
        config = cls.from_kwargs(**merged)
        config.extra_options = dict(provider_settings)
        return config

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ProviderConfig":
        """Load ``POLISH_*`` variables, reading a ``.env`` file first if present."""
        load_dotenv(env_file)
        return cls.from_kwargs(
            provider=os.environ.get("POLISH_PROVIDER"),
            model=os.environ.get("POLISH_MODEL"),
            api_key=os.environ.get("POLISH_API_KEY"),
            max_tokens=os.environ.get("POLISH_MAX_TOKENS"),
            temperature=os.environ.get("POLISH_TEMPERATURE"),
            base_url=os.environ.get("POLISH_BASE_URL"),
            request_timeout=os.environ.get("POLISH_REQUEST_TIMEOUT"),
        )


def get_model_instance(config: ProviderConfig, credential: Optional[str] = None):
    """Build the pydantic-ai model for the configured provider.

    Raises:
        ValueError: If the provider is not supported.
    """
    api_key = credential or config.api_key
    provider = config.provider.lower()

    if provider == "anthropic":
        return AnthropicModel(config.model, provider=AnthropicProvider(api_key=api_key))

    if provider == "openai":
        openai_provider = OpenAIProvider(api_key=api_key, base_url=config.base_url)
        return OpenAIChatModel(config.model, provider=openai_provider)

    if provider == "ollama":
        ollama_provider = OpenAIProvider(
            api_key=api_key or "ollama",
            base_url=config.base_url or DEFAULT_OLLAMA_URL,
        )
        return OpenAIChatModel(config.model, provider=ollama_provider)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
    )
