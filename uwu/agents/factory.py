"""Command provider factory - creates the configured provider at startup."""
from __future__ import annotations

import logging
from typing import Callable

from config import AppConfig
from uwu.agents.base import CommandProvider, ConfigurationError

logger = logging.getLogger(__name__)


def _require_key(value: str, provider: str, env_var: str) -> str:
    if not value:
        raise ConfigurationError(
            f"No API key for {provider}. Set {env_var}, UWU_{env_var}, "
            f"or write it to ~/.uwu/{provider}.key."
        )
    return value


def _gemini(cfg: AppConfig) -> CommandProvider:
    from uwu.agents.gemini_provider import GeminiProvider
    key = _require_key(cfg.gemini_api_key, "gemini", "GEMINI_API_KEY")
    return GeminiProvider(api_key=key, model=cfg.gemini_model)


def _openai(cfg: AppConfig) -> CommandProvider:
    from uwu.agents.openai_provider import OpenAIProvider
    key = _require_key(cfg.openai_api_key, "openai", "OPENAI_API_KEY")
    return OpenAIProvider(api_key=key, model=cfg.openai_model)


def _anthropic(cfg: AppConfig) -> CommandProvider:
    from uwu.agents.claude_provider import ClaudeProvider
    key = _require_key(cfg.anthropic_api_key, "anthropic", "ANTHROPIC_API_KEY")
    return ClaudeProvider(api_key=key, model=cfg.anthropic_model)


def _ollama(cfg: AppConfig) -> CommandProvider:
    from uwu.agents.ollama_provider import OllamaProvider
    return OllamaProvider(host=cfg.ollama_host, model=cfg.ollama_model)


def _bedrock(cfg: AppConfig) -> CommandProvider:
    from uwu.agents.bedrock_provider import BedrockProvider
    return BedrockProvider(
        model=cfg.bedrock_model,
        region=cfg.bedrock_region,
        inference_profile=cfg.bedrock_inference_profile,
    )


_BUILDERS: dict[str, Callable[[AppConfig], CommandProvider]] = {
    "gemini": _gemini,
    "openai": _openai,
    "anthropic": _anthropic,
    "claude": _anthropic,
    "ollama": _ollama,
    "bedrock": _bedrock,
}


def available_providers() -> list[str]:
    """Provider names accepted by :func:`create_provider`."""
    return sorted(_BUILDERS)


def create_provider(cfg: AppConfig) -> CommandProvider:
    """Instantiate and return the command provider specified in config.

    Raises:
        ConfigurationError: If the provider name is unrecognised, its API key
            is missing, or the Bedrock model is unsupported.
    """
    provider = cfg.provider.strip().lower()
    logger.info("Creating command provider: %s", provider)

    builder = _BUILDERS.get(provider)
    if builder is None:
        raise ConfigurationError(
            f"Unknown provider {provider!r}. "
            f"Choose one of: {', '.join(available_providers())}."
        )
    return builder(cfg)
