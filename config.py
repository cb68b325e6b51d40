"""Central configuration loaded from key files, a config file and environment.

Precedence, lowest first:
    1. dataclass defaults
    2. API key files in ~/.uwu (gemini.key, openai.key, anthropic.key)
    3. vendor environment variables (GEMINI_API_KEY, OLLAMA_HOST, ...)
    4. the plain config file (~/.uwu/config, one ``key value`` per line)
    5. UWU_* environment variables (e.g. UWU_PROVIDER, UWU_OLLAMA_MODEL)
    6. command-line flags, applied by uwu.main
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

from uwu.agents.base import ConfigurationError

logger = logging.getLogger(__name__)

STATE_DIR = Path.home() / ".uwu"
DEFAULT_CONFIG_FILE = STATE_DIR / "config"
ENV_PREFIX = "UWU_"


def _read_key(filename: str, env_var: str) -> str:
    """Vendor env var if set, else the key file in STATE_DIR."""
    value = os.environ.get(env_var, "").strip()
    if value:
        return value
    path = STATE_DIR / filename
    if path.exists():
        return path.read_text().strip()
    return ""


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in {"0", "false", "off", "no", ""}


@dataclass
class AppConfig:
    # LLM provider selection: "gemini" | "openai" | "anthropic" | "ollama" | "bedrock"
    provider: str = "gemini"

    # Gemini
    gemini_api_key: str = field(default_factory=lambda: _read_key("gemini.key", "GEMINI_API_KEY"))
    gemini_model: str = "gemini-2.5-flash"

    # OpenAI
    openai_api_key: str = field(default_factory=lambda: _read_key("openai.key", "OPENAI_API_KEY"))
    openai_model: str = "gpt-4o-mini"

    # Anthropic
    anthropic_api_key: str = field(default_factory=lambda: _read_key("anthropic.key", "ANTHROPIC_API_KEY"))
    anthropic_model: str = "claude-3-5-haiku-latest"

    # Ollama (local server, no key)
    ollama_host: str = field(default_factory=lambda: os.environ.get("OLLAMA_HOST", "http://localhost:11434"))
    ollama_model: str = "llama3.2"

    # Bedrock (credentials come from the standard AWS chain)
    bedrock_model: str = "amazon.nova-lite-v1:0"
    bedrock_region: str = field(default_factory=lambda: os.environ.get("AWS_REGION", "us-east-1"))
    # Optional inference profile ARN/id; replaces the model id on the wire
    bedrock_inference_profile: str = ""

    # Allow ctrl+r / ctrl+e to regenerate from the review screen
    allow_regenerate: bool = True

    # Log file; the terminal UI owns stdout/stderr
    log_file: str = str(STATE_DIR / "uwu.log")
    debug: bool = False

    def set(self, key: str, value: str) -> None:
        """Assign a string ``value`` to field ``key``, converting booleans."""
        names = {f.name: f for f in fields(self)}
        name = key.strip().lower().replace("-", "_")
        if name not in names:
            raise ConfigurationError(f"Unknown configuration key {key!r}")
        if names[name].type in ("bool", bool):
            setattr(self, name, _parse_bool(value))
        else:
            setattr(self, name, value.strip())


def load_config(path: Path | None = None, environ: dict[str, str] | None = None) -> AppConfig:
    """Build an :class:`AppConfig` from defaults, ``path`` and ``environ``.

    A missing config file is not an error; an unknown key inside one is.
    """
    environ = os.environ if environ is None else environ
    cfg = AppConfig()

    config_path = path or DEFAULT_CONFIG_FILE
    if config_path.exists():
        logger.info("Reading config file %s", config_path)
        for lineno, raw in enumerate(config_path.read_text().splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            key, _, value = line.partition(" ")
            try:
                cfg.set(key, value)
            except ConfigurationError as exc:
                raise ConfigurationError(f"{config_path}:{lineno}: {exc}") from exc
    elif path is not None:
        raise ConfigurationError(f"Config file {path} does not exist")

    for f in fields(cfg):
        env_name = ENV_PREFIX + f.name.upper()
        if env_name in environ:
            cfg.set(f.name, environ[env_name])

    return cfg
