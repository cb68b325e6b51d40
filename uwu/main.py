"""
uwu - turn a natural-language prompt into a shell command
Run with: uwu [options] [prompt ...]
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from importlib import metadata
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from config import AppConfig, load_config
from uwu.agents.base import CommandProvider, ConfigurationError, GenerationRequest, LLMError
from uwu.agents.factory import available_providers, create_provider
from uwu.session.controller import InteractionController, InteractionState, Session
from uwu.shell import detect_os, detect_shell, run_command
from uwu.tui.surface import ConfirmationSurface

logger = logging.getLogger(__name__)

console = Console(stderr=True)

EXIT_ABORTED = 1
EXIT_CONFIG = 2

# Provider name -> prefix of its AppConfig fields
_FIELD_PREFIX = {
    "gemini": "gemini",
    "openai": "openai",
    "anthropic": "anthropic",
    "claude": "anthropic",
    "ollama": "ollama",
    "bedrock": "bedrock",
}


def _version() -> str:
    try:
        return metadata.version("uwu")
    except metadata.PackageNotFoundError:
        return "dev"


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uwu",
        description="Generate a shell command from a natural-language prompt.",
    )
    parser.add_argument("prompt", nargs="*", help="What the command should do (asked for when omitted)")
    parser.add_argument(
        "--provider",
        choices=available_providers(),
        help="LLM provider (default: gemini, or 'provider' in the config file)",
    )
    parser.add_argument("--model", help="Model for the selected provider")
    parser.add_argument("--api-key", help="API key for gemini / openai / anthropic")
    parser.add_argument("--ollama-host", help="Ollama server URL (default: http://localhost:11434)")
    parser.add_argument("--region", help="AWS region for bedrock")
    parser.add_argument("--inference-profile", help="Bedrock inference profile id used as the model id")
    parser.add_argument("--config", type=Path, metavar="PATH", help="Config file (default: ~/.uwu/config)")
    parser.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Non-interactive: print the generated command and exit without running it",
    )
    parser.add_argument(
        "--no-regenerate",
        action="store_true",
        help="Disable regenerating from the review screen",
    )
    parser.add_argument("--debug", action="store_true", help="Log prompts and responses to the log file")
    parser.add_argument("--version", action="version", version=f"uwu {_version()}")
    return parser


def apply_overrides(cfg: AppConfig, args: argparse.Namespace) -> None:
    """Copy command-line flags onto ``cfg``; flags win over every other source."""
    if args.provider:
        cfg.provider = args.provider
    prefix = _FIELD_PREFIX.get(cfg.provider.strip().lower())

    if args.model:
        if prefix is None:
            raise ConfigurationError(f"--model given for unknown provider {cfg.provider!r}")
        setattr(cfg, f"{prefix}_model", args.model)
    if args.api_key:
        if prefix not in ("gemini", "openai", "anthropic"):
            raise ConfigurationError(f"--api-key is not used by provider {cfg.provider!r}")
        setattr(cfg, f"{prefix}_api_key", args.api_key)
    if args.ollama_host:
        cfg.ollama_host = args.ollama_host
    if args.region:
        cfg.bedrock_region = args.region
    if args.inference_profile:
        cfg.bedrock_inference_profile = args.inference_profile
    if args.no_regenerate:
        cfg.allow_regenerate = False
    if args.debug:
        cfg.debug = True


def configure_logging(cfg: AppConfig) -> None:
    # The terminal UI owns stdout/stderr; log records go to a file only.
    log_path = Path(cfg.log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if cfg.debug else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        handlers=[logging.FileHandler(log_path)],
    )


# ---------------------------------------------------------------------------
# Coroutines
# ---------------------------------------------------------------------------

async def generate_once(provider: CommandProvider, request: GenerationRequest) -> str:
    """Non-interactive mode: one generation, no review, no execution."""
    return await provider.generate_command(request)


async def interact(controller: InteractionController, prompt: str) -> Session:
    """Run the confirmation surface until the session is confirmed or aborted."""
    surface = ConfirmationSurface(controller)
    return await surface.run(prompt)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Wire configuration, provider, state machine and execution together.

    Returns the process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    prompt = " ".join(args.prompt).strip()
    if args.print_only and not prompt:
        parser.error("--print needs a prompt")

    try:
        cfg = load_config(args.config)
        apply_overrides(cfg, args)
        configure_logging(cfg)
        provider = create_provider(cfg)
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        return EXIT_CONFIG

    logger.info("=== uwu %s starting ===", _version())
    logger.info("Command provider: %s", provider.name)

    shell = detect_shell()
    target_os = detect_os()

    if args.print_only:
        request = GenerationRequest(prompt=prompt, shell=shell, target_os=target_os)
        try:
            command = asyncio.run(generate_once(provider, request))
        except LLMError as exc:
            console.print(f"[bold red]Error generating command:[/bold red] {escape(str(exc))}")
            return EXIT_ABORTED
        print(command)
        return 0

    controller = InteractionController(
        provider,
        shell=shell,
        target_os=target_os,
        allow_regenerate=cfg.allow_regenerate,
    )
    try:
        session = asyncio.run(interact(controller, prompt))
    except KeyboardInterrupt:
        session = Session(state=InteractionState.ABORTED)

    if session.state is not InteractionState.CONFIRMED or not session.command:
        if session.error:
            console.print(f"[bold red]Error generating command:[/bold red] {escape(session.error)}")
        console.print("Command execution aborted.")
        return EXIT_ABORTED

    console.print(f"[bold green]$[/bold green] {escape(session.command)}")
    return run_command(session.command, shell)


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
