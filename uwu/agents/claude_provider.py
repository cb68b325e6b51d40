"""Claude (Anthropic) provider using the async messages API."""
from __future__ import annotations

import logging

import anthropic

from uwu.agents.base import (
    AccessDeniedError,
    CommandProvider,
    GenerationRequest,
    NoCommandGenerated,
    TransportError,
)
from uwu.agents.prompt import format_instruction

logger = logging.getLogger(__name__)


class ClaudeProvider(CommandProvider):
    """Anthropic Claude provider using the async client."""

    MODEL = "claude-3-5-haiku-latest"
    MAX_TOKENS = 1000

    def __init__(self, api_key: str = "", model: str = MODEL, client=None) -> None:
        self._model = model
        self._client = client if client is not None else anthropic.AsyncAnthropic(api_key=api_key)

    @property
    def name(self) -> str:
        return f"anthropic/{self._model}"

    async def complete(self, request: GenerationRequest) -> str:
        prompt = format_instruction(request.prompt, request.shell, request.target_os)
        logger.debug("anthropic prompt: %s", prompt)
        try:
            msg = await self._client.messages.create(
                model=self._model,
                max_tokens=self.MAX_TOKENS,
                messages=[{"role": "user", "content": prompt}],
            )
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as exc:
            raise AccessDeniedError(
                f"Anthropic denied access ({exc.status_code}). "
                "Check ANTHROPIC_API_KEY or ~/.uwu/anthropic.key."
            ) from exc
        except anthropic.APIError as exc:
            raise TransportError(f"Claude API error: {exc}") from exc
        except Exception as exc:
            raise TransportError(f"Unexpected Claude error: {exc}") from exc

        if msg.content and msg.content[0].type == "text":
            logger.debug("anthropic response: %s", msg.content[0].text)
            return msg.content[0].text

        raise NoCommandGenerated("Claude returned no text content")
