"""OpenAI chat-completions provider."""
from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from uwu.agents.base import (
    AccessDeniedError,
    CommandProvider,
    GenerationRequest,
    NoCommandGenerated,
    TransportError,
)
from uwu.agents.prompt import format_instruction

logger = logging.getLogger(__name__)


class OpenAIProvider(CommandProvider):
    """Calls an OpenAI chat model with a single user turn."""

    MODEL = "gpt-4o-mini"

    def __init__(self, api_key: str = "", model: str = MODEL, client=None) -> None:
        self._model = model
        self._client = client if client is not None else AsyncOpenAI(api_key=api_key)

    @property
    def name(self) -> str:
        return f"openai/{self._model}"

    async def complete(self, request: GenerationRequest) -> str:
        prompt = format_instruction(request.prompt, request.shell, request.target_os)
        logger.debug("openai prompt: %s", prompt)
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise AccessDeniedError(
                f"OpenAI denied access ({exc.status_code}). "
                "Check OPENAI_API_KEY or ~/.uwu/openai.key."
            ) from exc
        except openai.OpenAIError as exc:
            raise TransportError(f"OpenAI API error: {exc}") from exc
        except Exception as exc:
            raise TransportError(f"Unexpected OpenAI error: {exc}") from exc

        if not response.choices:
            raise NoCommandGenerated("OpenAI returned no choices")

        content = response.choices[0].message.content
        if not content:
            raise NoCommandGenerated("OpenAI returned an empty message")
        logger.debug("openai response: %s", content)
        return content
