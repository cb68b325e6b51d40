"""Google Gemini provider using the google-genai SDK."""
from __future__ import annotations

import logging

from google import genai
from google.genai import errors as genai_errors

from uwu.agents.base import (
    AccessDeniedError,
    CommandProvider,
    GenerationRequest,
    NoCommandGenerated,
    TransportError,
)
from uwu.agents.prompt import format_instruction

logger = logging.getLogger(__name__)

_DENIED_CODES = (401, 403)


class GeminiProvider(CommandProvider):
    """Calls Gemini via the native async google-genai SDK."""

    MODEL = "gemini-2.5-flash"

    def __init__(self, api_key: str = "", model: str = MODEL, client=None) -> None:
        self._model = model
        self._client = client if client is not None else genai.Client(api_key=api_key)

    @property
    def name(self) -> str:
        return f"gemini/{self._model}"

    async def complete(self, request: GenerationRequest) -> str:
        prompt = format_instruction(request.prompt, request.shell, request.target_os)
        logger.debug("gemini prompt: %s", prompt)
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
            )
        except genai_errors.APIError as exc:
            if exc.code in _DENIED_CODES:
                raise AccessDeniedError(
                    f"Gemini rejected the API key ({exc.code}). "
                    "Check GEMINI_API_KEY or ~/.uwu/gemini.key."
                ) from exc
            raise TransportError(f"Gemini API error: {exc}") from exc
        except Exception as exc:
            raise TransportError(f"Unexpected Gemini error: {exc}") from exc

        for candidate in (response.candidates or [])[:1]:
            parts = candidate.content.parts if candidate.content else None
            for part in parts or []:
                if part.text:
                    logger.debug("gemini response: %s", part.text)
                    return part.text

        raise NoCommandGenerated("Gemini returned no text candidates")
