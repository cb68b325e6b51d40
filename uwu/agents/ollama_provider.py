"""Ollama provider - streamed JSON generation from a local model server.

Ollama streams the completion as many small chunks.  A producer task pushes
each chunk's text onto an unbounded :class:`asyncio.Queue` followed by an
end-of-stream sentinel; :meth:`OllamaProvider.complete` drains the queue to
the sentinel before looking at any error, so the producer always finishes.
The joined text must be a JSON object ``{"command": "..."}``.
"""
from __future__ import annotations

import asyncio
import json
import logging

import ollama

from uwu.agents.base import (
    AccessDeniedError,
    CommandProvider,
    GenerationRequest,
    NoCommandGenerated,
    ResponseParseError,
    TransportError,
)
from uwu.agents.prompt import format_instruction

logger = logging.getLogger(__name__)

_END_OF_STREAM = object()
_COMMAND_KEY = "command"


class OllamaProvider(CommandProvider):
    """Calls a local Ollama server through ``ollama.AsyncClient``."""

    MODEL = "llama3.2"
    HOST = "http://localhost:11434"

    def __init__(self, host: str = HOST, model: str = MODEL, client=None) -> None:
        self._model = model
        self._client = client if client is not None else ollama.AsyncClient(host=host)

    @property
    def name(self) -> str:
        return f"ollama/{self._model}"

    async def complete(self, request: GenerationRequest) -> str:
        prompt = format_instruction(
            request.prompt, request.shell, request.target_os, json_key=_COMMAND_KEY,
        )
        logger.debug("ollama prompt: %s", prompt)

        queue: asyncio.Queue = asyncio.Queue()
        producer = asyncio.create_task(self._produce(prompt, queue), name="ollama_stream")

        parts: list[str] = []
        try:
            while (chunk := await queue.get()) is not _END_OF_STREAM:
                parts.append(chunk)
            error = await producer
        finally:
            if not producer.done():
                producer.cancel()

        if error is not None:
            raise self._classify(error) from error

        response = "".join(parts)
        logger.debug("ollama response: %s", response)
        return self._extract_command(response)

    async def _produce(self, prompt: str, queue: asyncio.Queue) -> Exception | None:
        """Stream chunks into ``queue``; return the transport error, if any."""
        try:
            stream = await self._client.generate(
                model=self._model,
                prompt=prompt,
                format="json",
                stream=True,
            )
            async for chunk in stream:
                queue.put_nowait(chunk.response or "")
        except Exception as exc:
            return exc
        finally:
            queue.put_nowait(_END_OF_STREAM)
        return None

    @staticmethod
    def _classify(error: Exception) -> TransportError:
        if isinstance(error, ollama.ResponseError):
            if error.status_code in (401, 403):
                return AccessDeniedError(
                    f"Ollama denied access ({error.status_code}): {error.error}"
                )
            return TransportError(f"Ollama API error: {error.error}")
        return TransportError(f"Ollama request failed: {error}")

    @staticmethod
    def _extract_command(response: str) -> str:
        if not response.strip():
            raise ResponseParseError("Ollama returned an empty stream")
        try:
            payload = json.loads(response)
        except json.JSONDecodeError as exc:
            raise ResponseParseError(f"failed to decode Ollama response: {exc}") from exc
        if not isinstance(payload, dict):
            raise ResponseParseError("Ollama response is not a JSON object")

        command = payload.get(_COMMAND_KEY)
        if not isinstance(command, str) or not command:
            raise NoCommandGenerated(f"Ollama response has no {_COMMAND_KEY!r} field")
        return command
