"""Tests for the Gemini, OpenAI and Anthropic providers in uwu/agents/."""
import httpx
import pytest
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

sys.path.insert(0, str(Path(__file__).parent.parent))

import anthropic
import openai
from google.genai import errors as genai_errors

from uwu.agents.base import AccessDeniedError, NoCommandGenerated, TransportError
from uwu.agents.claude_provider import ClaudeProvider
from uwu.agents.gemini_provider import GeminiProvider
from uwu.agents.openai_provider import OpenAIProvider


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _http_response(status: int, url: str) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", url))


def _gemini(response=None, side_effect=None) -> tuple[GeminiProvider, AsyncMock]:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=response, side_effect=side_effect)
    return GeminiProvider(model="gemini-test", client=client), client.aio.models.generate_content


def _gemini_response(*texts) -> SimpleNamespace:
    parts = [SimpleNamespace(text=t) for t in texts]
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def _openai(response=None, side_effect=None) -> tuple[OpenAIProvider, AsyncMock]:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return OpenAIProvider(model="gpt-test", client=client), client.chat.completions.create


def _openai_response(*contents) -> SimpleNamespace:
    choices = [SimpleNamespace(message=SimpleNamespace(content=c)) for c in contents]
    return SimpleNamespace(choices=choices)


def _claude(response=None, side_effect=None) -> tuple[ClaudeProvider, AsyncMock]:
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=response, side_effect=side_effect)
    return ClaudeProvider(model="claude-test", client=client), client.messages.create


def _claude_response(*blocks) -> SimpleNamespace:
    return SimpleNamespace(content=[SimpleNamespace(type=t, text=x) for t, x in blocks])


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------

class TestGeminiProvider:
    def test_name_includes_model(self):
        provider, _ = _gemini()
        assert provider.name == "gemini/gemini-test"

    @pytest.mark.asyncio
    async def test_returns_first_text_part(self, gen_request):
        provider, call = _gemini(_gemini_response("ls -l", "ignored"))
        assert await provider.generate_command(gen_request) == "ls -l"

        kwargs = call.await_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert "Prompt: list files" in kwargs["contents"]
        assert "bash shell" in kwargs["contents"]

    @pytest.mark.asyncio
    async def test_backticks_trimmed_at_boundary(self, gen_request):
        provider, _ = _gemini(_gemini_response("`ls -l`"))
        assert await provider.complete(gen_request) == "`ls -l`"
        assert await provider.generate_command(gen_request) == "ls -l"

    @pytest.mark.asyncio
    async def test_skips_non_text_parts(self, gen_request):
        provider, _ = _gemini(_gemini_response(None, "pwd"))
        assert await provider.generate_command(gen_request) == "pwd"

    @pytest.mark.asyncio
    async def test_no_candidates_is_no_command(self, gen_request):
        provider, _ = _gemini(SimpleNamespace(candidates=[]))
        with pytest.raises(NoCommandGenerated):
            await provider.generate_command(gen_request)

    @pytest.mark.asyncio
    async def test_candidate_without_content_is_no_command(self, gen_request):
        provider, _ = _gemini(SimpleNamespace(candidates=[SimpleNamespace(content=None)]))
        with pytest.raises(NoCommandGenerated):
            await provider.generate_command(gen_request)

    @pytest.mark.asyncio
    async def test_permission_denied_is_access_denied(self, gen_request):
        error = genai_errors.ClientError(
            403, {"error": {"code": 403, "message": "denied", "status": "PERMISSION_DENIED"}},
        )
        provider, _ = _gemini(side_effect=error)
        with pytest.raises(AccessDeniedError, match="GEMINI_API_KEY"):
            await provider.generate_command(gen_request)

    @pytest.mark.asyncio
    async def test_server_error_is_transport_error(self, gen_request):
        error = genai_errors.ServerError(
            500, {"error": {"code": 500, "message": "boom", "status": "INTERNAL"}},
        )
        provider, _ = _gemini(side_effect=error)
        with pytest.raises(TransportError) as info:
            await provider.generate_command(gen_request)
        assert not isinstance(info.value, AccessDeniedError)

    @pytest.mark.asyncio
    async def test_unexpected_error_is_transport_error(self, gen_request):
        provider, _ = _gemini(side_effect=OSError("network down"))
        with pytest.raises(TransportError, match="network down"):
            await provider.generate_command(gen_request)


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------

_OPENAI_URL = "https://api.openai.com/v1/chat/completions"


class TestOpenAIProvider:
    @pytest.mark.asyncio
    async def test_returns_first_choice(self, gen_request):
        provider, call = _openai(_openai_response("ls -l", "ls"))
        assert await provider.generate_command(gen_request) == "ls -l"

        kwargs = call.await_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert len(kwargs["messages"]) == 1
        assert kwargs["messages"][0]["role"] == "user"
        assert "Prompt: list files" in kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_no_choices_is_no_command(self, gen_request):
        provider, _ = _openai(_openai_response())
        with pytest.raises(NoCommandGenerated):
            await provider.generate_command(gen_request)

    @pytest.mark.asyncio
    async def test_null_content_is_no_command(self, gen_request):
        provider, _ = _openai(_openai_response(None))
        with pytest.raises(NoCommandGenerated):
            await provider.generate_command(gen_request)

    @pytest.mark.asyncio
    async def test_permission_denied_is_access_denied(self, gen_request):
        error = openai.PermissionDeniedError(
            "denied", response=_http_response(403, _OPENAI_URL), body=None,
        )
        provider, _ = _openai(side_effect=error)
        with pytest.raises(AccessDeniedError, match="OPENAI_API_KEY"):
            await provider.generate_command(gen_request)

    @pytest.mark.asyncio
    async def test_bad_key_is_access_denied(self, gen_request):
        error = openai.AuthenticationError(
            "bad key", response=_http_response(401, _OPENAI_URL), body=None,
        )
        provider, _ = _openai(side_effect=error)
        with pytest.raises(AccessDeniedError):
            await provider.generate_command(gen_request)

    @pytest.mark.asyncio
    async def test_connection_error_is_transport_error(self, gen_request):
        error = openai.APIConnectionError(request=httpx.Request("POST", _OPENAI_URL))
        provider, _ = _openai(side_effect=error)
        with pytest.raises(TransportError) as info:
            await provider.generate_command(gen_request)
        assert not isinstance(info.value, AccessDeniedError)


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------

_ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"


class TestClaudeProvider:
    @pytest.mark.asyncio
    async def test_returns_first_text_block(self, gen_request):
        provider, call = _claude(_claude_response(("text", "ls -l")))
        assert await provider.generate_command(gen_request) == "ls -l"

        kwargs = call.await_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == ClaudeProvider.MAX_TOKENS
        assert "Prompt: list files" in kwargs["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_no_content_is_no_command(self, gen_request):
        provider, _ = _claude(_claude_response())
        with pytest.raises(NoCommandGenerated):
            await provider.generate_command(gen_request)

    @pytest.mark.asyncio
    async def test_non_text_first_block_is_no_command(self, gen_request):
        provider, _ = _claude(_claude_response(("tool_use", ""), ("text", "ls")))
        with pytest.raises(NoCommandGenerated):
            await provider.generate_command(gen_request)

    @pytest.mark.asyncio
    async def test_permission_denied_is_access_denied(self, gen_request):
        error = anthropic.PermissionDeniedError(
            "denied", response=_http_response(403, _ANTHROPIC_URL), body=None,
        )
        provider, _ = _claude(side_effect=error)
        with pytest.raises(AccessDeniedError, match="ANTHROPIC_API_KEY"):
            await provider.generate_command(gen_request)

    @pytest.mark.asyncio
    async def test_connection_error_is_transport_error(self, gen_request):
        error = anthropic.APIConnectionError(request=httpx.Request("POST", _ANTHROPIC_URL))
        provider, _ = _claude(side_effect=error)
        with pytest.raises(TransportError) as info:
            await provider.generate_command(gen_request)
        assert not isinstance(info.value, AccessDeniedError)

    @pytest.mark.asyncio
    async def test_unexpected_error_is_transport_error(self, gen_request):
        provider, _ = _claude(side_effect=OSError("socket closed"))
        with pytest.raises(TransportError, match="socket closed"):
            await provider.generate_command(gen_request)
