"""Amazon Bedrock provider.

Bedrock hosts several model families behind one ``InvokeModel`` call, each
with its own request body and response envelope.  Every supported model id
maps to a small schema class that owns both shapes; :class:`BedrockProvider`
only handles the call itself and error classification.

Supported model ids:
    amazon.nova-lite-v1:0                      - Nova messages-v1 schema
    amazon.titan-text-lite-v1                  - Titan one-shot text completion
    openai.gpt-oss-120b-1:0                    - OpenAI chat schema, reasoning stripped
    anthropic.claude-sonnet-4-20250514-v1:0    - Anthropic Bedrock messages schema
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from uwu.agents.base import (
    AccessDeniedError,
    CommandProvider,
    ConfigurationError,
    GenerationRequest,
    NoCommandGenerated,
    ResponseParseError,
    TransportError,
)
from uwu.agents.prompt import format_instruction

logger = logging.getLogger(__name__)

_MAX_TOKENS = 200
_ONE_SHOT_PROMPT = "list all files in the current directory"
_ACCESS_DENIED_HINT = (
    "access denied to Bedrock API. "
    "Please check your AWS credentials and permissions"
)
_REASONING_RE = re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL)


def _dig(payload: Any, *path: str | int) -> Any:
    """Follow ``path`` through nested dicts/lists; None when any step is missing."""
    node = payload
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or len(node) <= step:
                return None
        elif not isinstance(node, dict) or step not in node:
            return None
        node = node[step]
    return node


# ---------------------------------------------------------------------------
# Per-model schemas
# ---------------------------------------------------------------------------

class NovaLiteSchema:
    """amazon.nova-lite-v1:0 - ``output.message.content[0].text``."""

    def build_body(self, request: GenerationRequest) -> dict:
        prompt = format_instruction(request.prompt, request.shell, request.target_os)
        return {
            "schemaVersion": "messages-v1",
            "messages": [
                {"role": "user", "content": [{"text": prompt}]},
            ],
            "inferenceConfig": {"maxTokens": _MAX_TOKENS},
        }

    def extract_text(self, payload: Any) -> str | None:
        return _dig(payload, "output", "message", "content", 0, "text")


class TitanLiteSchema:
    """amazon.titan-text-lite-v1 - ``results[0].outputText``.

    Titan is a plain completion model, so the instruction is written as a
    short transcript with one worked example to fix the answer style.
    """

    _TRANSCRIPT = (
        "System: You are a helpful assistant that generates shell commands. "
        "The user will provide a prompt and you will generate a single shell command "
        "that can be executed on a {target_os} machine in a {shell} shell. "
        "The command should be reasonable and not destructive. "
        "Return only the command, with no explanation or other text.\n\n"
        "User: {example}\n"
        "Assistant: ls -l\n\n"
        "User: {prompt}\n"
        "Assistant:"
    )

    def build_body(self, request: GenerationRequest) -> dict:
        prompt = self._TRANSCRIPT.format(
            target_os=request.target_os,
            shell=request.shell,
            example=_ONE_SHOT_PROMPT,
            prompt=request.prompt,
        )
        return {
            "inputText": prompt,
            "textGenerationConfig": {"maxTokenCount": _MAX_TOKENS},
        }

    def extract_text(self, payload: Any) -> str | None:
        return _dig(payload, "results", 0, "outputText")


class GptOssSchema:
    """openai.gpt-oss-120b-1:0 - ``choices[0].message.content``.

    The model may emit ``<reasoning>`` blocks ahead of the answer even when
    told not to; they are removed before the text leaves the schema.
    """

    _SYSTEM = (
        "You are a shell command generator. Return only the final shell command. "
        "Do not include any explanations, chain-of-thought, or tags such as <reasoning>. "
        "Do not wrap the command in quotes or backticks."
    )

    def build_body(self, request: GenerationRequest) -> dict:
        prompt = format_instruction(request.prompt, request.shell, request.target_os)
        return {
            "messages": [
                {"role": "system", "content": self._SYSTEM},
                {"role": "user", "content": _ONE_SHOT_PROMPT},
                {"role": "assistant", "content": "ls -A"},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0,
            "max_completion_tokens": _MAX_TOKENS,
        }

    def extract_text(self, payload: Any) -> str | None:
        text = _dig(payload, "choices", 0, "message", "content")
        if not isinstance(text, str):
            return None
        return strip_reasoning(text)


class ClaudeSchema:
    """anthropic.claude-sonnet-4-20250514-v1:0 - ``content[0].text``."""

    def build_body(self, request: GenerationRequest) -> dict:
        prompt = format_instruction(request.prompt, request.shell, request.target_os)
        return {
            "anthropic_version": "bedrock-2023-05-31",
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": prompt}]},
            ],
            "max_tokens": _MAX_TOKENS,
        }

    def extract_text(self, payload: Any) -> str | None:
        return _dig(payload, "content", 0, "text")


BEDROCK_SCHEMAS: dict[str, type] = {
    "amazon.nova-lite-v1:0": NovaLiteSchema,
    "amazon.titan-text-lite-v1": TitanLiteSchema,
    "openai.gpt-oss-120b-1:0": GptOssSchema,
    "anthropic.claude-sonnet-4-20250514-v1:0": ClaudeSchema,
}


def strip_reasoning(text: str) -> str:
    """Remove every ``<reasoning>...</reasoning>`` block and trim whitespace."""
    return _REASONING_RE.sub("", text).strip()


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class BedrockProvider(CommandProvider):
    """Invokes a Bedrock model with the schema chosen by its model id.

    ``inference_profile`` replaces the model id sent to ``InvokeModel`` (for
    cross-region profiles) while ``model`` still selects the schema.
    """

    def __init__(self, model: str, region: str, inference_profile: str = "", client=None) -> None:
        schema_cls = BEDROCK_SCHEMAS.get(model)
        if schema_cls is None:
            raise ConfigurationError(
                f"Unsupported Bedrock model {model!r}. "
                f"Choose one of: {', '.join(sorted(BEDROCK_SCHEMAS))}."
            )
        self._model = model
        self._schema = schema_cls()
        self._model_id = inference_profile or model
        if client is None:
            try:
                client = boto3.client("bedrock-runtime", region_name=region)
            except BotoCoreError as exc:
                raise ConfigurationError(f"Cannot set up the Bedrock client: {exc}") from exc
        self._client = client

    @property
    def name(self) -> str:
        return f"bedrock/{self._model}"

    async def complete(self, request: GenerationRequest) -> str:
        body = self._schema.build_body(request)
        logger.debug("bedrock request (%s): %s", self._model_id, body)

        raw = await asyncio.to_thread(self._invoke, json.dumps(body))
        logger.debug("bedrock response: %s", raw)

        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ResponseParseError(f"failed to decode Bedrock response: {exc}") from exc

        text = self._schema.extract_text(payload)
        if not isinstance(text, str) or not text:
            raise NoCommandGenerated("Bedrock response did not contain any content")
        return text

    def _invoke(self, body: str) -> bytes:
        """Blocking InvokeModel call; runs in a worker thread."""
        try:
            output = self._client.invoke_model(
                modelId=self._model_id,
                contentType="application/json",
                accept="application/json",
                body=body,
            )
            return output["body"].read()
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "AccessDeniedException":
                raise AccessDeniedError(f"{_ACCESS_DENIED_HINT}: {exc}") from exc
            raise TransportError(f"failed to invoke Bedrock model: {exc}") from exc
        except NoCredentialsError as exc:
            raise AccessDeniedError(f"{_ACCESS_DENIED_HINT}: {exc}") from exc
        except BotoCoreError as exc:
            raise TransportError(f"failed to invoke Bedrock model: {exc}") from exc
