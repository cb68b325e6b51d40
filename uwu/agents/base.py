"""Abstract command provider interface.

All LLM integrations must implement this interface so providers can be
swapped without changing any call sites.  Adapters only know how to talk to
their backend; trimming of the completion happens once, in
:meth:`CommandProvider.generate_command`.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

_FENCE_RE = re.compile(r"^```[\w+-]*\n(.*?)\n?```$", re.DOTALL)


@dataclass(frozen=True)
class GenerationRequest:
    """One generation attempt: what the user asked for and where it will run."""
    prompt: str
    shell: str
    target_os: str


class CommandProvider(ABC):
    """Minimal async interface for shell command generation."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name, e.g. 'gemini/gemini-2.5-flash'."""
        ...

    @abstractmethod
    async def complete(self, request: GenerationRequest) -> str:
        """Send the request to the backend and return the raw completion.

        Args:
            request: Prompt, shell and target OS for this attempt.

        Returns:
            The first textual completion, untrimmed.

        Raises:
            LLMError: On any API, network or decoding failure.
        """
        ...

    async def generate_command(self, request: GenerationRequest) -> str:
        """Return a single shell command for ``request``.

        Raises:
            NoCommandGenerated: If the completion is blank once trimmed.
            LLMError: Propagated unchanged from :meth:`complete`.
        """
        command = clean_command(await self.complete(request))
        if not command:
            raise NoCommandGenerated(f"{self.name} returned an empty command")
        return command


def clean_command(text: str) -> str:
    """Strip surrounding whitespace and wrapping backticks from a completion.

    Handles inline code (```ls```, `ls`) and fenced blocks with a language
    tag; backticks inside the command are kept.
    """
    text = text.strip()
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1).strip()
    while len(text) > 1 and text.startswith("`") and text.endswith("`"):
        text = text[1:-1].strip()
    return text


class LLMError(Exception):
    """Base class for every failure surfaced by the provider layer."""


class ConfigurationError(LLMError):
    """Unknown provider, missing credentials or an unusable setting."""


class TransportError(LLMError):
    """The backend call itself failed (network, SDK or API error)."""


class AccessDeniedError(TransportError):
    """The backend rejected our credentials or permissions."""


class ResponseParseError(LLMError):
    """The backend answered with a payload we could not decode."""


class NoCommandGenerated(LLMError):
    """The call succeeded but produced no usable text."""
