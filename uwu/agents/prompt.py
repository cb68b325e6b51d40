"""Instruction text shared by every provider."""
from __future__ import annotations

_INSTRUCTION = (
    "Given the following prompt, generate a single shell command. "
    "The command should be able to be executed on a {target_os} machine in a {shell} shell. "
    "The command should be reasonable and not destructive. "
    "{answer}\n\n"
    "Prompt: {prompt}"
)

_PLAIN_ANSWER = "Return only the command, with no explanation or other text."
_JSON_ANSWER = 'Return the command in a json object with a single key "{key}".'


def format_instruction(
    prompt: str,
    shell: str,
    target_os: str,
    json_key: str | None = None,
) -> str:
    """Build the instruction sent to a backend.

    Args:
        prompt:    The user's request, embedded verbatim.
        shell:     Target shell name, e.g. ``"bash"``.
        target_os: Target operating system, e.g. ``"linux"``.
        json_key:  When set, ask for a JSON object ``{json_key: command}``
                   instead of a bare command.
    """
    answer = _JSON_ANSWER.format(key=json_key) if json_key else _PLAIN_ANSWER
    return _INSTRUCTION.format(
        target_os=target_os,
        shell=shell,
        answer=answer,
        prompt=prompt,
    )
