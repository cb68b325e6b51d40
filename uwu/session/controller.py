"""Interaction state machine for one prompt → command session.

The lifecycle is split in two:

  - :func:`transition` is a pure function ``(session, event) -> session``.
    It owns every business rule and can be tested without a terminal or an
    event loop.
  - :class:`InteractionController` holds the current :class:`Session`, runs
    the single outstanding generation task on the asyncio loop, and feeds the
    task's outcome back through :meth:`InteractionController.dispatch` as one
    :class:`GenerationSucceeded` or :class:`GenerationFailed` message.

A generation starts whenever a transition increments ``Session.attempt``.
Results carry the attempt number they belong to; anything that does not
match the current attempt while ``GENERATING`` is dropped.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, replace
from typing import Callable

from uwu.agents.base import CommandProvider, GenerationRequest, LLMError

logger = logging.getLogger(__name__)


class InteractionState(enum.Enum):
    COLLECTING_PROMPT = "collecting_prompt"
    GENERATING = "generating"
    REVIEWING_COMMAND = "reviewing_command"
    CONFIRMED = "confirmed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (InteractionState.CONFIRMED, InteractionState.ABORTED)

    @property
    def is_editable(self) -> bool:
        """States in which the user may type into the buffer."""
        return self in (InteractionState.COLLECTING_PROMPT, InteractionState.REVIEWING_COMMAND)


@dataclass(frozen=True)
class Session:
    state: InteractionState = InteractionState.COLLECTING_PROMPT
    buffer: str = ""            # text shown in the editable line
    prompt: str = ""            # prompt of the current/last generation
    attempt: int = 0            # incremented per generation request
    command: str | None = None  # set only once CONFIRMED
    error: str | None = None    # set when a generation failed


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BufferEdited:
    text: str


@dataclass(frozen=True)
class Submit:
    text: str


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class Regenerate:
    pass


@dataclass(frozen=True)
class EditPrompt:
    pass


@dataclass(frozen=True)
class GenerationSucceeded:
    attempt: int
    command: str


@dataclass(frozen=True)
class GenerationFailed:
    attempt: int
    message: str


# ---------------------------------------------------------------------------
# Pure transition function
# ---------------------------------------------------------------------------

def _start_generation(session: Session, prompt: str) -> Session:
    return replace(
        session,
        state=InteractionState.GENERATING,
        prompt=prompt,
        buffer="",
        attempt=session.attempt + 1,
        error=None,
    )


def transition(session: Session, event: object, allow_regenerate: bool = False) -> Session:
    """Return the session that follows ``event``.

    Unknown events, and events that make no sense in the current state,
    return ``session`` unchanged (the same object).
    """
    state = session.state
    if state.is_terminal:
        return session

    if isinstance(event, Cancel):
        return replace(session, state=InteractionState.ABORTED)

    if isinstance(event, BufferEdited):
        if state.is_editable and event.text != session.buffer:
            return replace(session, buffer=event.text)
        return session

    if isinstance(event, Submit):
        text = event.text.strip()
        if not text or not state.is_editable:
            return session
        if state is InteractionState.COLLECTING_PROMPT:
            return _start_generation(session, text)
        return replace(session, state=InteractionState.CONFIRMED, buffer=text, command=text)

    if isinstance(event, (GenerationSucceeded, GenerationFailed)):
        if state is not InteractionState.GENERATING or event.attempt != session.attempt:
            return session
        if isinstance(event, GenerationSucceeded):
            return replace(session, state=InteractionState.REVIEWING_COMMAND, buffer=event.command)
        return replace(session, state=InteractionState.ABORTED, error=event.message)

    if state is InteractionState.REVIEWING_COMMAND and allow_regenerate:
        if isinstance(event, Regenerate):
            return _start_generation(session, session.prompt)
        if isinstance(event, EditPrompt):
            return replace(session, state=InteractionState.COLLECTING_PROMPT, buffer=session.prompt)

    return session


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class InteractionController:
    """Drives a :class:`Session` and the generation task behind it.

    Usage::

        controller = InteractionController(provider, shell="bash", target_os="linux")
        controller.subscribe(on_change)
        controller.start("list files")          # must run inside the event loop
        controller.dispatch(Submit("ls -l"))

    ``dispatch`` must only be called from the event loop thread.
    """

    def __init__(
        self,
        provider: CommandProvider,
        shell: str,
        target_os: str,
        allow_regenerate: bool = False,
    ) -> None:
        self._provider = provider
        self._shell = shell
        self._target_os = target_os
        self.allow_regenerate = allow_regenerate
        self._session = Session()
        self._task: asyncio.Task | None = None
        self._listeners: list[Callable[[Session], None]] = []

    @property
    def session(self) -> Session:
        return self._session

    @property
    def result(self) -> str | None:
        """The confirmed command, or None unless the session is CONFIRMED."""
        if self._session.state is InteractionState.CONFIRMED:
            return self._session.command
        return None

    def subscribe(self, listener: Callable[[Session], None]) -> None:
        """Call ``listener(session)`` after every dispatch."""
        self._listeners.append(listener)

    def start(self, prompt: str = "") -> Session:
        """Begin the session, generating immediately when ``prompt`` is given."""
        if prompt.strip():
            return self.dispatch(Submit(prompt))
        return self._session

    def dispatch(self, event: object) -> Session:
        previous = self._session
        self._session = transition(previous, event, self.allow_regenerate)

        if self._session.state is not previous.state:
            logger.info("Session %s -> %s", previous.state.value, self._session.state.value)
        if (
            self._session.state is InteractionState.GENERATING
            and self._session.attempt != previous.attempt
        ):
            self._spawn(self._session.attempt, self._session.prompt)

        for listener in self._listeners:
            listener(self._session)
        return self._session

    async def wait(self) -> None:
        """Wait for the outstanding generation task, if any."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    def _spawn(self, attempt: int, prompt: str) -> None:
        request = GenerationRequest(prompt=prompt, shell=self._shell, target_os=self._target_os)
        logger.info("Generation %d started with %s", attempt, self._provider.name)
        self._task = asyncio.get_running_loop().create_task(
            self._generate(attempt, request),
            name=f"generate_{attempt}",
        )

    async def _generate(self, attempt: int, request: GenerationRequest) -> None:
        """Run one generation and post exactly one result message."""
        try:
            command = await self._provider.generate_command(request)
        except LLMError as exc:
            logger.error("Generation %d failed (%s): %s", attempt, type(exc).__name__, exc)
            self.dispatch(GenerationFailed(attempt, str(exc)))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Generation %d raised an unexpected error", attempt)
            self.dispatch(GenerationFailed(attempt, f"Unexpected error: {exc}"))
        else:
            logger.info("Generation %d produced: %s", attempt, command)
            self.dispatch(GenerationSucceeded(attempt, command))
