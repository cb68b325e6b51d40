"""
Terminal confirmation surface for an interaction session.

Renders three stacked regions in-place below the cursor:
  - Status : spinner while generating, otherwise a heading for the buffer
  - Editor : the editable line (prompt or generated command)
  - Help   : key hints for the current state

Rendering is done with rich into ANSI text; prompt_toolkit owns the event
loop, the editable buffer and key handling.  The surface never decides
transitions itself: each key is translated into an event by
:func:`intent_for_key` and handed to the controller.

Expected controller interface (see uwu.session.controller):

    controller.session -> Session
    controller.allow_regenerate: bool
    controller.subscribe(listener)
    controller.start(prompt)
    controller.dispatch(event)
"""

from __future__ import annotations

import io
import time
from typing import TYPE_CHECKING

from prompt_toolkit.application import Application
from prompt_toolkit.buffer import Buffer
from prompt_toolkit.document import Document
from prompt_toolkit.filters import Condition
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout, Window
from prompt_toolkit.layout.controls import BufferControl, FormattedTextControl
from prompt_toolkit.layout.processors import BeforeInput
from rich.console import Console
from rich.spinner import Spinner
from rich.text import Text

from uwu.session.controller import (
    BufferEdited,
    Cancel,
    EditPrompt,
    InteractionState,
    Regenerate,
    Session,
    Submit,
)

if TYPE_CHECKING:
    from uwu.session.controller import InteractionController

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_SPINNER = Spinner("dots", style="cyan")

_HEADINGS: dict[InteractionState, str] = {
    InteractionState.COLLECTING_PROMPT: "What should the command do?",
    InteractionState.REVIEWING_COMMAND: "Generated command:",
}

_QUIT_KEYS = ("c-c", "c-q", "escape")


def _spinner_frame(elapsed: float) -> str:
    """Return the spinner frame to show ``elapsed`` seconds after start."""
    index = int(elapsed * 1000 / _SPINNER.interval) % len(_SPINNER.frames)
    return _SPINNER.frames[index]


def to_ansi(text: Text) -> str:
    """Render a rich Text to an ANSI string prompt_toolkit can display."""
    console = Console(file=io.StringIO(), force_terminal=True, color_system="standard")
    with console.capture() as capture:
        console.print(text, end="")
    return capture.get()


# ---------------------------------------------------------------------------
# Pure rendering / key translation
# ---------------------------------------------------------------------------


def render(session: Session, elapsed: float = 0.0) -> Text:
    """Status line for ``session``."""
    state = session.state
    if state is InteractionState.GENERATING:
        return Text.assemble(
            (_spinner_frame(elapsed), "cyan"),
            " Generating command for ",
            (session.prompt, "bold"),
            "...",
        )
    if state is InteractionState.ABORTED:
        if session.error:
            return Text.assemble(("Error: ", "bold red"), (session.error, "red"))
        return Text("Command execution aborted.", style="yellow")
    if state is InteractionState.CONFIRMED:
        return Text.assemble(("Running: ", "bold green"), (session.command or "", "bold"))
    return Text(_HEADINGS[state], style="bold magenta")


def render_help(session: Session, allow_regenerate: bool = False) -> Text:
    """Key hints for ``session``; empty once the session is over."""
    state = session.state
    if state is InteractionState.GENERATING:
        hints = "q / esc / ctrl+c to cancel"
    elif state is InteractionState.COLLECTING_PROMPT:
        hints = "enter to generate, ctrl+c to quit"
    elif state is InteractionState.REVIEWING_COMMAND:
        hints = "enter to confirm, ctrl+c to quit"
        if allow_regenerate:
            hints += ", ctrl+r to regenerate, ctrl+e to edit the prompt"
    else:
        return Text()
    return Text(f"({hints})", style="dim")


def intent_for_key(key: str, text: str) -> object | None:
    """Translate a key name into a controller event, or None if unbound.

    ``text`` is the current buffer contents, submitted on ``enter``.
    """
    if key == "enter":
        return Submit(text)
    if key in _QUIT_KEYS or key == "q":
        return Cancel()
    if key == "c-r":
        return Regenerate()
    if key == "c-e":
        return EditPrompt()
    return None


# ---------------------------------------------------------------------------
# Surface
# ---------------------------------------------------------------------------


class ConfirmationSurface:
    """
    prompt_toolkit application bound to an :class:`InteractionController`.

    Usage::

        surface = ConfirmationSurface(controller)
        session = await surface.run(prompt)
    """

    REFRESH: float = 0.1

    def __init__(self, controller: InteractionController) -> None:
        self._controller = controller
        self._started = time.monotonic()
        # True while we copy session.buffer into the widget, so the change
        # is not echoed back as a BufferEdited event.
        self._syncing = False

        editable = Condition(lambda: self._controller.session.state.is_editable)
        self._buffer = Buffer(
            multiline=False,
            read_only=~editable,
            on_text_changed=self._on_text_changed,
        )
        editor = Window(
            BufferControl(
                buffer=self._buffer,
                input_processors=[BeforeInput("> ", style="class:prompt")],
            ),
            height=1,
        )
        status = Window(FormattedTextControl(self._status_text), dont_extend_height=True)
        help_line = Window(FormattedTextControl(self._help_text), dont_extend_height=True)

        self._app: Application = Application(
            layout=Layout(HSplit([status, editor, help_line]), focused_element=editor),
            key_bindings=self._key_bindings(editable),
            refresh_interval=self.REFRESH,
            erase_when_done=True,
        )
        controller.subscribe(self._on_session)

    # ------------------------------------------------------------------
    # prompt_toolkit callbacks
    # ------------------------------------------------------------------

    def _status_text(self) -> ANSI:
        elapsed = time.monotonic() - self._started
        return ANSI(to_ansi(render(self._controller.session, elapsed)))

    def _help_text(self) -> ANSI:
        session = self._controller.session
        return ANSI(to_ansi(render_help(session, self._controller.allow_regenerate)))

    def _key_bindings(self, editable: Condition) -> KeyBindings:
        kb = KeyBindings()

        @kb.add("enter", filter=editable)
        def _submit(event) -> None:
            self._forward("enter")

        for key in _QUIT_KEYS + ("c-r", "c-e"):
            kb.add(key)(lambda event, key=key: self._forward(key))

        # "q" is an ordinary character while the buffer is editable
        @kb.add("q", filter=~editable)
        def _quit(event) -> None:
            self._forward("q")

        return kb

    def _forward(self, key: str) -> None:
        intent = intent_for_key(key, self._buffer.text)
        if intent is not None:
            self._controller.dispatch(intent)

    def _on_text_changed(self, buffer: Buffer) -> None:
        if not self._syncing:
            self._controller.dispatch(BufferEdited(buffer.text))

    def _on_session(self, session: Session) -> None:
        if session.buffer != self._buffer.text:
            self._syncing = True
            try:
                self._buffer.set_document(Document(session.buffer), bypass_readonly=True)
            finally:
                self._syncing = False

        if session.state.is_terminal:
            if self._app.is_running and not self._app.is_done:
                self._app.exit(result=session)
        else:
            self._app.invalidate()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self, prompt: str = "") -> Session:
        """Run the session to a terminal state and return the final Session."""
        self._started = time.monotonic()
        self._app.pre_run_callables.append(lambda: self._controller.start(prompt))
        return await self._app.run_async()
