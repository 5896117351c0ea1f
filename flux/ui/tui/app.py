"""
Menu driver — keyboard loop around ``MenuModel``.

The loop reads one key at a time with ``click.getchar()``, feeds it to
the model, and redraws. Commands returned by the model are executed
here:

    RunCommand    → settings (prompt if missing) → become password →
                    worker thread runs the playbook, output streamed to
                    the terminal, one completion message back
    UpdateCommand → worker thread runs the self-updater
    QuitCommand   → leave the loop

While a worker runs, the UI thread waits on a one-slot completion
queue. Ctrl+C during that wait reaches the child too; the driver
prints a notice and keeps waiting for the child to exit and report.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from pathlib import Path
from typing import Callable

import click

from flux.core.config.loader import ConfigError, load_or_create
from flux.core.config.prompter import PromptError
from flux.core.services import updater
from flux.core.use_cases.run import run_setup
from flux.ui.tui import state
from flux.ui.tui.render import render
from flux.ui.tui.state import Key, MenuModel, QuitCommand, RunCommand, UpdateCommand
from flux.ui.tui.theme import Theme

logger = logging.getLogger(__name__)

# Raw getchar() sequences → named keys
_KEYMAP: dict[str, Key] = {
    "\r": state.ENTER,
    "\n": state.ENTER,
    "\x1b": state.ESC,
    " ": state.SPACE,
    "\t": state.TAB,
    "\x1b[Z": state.SHIFT_TAB,
    "\x7f": state.BACKSPACE,
    "\x08": state.BACKSPACE,
    "\x1b[A": state.UP,
    "\x1b[B": state.DOWN,
    "\x1bOA": state.UP,
    "\x1bOB": state.DOWN,
    # Windows console
    "\xe0H": state.UP,
    "\xe0P": state.DOWN,
    "\x00H": state.UP,
    "\x00P": state.DOWN,
}

_POLL_SECONDS = 0.2


def decode_key(raw: str) -> Key | None:
    """Translate a getchar() result; None for keys the menu ignores."""
    if raw in _KEYMAP:
        return _KEYMAP[raw]
    if len(raw) == 1 and raw.isprintable():
        return state.char(raw)
    return None


class MenuApp:
    """Interactive menu bound to a terminal.

    Args:
        model: UI state (default: loaded from the settings file).
        theme: Styles for every render function.
        getchar: Key source (one key per call).
        echo: Output function.
        clear: Screen clear function.
    """

    def __init__(
        self,
        model: MenuModel | None = None,
        theme: Theme | None = None,
        getchar: Callable[[], str] = click.getchar,
        echo: Callable[..., None] = click.echo,
        clear: Callable[[], None] = click.clear,
        config_path: Path | None = None,
    ) -> None:
        self.model = model or MenuModel.load(config_path)
        self.theme = theme or Theme.from_env()
        self._getchar = getchar
        self._echo = echo
        self._clear = clear

    # ── Loop ────────────────────────────────────────────────────

    def redraw(self) -> None:
        self._clear()
        self._echo(render(self.model, self.theme), nl=False)

    def run(self) -> None:
        while not self.model.quitting:
            self.redraw()
            try:
                raw = self._getchar()
            except (KeyboardInterrupt, EOFError):
                self.model.quitting = True
                break
            key = decode_key(raw)
            if key is None:
                continue
            command = self.model.handle(key)
            if command is not None:
                self.execute(command)
        self._clear()

    def execute(self, command: state.Command) -> None:
        if isinstance(command, QuitCommand):
            self.model.quitting = True
        elif isinstance(command, RunCommand):
            self._start_run(command)
        elif isinstance(command, UpdateCommand):
            self._start_update()

    # ── Commands ────────────────────────────────────────────────

    def _start_run(self, command: RunCommand) -> None:
        self.redraw()

        settings = self.model.settings
        if settings is None:
            try:
                settings = load_or_create(self.model.config_path)
            except (PromptError, ConfigError) as e:
                self.model.finish_run(f"Config error: {e}")
                return
            self.model.settings = settings

        become_password = self._ask_become_password()
        # Without a password ansible asks for it on the terminal itself
        interactive = not become_password and os.geteuid() != 0

        def work() -> str | None:
            result = run_setup(
                settings,
                tags=list(command.tags),
                dry_run=command.dry_run,
                become_password=become_password,
                on_output=self._echo,
                interactive=interactive,
            )
            return result.error

        self.model.finish_run(self._wait_for(work))

    def _start_update(self) -> None:
        self.redraw()

        def work() -> str | None:
            try:
                updater.update(on_output=self._echo)
            except updater.UpdateError as e:
                return str(e)
            return None

        self.model.finish_update(self._wait_for(work))

    def _ask_become_password(self) -> str:
        if os.geteuid() == 0:
            return ""
        try:
            return click.prompt(
                "sudo password (leave empty to be asked by ansible)",
                default="",
                hide_input=True,
                show_default=False,
            )
        except click.Abort:
            return ""

    def _wait_for(self, work: Callable[[], str | None]) -> str | None:
        """Run ``work`` on a worker thread; block until its single result."""
        done: queue.Queue[str | None] = queue.Queue(maxsize=1)

        def target() -> None:
            try:
                done.put(work())
            except Exception as e:  # surfaced on the status screen
                logger.exception("Background task failed")
                done.put(f"Unexpected error: {e}")

        worker = threading.Thread(target=target, name="flux-run", daemon=True)
        worker.start()

        while True:
            try:
                error = done.get(timeout=_POLL_SECONDS)
                break
            except queue.Empty:
                continue
            except KeyboardInterrupt:
                # SIGINT also reached the child process group; collect its exit
                self._echo("\nInterrupted; waiting for the running command to exit...")
        worker.join()
        return error


def run_menu(config_path: Path | None = None) -> None:
    """Launch the interactive menu."""
    MenuApp(config_path=config_path).run()
