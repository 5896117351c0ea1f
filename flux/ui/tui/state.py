"""
Menu state machine — screens, keys, and the single UI model.

Screen changes are declared in one table, ``TRANSITIONS``, keyed by
(screen, intent). Key handlers decide *which* intent a key means on
the current screen; the table decides *where* that intent leads. A
pair missing from the table is a programming error (``KeyError``).

    MAIN ──run/dry_run──▶ ROLES ──start──▶ RUNNING ──finished──▶ DONE ──back──▶ MAIN
      │                     └──back──▶ MAIN
      ├──configure──▶ CONFIG_MENU ──show/path──▶ CONFIG_SHOW ──back──▶ CONFIG_MENU
      │                 ├──edit──▶ CONFIG_EDIT ──save/cancel──▶ CONFIG_MENU
      │                 └──back──▶ MAIN
      └──update──▶ RUNNING

Long-running work is never done here: handlers return a Command
(run, update, quit) and the driver in ``app.py`` executes it, then
reports back through ``finish_run`` / ``finish_update``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from flux.core.config.loader import (
    ConfigError,
    SettingsNotFound,
    load_settings,
    save_settings,
    settings_path,
)
from flux.core.models.settings import (
    AVAILABLE_ROLES,
    PODMAN_FIELDS,
    SHELL_CHOICES,
    Settings,
    bool_str,
    parse_bool,
    parse_package_list,
)

logger = logging.getLogger(__name__)


# ── Screens & intents ───────────────────────────────────────────


class Screen(StrEnum):
    """Menu screens."""

    MAIN = "main"
    ROLES = "roles"
    CONFIG_MENU = "config_menu"
    CONFIG_SHOW = "config_show"
    CONFIG_EDIT = "config_edit"
    RUNNING = "running"
    DONE = "done"


class Intent(StrEnum):
    """What a key press means on the current screen."""

    RUN = "run"
    DRY_RUN = "dry_run"
    CONFIGURE = "configure"
    UPDATE = "update"
    START = "start"
    SHOW = "show"
    PATH = "path"
    EDIT = "edit"
    SAVE = "save"
    CANCEL = "cancel"
    BACK = "back"
    FINISHED = "finished"


TRANSITIONS: dict[tuple[Screen, Intent], Screen] = {
    (Screen.MAIN, Intent.RUN): Screen.ROLES,
    (Screen.MAIN, Intent.DRY_RUN): Screen.ROLES,
    (Screen.MAIN, Intent.CONFIGURE): Screen.CONFIG_MENU,
    (Screen.MAIN, Intent.UPDATE): Screen.RUNNING,
    (Screen.ROLES, Intent.START): Screen.RUNNING,
    (Screen.ROLES, Intent.BACK): Screen.MAIN,
    (Screen.CONFIG_MENU, Intent.SHOW): Screen.CONFIG_SHOW,
    (Screen.CONFIG_MENU, Intent.PATH): Screen.CONFIG_SHOW,
    (Screen.CONFIG_MENU, Intent.EDIT): Screen.CONFIG_EDIT,
    (Screen.CONFIG_MENU, Intent.BACK): Screen.MAIN,
    (Screen.CONFIG_SHOW, Intent.BACK): Screen.CONFIG_MENU,
    (Screen.CONFIG_EDIT, Intent.SAVE): Screen.CONFIG_MENU,
    (Screen.CONFIG_EDIT, Intent.CANCEL): Screen.CONFIG_MENU,
    (Screen.RUNNING, Intent.FINISHED): Screen.DONE,
    (Screen.DONE, Intent.BACK): Screen.MAIN,
}


def next_screen(screen: Screen, intent: Intent) -> Screen:
    """Look up a transition; undefined pairs raise KeyError."""
    return TRANSITIONS[(screen, intent)]


# ── Keys ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Key:
    """A decoded keystroke: a named key, or ``name="char"`` with ``char``."""

    name: str
    char: str = ""


UP = Key("up")
DOWN = Key("down")
ENTER = Key("enter")
ESC = Key("esc")
SPACE = Key("space")
TAB = Key("tab")
SHIFT_TAB = Key("shift+tab")
BACKSPACE = Key("backspace")


def char(c: str) -> Key:
    return Key("char", c)


# ── Menus ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class MenuItem:
    label: str
    desc: str
    intent: Intent | None  # None = quit


MAIN_MENU: tuple[MenuItem, ...] = (
    MenuItem("Run Setup", "Apply configuration to this machine", Intent.RUN),
    MenuItem("Dry Run", "Preview changes without applying (--check)", Intent.DRY_RUN),
    MenuItem("Configure", "View or edit your settings", Intent.CONFIGURE),
    MenuItem("Update", "Pull latest changes and reinstall flux", Intent.UPDATE),
    MenuItem("Quit", "Exit flux", None),
)

CONFIG_MENU: tuple[MenuItem, ...] = (
    MenuItem("Show Config", "Display current configuration", Intent.SHOW),
    MenuItem("Edit Config", "Modify settings interactively", Intent.EDIT),
    MenuItem("Config Path", "Show config file location", Intent.PATH),
    MenuItem("Back", "Return to main menu", Intent.BACK),
)


# ── Commands for the driver ─────────────────────────────────────


@dataclass(frozen=True)
class RunCommand:
    tags: tuple[str, ...]
    dry_run: bool


@dataclass(frozen=True)
class UpdateCommand:
    pass


@dataclass(frozen=True)
class QuitCommand:
    pass


Command = RunCommand | UpdateCommand | QuitCommand


# ── Config editor ───────────────────────────────────────────────


@dataclass
class EditField:
    """One staged value in the config editor."""

    key: str
    label: str
    value: str
    kind: str = "str"  # str, bool, shell, csv


def edit_fields_for(settings: Settings) -> list[EditField]:
    s = settings
    return [
        EditField("username", "Username", s.username),
        EditField("email", "Email", s.email),
        EditField("git_name", "Git Name", s.git_name),
        EditField("git_email", "Git Email", s.git_email),
        EditField("git_https", "GitHub HTTPS (true/false)", bool_str(s.git_https), "bool"),
        EditField("default_shell", "Shell (bash/zsh)", s.default_shell, "shell"),
        EditField("install_podman", "Install Podman (true/false)", bool_str(s.install_podman), "bool"),
        EditField("podman_wsl_distro", "Podman WSL Distro", s.podman_wsl_distro),
        EditField("podman_wsl_host", "Podman WSL Host", s.podman_wsl_host),
        EditField("podman_wsl_port", "Podman WSL Port", s.podman_wsl_port),
        EditField("install_bun", "Install Bun (true/false)", bool_str(s.install_bun), "bool"),
        EditField("install_go", "Install Go (true/false)", bool_str(s.install_go), "bool"),
        EditField("go_version", "Go Version", s.go_version),
        EditField("install_dotnet", "Install .NET (true/false)", bool_str(s.install_dotnet), "bool"),
        EditField("dotnet_version", ".NET SDK Version", s.dotnet_version),
        EditField("install_python", "Install Python (true/false)", bool_str(s.install_python), "bool"),
        EditField("python_version", "Python Version", s.python_version),
        EditField("extra_packages", "Extra Packages (csv)", ", ".join(s.extra_packages), "csv"),
    ]


def apply_edit_fields(settings: Settings, fields: list[EditField]) -> Settings:
    """Return a copy of ``settings`` with every staged value applied."""
    updated = settings.model_copy(deep=True)
    for f in fields:
        if f.kind == "bool":
            setattr(updated, f.key, parse_bool(f.value))
        elif f.kind == "csv":
            setattr(updated, f.key, parse_package_list(f.value))
        elif f.kind == "shell":
            setattr(updated, f.key, f.value.strip().lower())
        else:
            setattr(updated, f.key, f.value.strip())
    return updated


# ── Model ───────────────────────────────────────────────────────


@dataclass
class MenuModel:
    """All UI state. Only the UI thread mutates it."""

    config_path: Path | None = None
    roles: tuple[str, ...] = AVAILABLE_ROLES
    settings: Settings | None = None

    screen: Screen = Screen.MAIN
    cursor: int = 0
    dry_run: bool = False
    message: str = ""
    failed: bool = False
    quitting: bool = False

    selected: list[bool] = field(default_factory=list)
    config_output: str = ""

    edit_fields: list[EditField] = field(default_factory=list)
    edit_cursor: int = 0
    edit_input: str = ""
    edit_done: bool = False

    def __post_init__(self) -> None:
        if not self.selected:
            self.selected = [True] * len(self.roles)

    @classmethod
    def load(cls, config_path: Path | None = None) -> MenuModel:
        """Model with settings read from disk (None if missing/corrupt)."""
        model = cls(config_path=config_path)
        try:
            model.settings = load_settings(config_path)
        except ConfigError as e:
            logger.debug("No usable settings at startup: %s", e)
        return model

    # ── Navigation helpers ──────────────────────────────────────

    def _go(self, intent: Intent) -> None:
        self.screen = next_screen(self.screen, intent)
        self.cursor = 0

    def _move(self, key: Key, size: int) -> None:
        if key in (UP, char("k")) and self.cursor > 0:
            self.cursor -= 1
        elif key in (DOWN, char("j")) and self.cursor < size - 1:
            self.cursor += 1

    # ── Role selection ──────────────────────────────────────────

    @property
    def all_selected(self) -> bool:
        return all(self.selected)

    def toggle_role(self, index: int) -> None:
        self.selected[index] = not self.selected[index]

    def toggle_all(self) -> None:
        """Select all, unless everything is already selected (then none)."""
        target = not self.all_selected
        self.selected = [target] * len(self.roles)

    def selected_roles(self) -> list[str]:
        return [r for r, on in zip(self.roles, self.selected) if on]

    # ── Dispatch ────────────────────────────────────────────────

    def handle(self, key: Key) -> Command | None:
        """Apply one keystroke; return work for the driver, if any."""
        handlers = {
            Screen.MAIN: self._handle_main,
            Screen.ROLES: self._handle_roles,
            Screen.CONFIG_MENU: self._handle_config_menu,
            Screen.CONFIG_SHOW: self._handle_back,
            Screen.DONE: self._handle_back,
            Screen.CONFIG_EDIT: self._handle_config_edit,
            Screen.RUNNING: self._handle_running,
        }
        return handlers[self.screen](key)

    def _handle_main(self, key: Key) -> Command | None:
        if key == char("q"):
            self.quitting = True
            return QuitCommand()
        if key != ENTER:
            self._move(key, len(MAIN_MENU))
            return None

        item = MAIN_MENU[self.cursor]
        if item.intent is None:
            self.quitting = True
            return QuitCommand()
        if item.intent in (Intent.RUN, Intent.DRY_RUN):
            self.dry_run = item.intent is Intent.DRY_RUN
            self.message = ""
            self._go(item.intent)
            return None
        if item.intent is Intent.UPDATE:
            self.message = "Updating flux..."
            self._go(Intent.UPDATE)
            return UpdateCommand()
        self._go(item.intent)
        return None

    def _handle_roles(self, key: Key) -> Command | None:
        if key == SPACE:
            self.toggle_role(self.cursor)
        elif key == char("a"):
            self.toggle_all()
        elif key == ENTER:
            tags = self.selected_roles()
            if not tags:
                self.message = "No roles selected"
                return None
            self.message = ""
            self._go(Intent.START)
            return RunCommand(tags=tuple(tags), dry_run=self.dry_run)
        elif key == ESC:
            self.message = ""
            self._go(Intent.BACK)
        else:
            self._move(key, len(self.roles))
        return None

    def _handle_config_menu(self, key: Key) -> Command | None:
        if key == ESC:
            self._go(Intent.BACK)
            return None
        if key != ENTER:
            self._move(key, len(CONFIG_MENU))
            return None

        intent = CONFIG_MENU[self.cursor].intent
        assert intent is not None
        if intent is Intent.SHOW:
            self.config_output = self._render_config()
        elif intent is Intent.PATH:
            self.config_output = str(self.config_path or settings_path())
        elif intent is Intent.EDIT:
            self._start_edit()
        self._go(intent)
        return None

    def _handle_back(self, key: Key) -> Command | None:
        if key in (ESC, ENTER, char("q")):
            self._go(Intent.BACK)
            self.message = ""
            self.failed = False
        return None

    def _handle_running(self, key: Key) -> Command | None:
        # No mid-run cancellation; the driver reports completion.
        return None

    def _render_config(self) -> str:
        try:
            return load_settings(self.config_path).to_yaml()
        except SettingsNotFound as e:
            return f"No config found: {e}\nRun setup first to create one."
        except ConfigError as e:
            return f"Config file is corrupt: {e}"

    # ── Config editor ───────────────────────────────────────────

    def _start_edit(self) -> None:
        if self.settings is None:
            self.settings = Settings.defaults()
        self.edit_fields = edit_fields_for(self.settings)
        self.edit_cursor = 0
        self.edit_done = False
        self.edit_input = self.edit_fields[0].value
        self.message = ""

    def _staged(self, key: str) -> str:
        for f in self.edit_fields:
            if f.key == key:
                return f.value
        return ""

    def field_locked(self, index: int) -> bool:
        """Podman sub-fields are read-only while Podman is switched off."""
        key = self.edit_fields[index].key
        return key in PODMAN_FIELDS and not parse_bool(self._staged("install_podman"))

    def _step(self, direction: int) -> bool:
        """Move the edit cursor, skipping locked fields; False at the ends."""
        index = self.edit_cursor + direction
        while 0 <= index < len(self.edit_fields):
            if not self.field_locked(index):
                self.edit_cursor = index
                self.edit_input = self.edit_fields[index].value
                return True
            index += direction
        return False

    def _commit_field(self) -> bool:
        """Stage the input for the current field; False if it is invalid."""
        f = self.edit_fields[self.edit_cursor]
        value = self.edit_input.strip()
        if f.kind == "shell" and value.lower() not in SHELL_CHOICES:
            self.message = f"Shell must be one of: {', '.join(SHELL_CHOICES)}"
            return False
        if f.kind == "bool":
            value = bool_str(parse_bool(value))
        f.value = value
        self.message = ""
        return True

    def _handle_config_edit(self, key: Key) -> Command | None:
        if self.edit_done:
            if key == ENTER:
                self._save_edits()
            elif key == ESC:
                self.message = "Changes discarded"
                self._go(Intent.CANCEL)
            return None

        if key in (UP, SHIFT_TAB):
            self._step(-1)
        elif key in (DOWN, TAB):
            self._step(+1)
        elif key == ENTER:
            if self._commit_field() and not self._step(+1):
                self.edit_done = True
        elif key == BACKSPACE:
            self.edit_input = self.edit_input[:-1]
        elif key == ESC:
            self.message = "Changes discarded"
            self._go(Intent.CANCEL)
        elif key == SPACE:
            self.edit_input += " "
        elif key.name == "char" and len(key.char) == 1:
            self.edit_input += key.char
        return None

    def _save_edits(self) -> None:
        assert self.settings is not None
        updated = apply_edit_fields(self.settings, self.edit_fields)
        try:
            path = save_settings(updated, self.config_path)
        except ConfigError as e:
            self.message = f"Error saving: {e}"
            self.failed = True
        else:
            self.settings = updated
            self.message = f"Config saved to {path}"
            self.failed = False
        self._go(Intent.SAVE)

    # ── Completion messages from the driver ─────────────────────

    def finish_run(self, error: str | None) -> None:
        self.failed = error is not None
        if error:
            self.message = f"Playbook failed: {error}"
        else:
            mode = "checked (dry run)" if self.dry_run else "applied"
            self.message = f"Setup {mode} successfully!"
        self._go(Intent.FINISHED)

    def finish_update(self, error: str | None) -> None:
        self.failed = error is not None
        self.message = f"Update failed: {error}" if error else "flux updated successfully!"
        self._go(Intent.FINISHED)
