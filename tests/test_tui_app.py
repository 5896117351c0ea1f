"""
Tests for menu rendering and the keyboard driver.

The driver is exercised with a scripted key source and a recording
echo; the playbook and updater are replaced with stubs.
"""

import queue
from pathlib import Path

import pytest

from flux.core.models.settings import Settings
from flux.core.config.prompter import PromptError
from flux.core.models.run import RunRequest
from flux.core.use_cases.run import RunResult
from flux.ui.tui import app as app_module
from flux.ui.tui import state
from flux.ui.tui.app import MenuApp, decode_key
from flux.ui.tui.render import RENDERERS, render
from flux.ui.tui.state import MenuModel, Screen
from flux.ui.tui.theme import Style, Theme

PLAIN = Theme.plain()


class _Output:
    def __init__(self):
        self.chunks: list[str] = []

    def __call__(self, message: str = "", nl: bool = True, **_kwargs) -> None:
        self.chunks.append(str(message) + ("\n" if nl else ""))

    @property
    def text(self) -> str:
        return "".join(self.chunks)


def _keys(*raw: str):
    """Scripted key source; EOF once the script runs out."""
    it = iter(raw)

    def getchar() -> str:
        try:
            return next(it)
        except StopIteration:
            raise EOFError from None

    return getchar


def _app(model: MenuModel, *raw: str) -> tuple[MenuApp, _Output]:
    out = _Output()
    app = MenuApp(model=model, theme=PLAIN, getchar=_keys(*raw), echo=out, clear=lambda: None)
    return app, out


# ── Keys ────────────────────────────────────────────────────────


class TestDecodeKey:
    def test_named_keys(self):
        assert decode_key("\r") == state.ENTER
        assert decode_key("\x1b") == state.ESC
        assert decode_key("\x1b[A") == state.UP
        assert decode_key("\x1b[B") == state.DOWN
        assert decode_key(" ") == state.SPACE
        assert decode_key("\x7f") == state.BACKSPACE
        assert decode_key("\x1b[Z") == state.SHIFT_TAB

    def test_printable(self):
        assert decode_key("q") == state.char("q")

    def test_unknown(self):
        assert decode_key("\x1b[15~") is None


# ── Rendering ───────────────────────────────────────────────────


class TestTheme:
    def test_plain_style_is_identity(self):
        assert Style().render("abc") == "abc"

    def test_width_and_pad(self):
        assert Style(width=5).render("ab") == "ab   "
        assert Style(pad=1).render("x") == " x "

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert Theme.from_env() == Theme.plain()


class TestRender:
    def test_every_screen_has_renderer(self):
        assert set(RENDERERS) == set(Screen)

    def test_main(self):
        text = render(MenuModel(), PLAIN)
        assert "⚡ flux" in text
        assert "> Run Setup" in text
        assert "Quit" in text

    def test_roles_dry_run(self):
        m = MenuModel(roles=("base", "shell"), screen=Screen.ROLES, dry_run=True)
        m.selected = [True, False]
        text = render(m, PLAIN)
        assert "DRY RUN" in text
        assert "> [x] base" in text
        assert "[ ] shell" in text

    def test_roles_message(self):
        m = MenuModel(screen=Screen.ROLES, message="No roles selected")
        assert "No roles selected" in render(m, PLAIN)

    def test_editor_shows_locked_fields(self):
        m = MenuModel(screen=Screen.CONFIG_EDIT, settings=Settings(install_podman=False))
        m.edit_fields = state.edit_fields_for(m.settings)
        m.edit_input = m.edit_fields[0].value
        text = render(m, PLAIN)
        assert "(podman disabled)" in text
        m.edit_done = True
        assert "Press enter to save" in render(m, PLAIN)

    def test_done_failed(self):
        m = MenuModel(screen=Screen.DONE, message="Playbook failed: boom", failed=True)
        assert "✗ Playbook failed: boom" in render(m, PLAIN)

    def test_quitting_renders_nothing(self):
        assert render(MenuModel(quitting=True), PLAIN) == ""


# ── Driver ──────────────────────────────────────────────────────


@pytest.fixture
def root(monkeypatch):
    """Pretend to be root so no sudo password is asked."""
    monkeypatch.setattr(app_module.os, "geteuid", lambda: 0)


class TestMenuApp:
    def test_quit(self):
        app, _ = _app(MenuModel(), "q")
        app.run()
        assert app.model.quitting

    def test_ctrl_c_quits(self):
        def interrupted() -> str:
            raise KeyboardInterrupt

        app = MenuApp(model=MenuModel(), theme=PLAIN, getchar=interrupted,
                      echo=_Output(), clear=lambda: None)
        app.run()
        assert app.model.quitting

    def test_run_flow(self, root, monkeypatch):
        seen: dict = {}

        def fake_run_setup(settings, tags=None, dry_run=False, become_password="",
                           on_output=None, interactive=False, playbook_dir=None):
            seen.update(tags=tags, dry_run=dry_run, interactive=interactive)
            on_output("PLAY RECAP")
            return RunResult(request=RunRequest(tags=tags, dry_run=dry_run))

        monkeypatch.setattr(app_module, "run_setup", fake_run_setup)

        model = MenuModel(roles=("base", "shell"), settings=Settings())
        # dry run → deselect "base" → start → back from done → quit
        app, out = _app(model, "\x1b[B", "\r", " ", "\r", "\r", "q")
        app.run()

        assert seen == {"tags": ["shell"], "dry_run": True, "interactive": False}
        assert "PLAY RECAP" in out.text
        assert "Setup checked (dry run) successfully!" in out.text
        assert app.model.screen is Screen.MAIN

    def test_run_failure_reported(self, root, monkeypatch):
        def fake_run_setup(settings, **kwargs):
            return RunResult(error="ansible-playbook failed (exit 2)")

        monkeypatch.setattr(app_module, "run_setup", fake_run_setup)
        model = MenuModel(roles=("base",), settings=Settings())
        app, _ = _app(model, "\r", "\r")
        app.run()
        assert model.screen is Screen.DONE
        assert model.failed
        assert model.message == "Playbook failed: ansible-playbook failed (exit 2)"

    def test_unexpected_error_reported(self, root, monkeypatch):
        def exploding(settings, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(app_module, "run_setup", exploding)
        model = MenuModel(roles=("base",), settings=Settings(), screen=Screen.RUNNING)
        app, _ = _app(model)
        app.execute(state.RunCommand(tags=("base",), dry_run=False))
        assert model.failed
        assert "kaboom" in model.message
        assert model.screen is Screen.DONE

    def test_config_error_reported(self, root, monkeypatch, isolated_config: Path):
        def aborted(path):
            raise PromptError("Input closed before all settings were entered")

        monkeypatch.setattr(app_module, "load_or_create", aborted)
        monkeypatch.setattr(
            app_module, "run_setup", lambda settings, **kw: pytest.fail("must not run"),
        )
        model = MenuModel(config_path=isolated_config, screen=Screen.RUNNING)
        app, _ = _app(model)
        app.execute(state.RunCommand(tags=("base",), dry_run=False))
        assert model.screen is Screen.DONE
        assert model.failed
        assert model.message.startswith("Playbook failed: Config error: Input closed")

    def test_missing_settings_prompted(self, root, monkeypatch, isolated_config: Path):
        created = Settings(username="new")
        monkeypatch.setattr(app_module, "load_or_create", lambda path: created)
        monkeypatch.setattr(
            app_module, "run_setup", lambda settings, **kw: RunResult(),
        )
        model = MenuModel(config_path=isolated_config, screen=Screen.RUNNING)
        app, _ = _app(model)
        app.execute(state.RunCommand(tags=("base",), dry_run=False))
        assert model.settings is created
        assert model.screen is Screen.DONE

    def test_non_root_asks_password(self, monkeypatch):
        monkeypatch.setattr(app_module.os, "geteuid", lambda: 1000)
        monkeypatch.setattr(app_module.click, "prompt", lambda *a, **k: "pw")
        seen: dict = {}

        def fake_run_setup(settings, **kwargs):
            seen.update(kwargs)
            return RunResult()

        monkeypatch.setattr(app_module, "run_setup", fake_run_setup)
        app, _ = _app(MenuModel(settings=Settings(), screen=Screen.RUNNING))
        app.execute(state.RunCommand(tags=("base",), dry_run=False))
        assert seen["become_password"] == "pw"
        assert seen["interactive"] is False

    def test_no_password_runs_interactively(self, monkeypatch):
        monkeypatch.setattr(app_module.os, "geteuid", lambda: 1000)
        monkeypatch.setattr(app_module.click, "prompt", lambda *a, **k: "")
        seen: dict = {}

        def fake_run_setup(settings, **kwargs):
            seen.update(kwargs)
            return RunResult()

        monkeypatch.setattr(app_module, "run_setup", fake_run_setup)
        app, _ = _app(MenuModel(settings=Settings(), screen=Screen.RUNNING))
        app.execute(state.RunCommand(tags=("base",), dry_run=False))
        assert seen["interactive"] is True

    def test_update(self, monkeypatch):
        def fake_update(on_output=None):
            on_output("✓ Already up to date")
            return False

        monkeypatch.setattr(app_module.updater, "update", fake_update)
        model = MenuModel()
        model.screen = Screen.RUNNING
        app, out = _app(model)
        app.execute(state.UpdateCommand())
        assert model.screen is Screen.DONE
        assert model.message == "flux updated successfully!"
        assert "Already up to date" in out.text

    def test_update_failure(self, monkeypatch):
        def failing(on_output=None):
            raise app_module.updater.UpdateError("git pull failed (exit 1)")

        monkeypatch.setattr(app_module.updater, "update", failing)
        model = MenuModel()
        model.screen = Screen.RUNNING
        app, _ = _app(model)
        app.execute(state.UpdateCommand())
        assert model.failed
        assert model.message == "Update failed: git pull failed (exit 1)"

    def test_ctrl_c_during_run_waits_for_result(self, root, monkeypatch):
        class InterruptedOnce(queue.Queue):
            interrupted = False

            def get(self, block=True, timeout=None):
                if not InterruptedOnce.interrupted:
                    InterruptedOnce.interrupted = True
                    raise KeyboardInterrupt
                return super().get(block, timeout)

        monkeypatch.setattr(app_module.queue, "Queue", InterruptedOnce)
        monkeypatch.setattr(
            app_module, "run_setup",
            lambda settings, **kw: RunResult(error="ansible-playbook failed (exit 130)"),
        )
        model = MenuModel(settings=Settings(), screen=Screen.RUNNING)
        app, out = _app(model)
        app.execute(state.RunCommand(tags=("base",), dry_run=False))
        assert "Interrupted; waiting for the running command to exit" in out.text
        assert "cannot be cancelled" not in out.text
        assert model.screen is Screen.DONE
        assert model.message == "Playbook failed: ansible-playbook failed (exit 130)"
