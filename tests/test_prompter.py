"""
Tests for the interactive prompter — question order, defaults, and
conditional sub-fields.
"""

import io

import pytest

from flux.core.config.prompter import Prompter, PromptError
from flux.core.models.settings import Settings


class _Recorder:
    """Collects prompt text written by the prompter."""

    def __init__(self):
        self.lines: list[str] = []

    def __call__(self, message: str = "", nl: bool = True, **_kwargs) -> None:
        self.lines.append(message)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def _run(answers: list[str], existing: Settings | None = None):
    out = _Recorder()
    stream = io.StringIO("".join(a + "\n" for a in answers))
    settings = Prompter(input_stream=stream, echo=out).prompt_for_settings(existing)
    return settings, out, stream


class TestPrimitives:
    def test_empty_answer_keeps_current(self):
        p = Prompter(input_stream=io.StringIO("\n"), echo=_Recorder())
        assert p.ask("Email", "a@b.c") == "a@b.c"

    def test_fallback_used_when_current_empty(self):
        out = _Recorder()
        p = Prompter(input_stream=io.StringIO("\n"), echo=out)
        assert p.ask("Git email", "", "x@y.z") == "x@y.z"
        assert "[x@y.z]" in out.text

    def test_no_default_shown(self):
        out = _Recorder()
        p = Prompter(input_stream=io.StringIO("me@example.com\n"), echo=out)
        assert p.ask("Email", "") == "me@example.com"
        assert out.lines[0] == "  Email: "

    def test_answer_is_trimmed(self):
        p = Prompter(input_stream=io.StringIO("   bob  \n"), echo=_Recorder())
        assert p.ask("Username", "alice") == "bob"

    def test_bool_default_marker(self):
        out = _Recorder()
        p = Prompter(input_stream=io.StringIO("\n\n"), echo=out)
        assert p.ask_bool("Install Bun?", True) is True
        assert p.ask_bool("Install Go?", False) is False
        assert "[y]" in out.lines[0]
        assert "[n]" in out.lines[1]

    def test_bool_answers(self):
        p = Prompter(input_stream=io.StringIO("no\nYES\nmaybe\n"), echo=_Recorder())
        assert p.ask_bool("a", True) is False
        assert p.ask_bool("b", False) is True
        assert p.ask_bool("c", True) is False

    def test_choice_reasks_until_valid(self):
        out = _Recorder()
        p = Prompter(input_stream=io.StringIO("fish\nBash\n"), echo=out)
        assert p.ask_choice("Shell", "zsh", ("bash", "zsh"), "zsh") == "bash"
        assert "Please answer one of: bash, zsh" in out.text

    def test_eof_raises(self):
        p = Prompter(input_stream=io.StringIO(""), echo=_Recorder())
        with pytest.raises(PromptError, match="Input closed"):
            p.ask("Username", "alice")


class TestPromptForSettings:
    def test_full_answers(self):
        s, _, _ = _run([
            "alice", "alice@example.com", "Alice A", "",  # git email → email
            "n", "bash",
            "y", "pm", "10.0.0.2", "2222",
            "n",
            "y", "1.25",
            "n",
            "y", "3.12",
            "jq, tmux",
        ])
        assert s.username == "alice"
        assert s.git_name == "Alice A"
        assert s.git_email == "alice@example.com"
        assert s.git_https is False
        assert s.default_shell == "bash"
        assert s.podman_wsl_distro == "pm"
        assert s.podman_wsl_host == "10.0.0.2"
        assert s.podman_wsl_port == "2222"
        assert s.install_bun is False
        assert s.go_version == "1.25"
        assert s.install_dotnet is False
        assert s.python_version == "3.12"
        assert s.extra_packages == ["jq", "tmux"]

    def test_disabled_toggles_skip_sub_fields(self):
        existing = Settings(podman_wsl_port="2200", go_version="1.20")
        answers = [
            "", "", "", "", "", "",
            "n",        # podman off: no distro/host/port questions
            "",
            "n",        # go off: no version question
            "", "",     # dotnet on + version
            "", "",     # python on + version
            "",         # packages
        ]
        s, out, stream = _run(answers, existing)
        assert s.install_podman is False
        assert s.podman_wsl_port == "2200"
        assert s.install_go is False
        assert s.go_version == "1.20"
        assert stream.read() == ""  # every answer consumed, none left over
        assert "Podman WSL SSH port" not in out.text
        assert "Go version" not in out.text

    def test_existing_values_are_defaults(self):
        existing = Settings(username="zoe", email="z@example.com", git_name="Zoe")
        s, out, _ = _run([""] * 18, existing)
        assert s.username == "zoe"
        assert s.git_name == "Zoe"
        assert s.git_email == "z@example.com"
        assert "[zoe]" in out.text

    def test_existing_not_mutated(self):
        existing = Settings(username="zoe")
        s, _, _ = _run(["max"] + [""] * 17, existing)
        assert s.username == "max"
        assert existing.username == "zoe"

    def test_empty_packages_fall_back_to_defaults(self):
        s, _, _ = _run([""] * 17 + [""], Settings(extra_packages=[]))
        assert s.extra_packages == ["ripgrep", "fd-find", "jq", "htop"]

    def test_blank_entries_dropped(self):
        s, _, _ = _run([""] * 17 + ["ripgrep, , fd-find,  "])
        assert s.extra_packages == ["ripgrep", "fd-find"]

    def test_input_ends_early(self):
        with pytest.raises(PromptError):
            _run(["alice", "a@example.com"])

    def test_question_order(self):
        _, out, _ = _run([""] * 18)
        labels = [line.strip().split(" [")[0].rstrip(":") for line in out.lines]
        assert labels[:7] == [
            "Username",
            "Email",
            "Git display name",
            "Git email",
            "Use HTTPS for GitHub (instead of SSH)?",
            "Default shell (bash/zsh)",
            "Install Podman (remote client)?",
        ]
        assert labels[-1] == "Extra apt packages (comma-separated)"
