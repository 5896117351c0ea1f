"""
Interactive prompter — line-by-line questions on stdin.

Asks for every setting in a fixed order, showing the current value
(or a fallback when empty) as the default. An empty answer accepts
the default. Sub-fields (podman host, toolchain versions) are only
asked when their parent toggle is on; otherwise they keep their
last-known value.
"""

from __future__ import annotations

import logging
from typing import Callable, TextIO

import click

from flux.core.models.settings import (
    DEFAULT_EXTRA_PACKAGES,
    SHELL_CHOICES,
    Settings,
    parse_bool,
    parse_package_list,
    whoami,
)

logger = logging.getLogger(__name__)


class PromptError(Exception):
    """Input ended (or failed) before every question was answered."""


class Prompter:
    """Collect settings from a human, one line per field.

    Args:
        input_stream: Where answers are read from (default: stdin).
        echo: Output function for the question text.
    """

    def __init__(
        self,
        input_stream: TextIO | None = None,
        echo: Callable[..., None] = click.echo,
    ) -> None:
        self._input = input_stream
        self._echo = echo

    # ── Primitives ──────────────────────────────────────────────

    def _readline(self) -> str:
        stream = self._input or click.get_text_stream("stdin")
        try:
            line = stream.readline()
        except OSError as e:
            raise PromptError(f"Cannot read input: {e}") from e
        if not line:
            raise PromptError("Input closed before all settings were entered")
        return line.strip()

    def ask(self, label: str, current: str, fallback: str = "") -> str:
        """Ask for a string; empty answer keeps ``current`` (or ``fallback``)."""
        default = current or fallback
        if default:
            self._echo(f"  {label} [{default}]: ", nl=False)
        else:
            self._echo(f"  {label}: ", nl=False)
        answer = self._readline()
        return answer or default

    def ask_bool(self, label: str, current: bool) -> bool:
        """Ask a yes/no question; empty answer keeps ``current``."""
        default = "y" if current else "n"
        self._echo(f"  {label} [{default}]: ", nl=False)
        answer = self._readline()
        if not answer:
            return current
        return parse_bool(answer)

    def ask_choice(
        self, label: str, current: str, choices: tuple[str, ...], fallback: str
    ) -> str:
        """Ask until the answer is one of ``choices`` (case-insensitive)."""
        while True:
            answer = self.ask(label, current, fallback).lower()
            if answer in choices:
                return answer
            self._echo(f"  Please answer one of: {', '.join(choices)}")

    # ── Full flow ───────────────────────────────────────────────

    def prompt_for_settings(self, existing: Settings | None) -> Settings:
        """Run every prompt and return a fully populated Settings.

        Values from ``existing`` are shown as defaults; with None the
        static defaults are used.

        Raises:
            PromptError: stdin closed or unreadable.
        """
        s = existing.model_copy(deep=True) if existing else Settings.defaults()

        s.username = self.ask("Username", s.username, whoami())
        s.email = self.ask("Email", s.email)
        s.git_name = self.ask("Git display name", s.git_name, s.username)
        s.git_email = self.ask("Git email", s.git_email, s.email)
        s.git_https = self.ask_bool("Use HTTPS for GitHub (instead of SSH)?", s.git_https)
        s.default_shell = self.ask_choice(
            "Default shell (bash/zsh)", s.default_shell, SHELL_CHOICES, "zsh",
        )

        s.install_podman = self.ask_bool("Install Podman (remote client)?", s.install_podman)
        if s.install_podman:
            s.podman_wsl_distro = self.ask(
                "Podman WSL distro name", s.podman_wsl_distro, "podman-machine",
            )
            s.podman_wsl_host = self.ask("Podman WSL host", s.podman_wsl_host, "localhost")
            s.podman_wsl_port = self.ask("Podman WSL SSH port", s.podman_wsl_port, "22")

        s.install_bun = self.ask_bool("Install Bun?", s.install_bun)

        s.install_go = self.ask_bool("Install Go?", s.install_go)
        if s.install_go:
            s.go_version = self.ask("Go version", s.go_version, "1.26")

        s.install_dotnet = self.ask_bool("Install .NET SDK?", s.install_dotnet)
        if s.install_dotnet:
            s.dotnet_version = self.ask(".NET SDK version", s.dotnet_version, "10.0")

        s.install_python = self.ask_bool("Install Python?", s.install_python)
        if s.install_python:
            s.python_version = self.ask("Python version", s.python_version, "3.13")

        packages = self.ask(
            "Extra apt packages (comma-separated)",
            ", ".join(s.extra_packages),
            ", ".join(DEFAULT_EXTRA_PACKAGES),
        )
        s.extra_packages = parse_package_list(packages)

        logger.debug("Prompted settings for user '%s'", s.username)
        return s
