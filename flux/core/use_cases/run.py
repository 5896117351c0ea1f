"""
Run use case — apply (or dry-run) the playbook with the user's settings.

This is the top-level orchestrator shared by the CLI and the menu:
ensure Ansible is installed, locate the playbook directory, turn the
settings into extra vars, and invoke ansible-playbook. Failures are
captured in the result; nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from flux.core.models.run import RunRequest
from flux.core.models.settings import Settings
from flux.core.services import ansible_runner
from flux.core.services.ansible_runner import InvocationFailed, RunnerError
from flux.core.services.subprocess_runner import OutputFunc

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of one playbook run."""

    request: RunRequest = field(default_factory=RunRequest)
    playbook_dir: Path | None = None
    returncode: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        """One-line summary for the status screen / CLI footer."""
        if self.error:
            return f"Playbook failed: {self.error}"
        if self.request.dry_run:
            return "Setup checked (dry run) successfully!"
        return "Setup applied successfully!"

    def to_dict(self) -> dict:
        result: dict = {
            "ok": self.ok,
            "dry_run": self.request.dry_run,
            "tags": list(self.request.tags),
            "playbook_dir": str(self.playbook_dir) if self.playbook_dir else None,
            "returncode": self.returncode,
        }
        if self.error:
            result["error"] = self.error
        return result


def build_request(
    settings: Settings,
    tags: list[str] | None = None,
    dry_run: bool = False,
    become_password: str = "",
) -> RunRequest:
    """Resolve settings and selections into a RunRequest."""
    return RunRequest(
        tags=[t.strip() for t in (tags or []) if t.strip()],
        dry_run=dry_run,
        extra_vars=settings.to_extra_vars(),
        become_password=become_password,
    )


def run_setup(
    settings: Settings,
    tags: list[str] | None = None,
    dry_run: bool = False,
    become_password: str = "",
    on_output: OutputFunc | None = None,
    interactive: bool = False,
    playbook_dir: Path | None = None,
) -> RunResult:
    """Run the setup playbook.

    Args:
        settings: Loaded settings document.
        tags: Roles to run (empty/None = every role).
        dry_run: Check mode with diffs, no changes applied.
        become_password: Sudo password handed over via a temp file.
        on_output: Receives every output line (streaming mode).
        interactive: Attach ansible to the terminal instead of streaming,
            so it can prompt for the become password itself.
        playbook_dir: Skip discovery and use this directory.

    Returns:
        RunResult; ``error`` is set on any failure.
    """
    request = build_request(settings, tags, dry_run, become_password)
    result = RunResult(request=request)

    logger.info(
        "Running setup for %s (tags=%s, dry_run=%s)",
        settings.username, request.tag_filter or "all", dry_run,
    )

    try:
        ansible_runner.ensure_installed(on_output)

        if playbook_dir is None:
            playbook_dir = ansible_runner.find_playbook_dir()
        result.playbook_dir = playbook_dir

        if interactive:
            ansible_runner.run_playbook(
                playbook_dir,
                request.extra_vars,
                request.tag_filter,
                request.dry_run,
                on_output=on_output,
            )
        else:
            ansible_runner.run_playbook_streaming(
                playbook_dir,
                request.extra_vars,
                request.tag_filter,
                request.dry_run,
                become_password=request.become_password,
                on_output=on_output,
            )
        result.returncode = 0

    except InvocationFailed as e:
        result.returncode = e.returncode
        result.error = str(e)
    except RunnerError as e:
        result.error = str(e)

    if result.error:
        logger.warning("Setup failed: %s", result.error)
    return result
