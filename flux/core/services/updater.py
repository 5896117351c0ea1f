"""
Self-updater — pull the install checkout and reinstall flux from it.

install.sh clones the repository into ~/.local/share/flux and installs
the package from there; updating is ``git pull --ff-only`` followed by
a reinstall into the same interpreter.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path

from flux.core.services.subprocess_runner import (
    CommandFailed,
    CommandNotFound,
    OutputFunc,
    run_checked,
)

logger = logging.getLogger(__name__)

DEFAULT_INSTALL_DIR = Path(".local") / "share" / "flux"

# Overrides the checkout location
INSTALL_DIR_ENV_VAR = "FLUX_HOME"

UP_TO_DATE_MARKER = "Your branch is up to date"


class UpdateError(Exception):
    """Raised when the update cannot be completed."""


def install_dir() -> Path:
    """Where install.sh cloned flux."""
    override = os.environ.get(INSTALL_DIR_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / DEFAULT_INSTALL_DIR


def _discard(_line: str) -> None:
    pass


def _git(args: list[str], repo: Path, emit: OutputFunc, what: str) -> None:
    try:
        run_checked(["git", *args], emit, cwd=repo)
    except CommandNotFound as e:
        raise UpdateError("git not found on PATH") from e
    except CommandFailed as e:
        raise UpdateError(f"{what} failed (exit {e.returncode})") from e


def is_up_to_date(repo: Path) -> bool:
    """True if ``git status -uno`` reports the branch is current."""
    try:
        result = subprocess.run(
            ["git", "status", "-uno"],
            cwd=repo,
            capture_output=True,
            text=True,
            env={**os.environ, "LC_ALL": "C"},
        )
    except FileNotFoundError as e:
        raise UpdateError("git not found on PATH") from e
    if result.returncode != 0:
        raise UpdateError(f"git status failed: {result.stderr.strip()}")
    return UP_TO_DATE_MARKER in result.stdout


def update(on_output: OutputFunc | None = None) -> bool:
    """Fetch, fast-forward, and reinstall.

    Returns:
        True if an update was applied, False if already current.

    Raises:
        UpdateError: The checkout is missing or any step failed.
    """
    emit = on_output or _discard
    repo = install_dir()

    if not (repo / ".git").exists():
        raise UpdateError(
            f"flux install directory not found at {repo}; "
            "was it installed via install.sh?"
        )

    emit("→ Checking for updates...")
    _git(["fetch", "--quiet"], repo, emit, "git fetch")

    if is_up_to_date(repo):
        emit("✓ Already up to date")
        return False

    emit("→ Pulling latest changes...")
    _git(["pull", "--ff-only"], repo, emit, "git pull")

    emit("→ Reinstalling...")
    try:
        run_checked(
            [sys.executable, "-m", "pip", "install", "--quiet", "--upgrade", str(repo)],
            emit,
        )
    except CommandFailed as e:
        raise UpdateError(f"reinstall failed (exit {e.returncode})") from e

    logger.info("flux updated from %s", repo)
    emit(f"✓ Updated successfully ({repo})")
    return True
