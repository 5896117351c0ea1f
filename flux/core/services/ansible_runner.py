"""
Ansible runner — locate, install, and invoke ansible-playbook.

Channel-independent: no click or terminal dependency. Output goes
through an ``on_output`` callback (CLI prints it, the menu streams it).

Invocation shape::

    ansible-playbook <dir>/playbook.yml -i <dir>/inventory.ini --connection=local
        [--extra-vars '<json>'] [--tags a,b] [--check --diff]
        [--become-password-file <tmp> | --ask-become-pass]

Privilege: when not root, either ``--ask-become-pass`` (interactive)
or an owner-only temp file holding the password, removed when the
run ends whatever the outcome.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Iterator

from flux.core.services.subprocess_runner import (
    CommandFailed,
    CommandNotFound,
    OutputFunc,
    run_checked,
    run_interactive,
    run_streaming,
)

logger = logging.getLogger(__name__)

ANSIBLE_PLAYBOOK = "ansible-playbook"
PLAYBOOK_FILE = "playbook.yml"
INVENTORY_FILE = "inventory.ini"
PLAYBOOK_DIR_NAME = "ansible"

# Standard install location (relative to $HOME), written by install.sh
INSTALL_SHARE_DIR = Path(".local") / "share" / "flux"

# How many directories above the cwd are searched for ansible/
MAX_PARENT_DEPTH = 10

# Run in order when ansible-playbook is missing; first failure aborts.
INSTALL_COMMANDS: tuple[tuple[str, ...], ...] = (
    ("sudo", "apt-get", "update", "-qq"),
    ("sudo", "apt-get", "install", "-y", "-qq", "software-properties-common"),
    ("sudo", "apt-add-repository", "--yes", "--update", "ppa:ansible/ansible"),
    ("sudo", "apt-get", "install", "-y", "-qq", "ansible"),
)

# Stable, uncoloured output regardless of the user's locale
ANSIBLE_ENV: dict[str, str] = {
    "LC_ALL": "C.UTF-8",
    "LANG": "C.UTF-8",
    "ANSIBLE_FORCE_COLOR": "0",
    "ANSIBLE_NOCOLOR": "1",
}


# ── Errors ──────────────────────────────────────────────────────


class RunnerError(Exception):
    """Base class for ansible runner failures."""


class ToolNotFound(RunnerError):
    """ansible-playbook is not installed (and could not be installed)."""


class TaskDirNotFound(RunnerError):
    """No ansible/ directory containing playbook.yml was found."""


class SerializationFailed(RunnerError):
    """Extra vars could not be encoded as JSON."""


class InvocationFailed(RunnerError):
    """A command exited with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, message: str = "") -> None:
        self.command = list(command)
        self.returncode = returncode
        super().__init__(
            message or f"{command[0]} failed (exit {returncode})"
        )


class InstallFailed(InvocationFailed):
    """One of the installation commands failed."""

    def __init__(self, command: list[str], returncode: int) -> None:
        super().__init__(
            command,
            returncode,
            f"command {' '.join(command)!r} failed (exit {returncode})",
        )


# ── Helpers ─────────────────────────────────────────────────────


def _is_root() -> bool:
    return os.geteuid() == 0


def _discard(_line: str) -> None:
    pass


def ansible_env() -> dict[str, str]:
    """Current environment plus the locale/colour overrides."""
    env = os.environ.copy()
    env.update(ANSIBLE_ENV)
    return env


def is_installed() -> bool:
    return shutil.which(ANSIBLE_PLAYBOOK) is not None


# ── Install ─────────────────────────────────────────────────────


def ensure_installed(on_output: OutputFunc | None = None) -> None:
    """Install Ansible from the PPA if ansible-playbook is missing.

    Raises:
        InstallFailed: An install command exited non-zero (no rollback).
        ToolNotFound: A command was missing, or ansible-playbook is
            still absent after installing.
    """
    emit = on_output or _discard

    if is_installed():
        emit(f"✓ {ANSIBLE_PLAYBOOK} already installed")
        return

    logger.info("%s not found, installing Ansible", ANSIBLE_PLAYBOOK)
    emit("Installing Ansible...")

    for args in INSTALL_COMMANDS:
        cmd = list(args)
        emit(f"→ {' '.join(cmd)}")
        try:
            run_checked(cmd, emit)
        except CommandFailed as e:
            logger.error("Install step failed: %s (exit %d)", cmd, e.returncode)
            raise InstallFailed(cmd, e.returncode) from e
        except CommandNotFound as e:
            raise ToolNotFound(f"Cannot install Ansible: {e}") from e

    if not is_installed():
        raise ToolNotFound(f"{ANSIBLE_PLAYBOOK} still not on PATH after install")


# ── Discovery ───────────────────────────────────────────────────


def candidate_dirs(
    home: Path | None,
    executable: Path | None,
    cwd: Path | None,
    max_depth: int = MAX_PARENT_DEPTH,
) -> list[Path]:
    """Directories that may hold the playbook, highest priority first.

    Order:
        1. ~/.local/share/flux/ansible
        2. next to the executable, one and two levels above it
        3. the cwd, then each parent up to ``max_depth`` levels
    """
    candidates: list[Path] = []

    if home is not None:
        candidates.append(home / INSTALL_SHARE_DIR / PLAYBOOK_DIR_NAME)

    if executable is not None:
        exe_dir = executable.parent
        candidates.extend([
            exe_dir / PLAYBOOK_DIR_NAME,
            exe_dir.parent / PLAYBOOK_DIR_NAME,
            exe_dir.parent.parent / PLAYBOOK_DIR_NAME,
        ])

    if cwd is not None:
        current = cwd
        for _ in range(max_depth):
            candidates.append(current / PLAYBOOK_DIR_NAME)
            parent = current.parent
            if parent == current:
                break  # filesystem root
            current = parent

    return candidates


def is_playbook_dir(path: Path) -> bool:
    return (path / PLAYBOOK_FILE).is_file()


def _executable_path() -> Path | None:
    argv0 = sys.argv[0] if sys.argv else ""
    if not argv0:
        return None
    resolved = shutil.which(argv0) or argv0
    return Path(resolved).resolve()


def find_playbook_dir(
    home: Path | None = None,
    executable: Path | None = None,
    cwd: Path | None = None,
) -> Path:
    """Return the first candidate directory containing playbook.yml.

    Raises:
        TaskDirNotFound: No candidate qualifies.
    """
    if home is None:
        home = Path.home()
    if executable is None:
        executable = _executable_path()
    if cwd is None:
        cwd = Path.cwd()

    candidates = candidate_dirs(home, executable, cwd)
    for candidate in candidates:
        if is_playbook_dir(candidate):
            found = candidate.resolve()
            logger.debug("Using playbook directory %s", found)
            return found

    logger.debug("Searched for %s in: %s", PLAYBOOK_FILE, candidates)
    raise TaskDirNotFound(
        f"cannot find {PLAYBOOK_DIR_NAME}/ directory containing {PLAYBOOK_FILE}"
    )


# ── Invocation ──────────────────────────────────────────────────


@contextlib.contextmanager
def become_password_file(password: str) -> Iterator[Path]:
    """Owner-only temp file holding the become password.

    The file is removed when the block exits, whether it succeeded
    or raised.
    """
    fd, name = tempfile.mkstemp(prefix="flux-become-")
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            os.fchmod(f.fileno(), 0o600)
            f.write(password)
        yield path
    finally:
        path.unlink(missing_ok=True)


def build_command(
    playbook_dir: Path,
    extra_vars: dict | None = None,
    tags: str = "",
    dry_run: bool = False,
    become_file: Path | None = None,
    is_root: bool | None = None,
) -> list[str]:
    """Assemble the ansible-playbook argument list.

    Raises:
        SerializationFailed: ``extra_vars`` is not JSON-serializable.
    """
    if is_root is None:
        is_root = _is_root()

    cmd = [
        ANSIBLE_PLAYBOOK,
        str(playbook_dir / PLAYBOOK_FILE),
        "-i", str(playbook_dir / INVENTORY_FILE),
        "--connection=local",
    ]

    if extra_vars:
        try:
            cmd += ["--extra-vars", json.dumps(extra_vars)]
        except (TypeError, ValueError) as e:
            raise SerializationFailed(f"failed to encode extra vars: {e}") from e

    if tags:
        cmd += ["--tags", tags]

    if dry_run:
        cmd += ["--check", "--diff"]

    if not is_root:
        if become_file is not None:
            cmd += ["--become-password-file", str(become_file)]
        else:
            cmd.append("--ask-become-pass")

    return cmd


def _banner(cmd: list[str], dry_run: bool) -> str:
    mode = "DRY RUN (check mode)" if dry_run else "APPLY"
    return f"[{mode}] {' '.join(cmd)}"


def _require_playbook(playbook_dir: Path) -> None:
    if not is_playbook_dir(playbook_dir):
        raise TaskDirNotFound(f"playbook not found: {playbook_dir / PLAYBOOK_FILE}")


def run_playbook(
    playbook_dir: Path,
    extra_vars: dict | None = None,
    tags: str = "",
    dry_run: bool = False,
    on_output: OutputFunc | None = None,
) -> None:
    """Run the playbook attached to this terminal.

    Ansible prompts for the become password itself when not root.

    Raises:
        TaskDirNotFound, SerializationFailed, ToolNotFound, InvocationFailed
    """
    _require_playbook(playbook_dir)
    cmd = build_command(playbook_dir, extra_vars, tags, dry_run)

    emit = on_output or _discard
    emit(_banner(cmd, dry_run))
    emit("")

    try:
        returncode = run_interactive(cmd, cwd=playbook_dir, env=ansible_env())
    except CommandNotFound as e:
        raise ToolNotFound(str(e)) from e

    if returncode != 0:
        raise InvocationFailed(cmd, returncode)


def run_playbook_streaming(
    playbook_dir: Path,
    extra_vars: dict | None = None,
    tags: str = "",
    dry_run: bool = False,
    become_password: str = "",
    on_output: OutputFunc | None = None,
) -> None:
    """Run the playbook, delivering merged output line by line.

    When a become password is given (and we are not root) it is
    handed over through a temp file for the duration of the run.

    Raises:
        TaskDirNotFound, SerializationFailed, ToolNotFound, InvocationFailed
    """
    _require_playbook(playbook_dir)
    emit = on_output or _discard

    with contextlib.ExitStack() as stack:
        become_file = None
        if become_password and not _is_root():
            become_file = stack.enter_context(become_password_file(become_password))

        cmd = build_command(playbook_dir, extra_vars, tags, dry_run, become_file)
        emit(_banner(cmd, dry_run))
        emit("")

        try:
            returncode = run_streaming(
                cmd, emit, cwd=playbook_dir, env=ansible_env(),
            )
        except CommandNotFound as e:
            raise ToolNotFound(str(e)) from e

    if returncode != 0:
        raise InvocationFailed(cmd, returncode)
