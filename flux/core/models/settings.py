"""
Settings model — the user's preferences, persisted as config.yaml.

Every field has a default, so a document that has been through
load-or-create is always fully populated. Unknown keys are ignored
and missing keys fall back to defaults when decoding; there is no
schema migration.

The same model feeds two outputs:
    - ``to_yaml()``        → the settings file on disk
    - ``to_extra_vars()``  → the ``--extra-vars`` blob for ansible-playbook
"""

from __future__ import annotations

import logging
import os

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

# Role tags the user can select (order is display order).
AVAILABLE_ROLES: tuple[str, ...] = ("base", "git-config", "shell", "dev-tools")

SHELL_CHOICES: tuple[str, ...] = ("bash", "zsh")

DEFAULT_EXTRA_PACKAGES: tuple[str, ...] = ("ripgrep", "fd-find", "jq", "htop")

# Version fields holding this token are left out of the extra vars so the
# playbook's own defaults decide which release to install.
LATEST = "latest"

VERSION_FIELDS: tuple[str, ...] = ("go_version", "dotnet_version", "python_version")

PODMAN_FIELDS: tuple[str, ...] = ("podman_wsl_distro", "podman_wsl_host", "podman_wsl_port")

# Free-text fields a hand-edited YAML file may hold as bare numbers
TEXT_FIELDS: tuple[str, ...] = (
    "username", "email", "git_name", "git_email", "default_shell",
    *PODMAN_FIELDS, *VERSION_FIELDS,
)

_TRUTHY = {"y", "yes", "1", "true"}


def whoami() -> str:
    """Login name from the environment, or empty."""
    return os.environ.get("USER", "")


def parse_bool(text: str) -> bool:
    """Interpret a free-text answer as a boolean (y/yes/1/true → True)."""
    return text.strip().lower() in _TRUTHY


def bool_str(value: bool) -> str:
    return "true" if value else "false"


def parse_package_list(text: str) -> list[str]:
    """Split a comma-separated package list, trimming and dropping empties."""
    return [p.strip() for p in text.split(",") if p.strip()]


def is_latest(version: str) -> bool:
    return version.strip().lower() == LATEST


class Settings(BaseModel):
    """User settings passed to Ansible as extra vars."""

    model_config = ConfigDict(extra="ignore")

    # ── Identity ─────────────────────────────────────────────────
    username: str = Field(default_factory=whoami)
    email: str = ""
    git_name: str = ""
    git_email: str = ""
    git_https: bool = True
    default_shell: str = "zsh"

    # ── Podman (remote client) ───────────────────────────────────
    install_podman: bool = True
    podman_wsl_distro: str = "podman-machine"
    podman_wsl_host: str = "localhost"
    podman_wsl_port: str = "22"

    # ── Toolchains ───────────────────────────────────────────────
    install_bun: bool = True
    install_go: bool = True
    go_version: str = "1.26"
    install_dotnet: bool = True
    dotnet_version: str = "10.0"
    install_python: bool = True
    python_version: str = "3.13"

    # ── Packages ─────────────────────────────────────────────────
    extra_packages: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTRA_PACKAGES)
    )

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def numbers_as_text(cls, value, info):
        """Accept unquoted YAML numbers (`podman_wsl_port: 2222`) as text.

        A float has already lost its trailing zeros (1.20 → 1.2), so the
        user is told to quote it.
        """
        if isinstance(value, bool):
            return value
        if isinstance(value, float):
            logger.warning(
                "%s: %r was read as a number; quote it in config.yaml "
                "(e.g. %s: \"%s\") to keep it exact",
                info.field_name, value, info.field_name, value,
            )
            return str(value)
        if isinstance(value, int):
            return str(value)
        return value

    @classmethod
    def defaults(cls) -> Settings:
        """Fresh settings with every field at its default."""
        return cls()

    def to_yaml(self) -> str:
        """Serialize to YAML in declaration order.

        Booleans are written as true/false and an empty package list as
        ``[]`` so the key is never dropped.
        """
        return yaml.safe_dump(
            self.model_dump(mode="json"),
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )

    def to_extra_vars(self) -> dict[str, str]:
        """Flatten to the string mapping handed to ``--extra-vars``."""
        extra: dict[str, str] = {}
        for name, value in self.model_dump().items():
            if name == "extra_packages":
                if value:
                    extra[name] = ",".join(value)
                continue
            if isinstance(value, bool):
                extra[name] = bool_str(value)
                continue
            if name in VERSION_FIELDS and (not value.strip() or is_latest(value)):
                continue
            extra[name] = value
        return extra
