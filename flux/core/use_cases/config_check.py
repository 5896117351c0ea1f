"""
Config check use case — validate config.yaml and report issues.

Podman sub-fields are only validated when ``install_podman`` is on;
otherwise they are ignored here and kept as-is on disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from flux.core.config.loader import ConfigError, load_settings, settings_path
from flux.core.models.settings import SHELL_CHOICES, Settings, is_latest


@dataclass
class ConfigCheckResult:
    """Result of settings validation."""

    valid: bool = False
    settings: Settings | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "username": self.settings.username if self.settings else None,
        }


def validate_settings(settings: Settings) -> tuple[list[str], list[str]]:
    """Semantic checks on a loaded document.

    Returns:
        (errors, warnings)
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not settings.username:
        errors.append("username is empty.")

    if settings.default_shell not in SHELL_CHOICES:
        errors.append(
            f"default_shell must be one of {', '.join(SHELL_CHOICES)}, "
            f"got '{settings.default_shell}'."
        )

    if settings.install_podman:
        if not settings.podman_wsl_distro:
            errors.append("podman_wsl_distro is required when install_podman is true.")
        if not settings.podman_wsl_host:
            errors.append("podman_wsl_host is required when install_podman is true.")
        port = settings.podman_wsl_port
        if not (port.isascii() and port.isdigit()) or not 1 <= int(port) <= 65535:
            errors.append(f"podman_wsl_port must be a port number, got '{port}'.")

    for toggle, version_field, label in (
        ("install_go", "go_version", "Go"),
        ("install_dotnet", "dotnet_version", ".NET"),
        ("install_python", "python_version", "Python"),
    ):
        if not getattr(settings, toggle):
            continue
        version = getattr(settings, version_field)
        if not version.strip():
            warnings.append(f"{version_field} is empty; the playbook default will be used.")
        elif is_latest(version):
            warnings.append(f"{label} version is 'latest'; the playbook decides which release.")

    if not settings.email:
        warnings.append("email is empty.")
    if not settings.git_email and not settings.email:
        warnings.append("git_email is empty; commits will have no author email.")

    return errors, warnings


def check_settings(path: Path | None = None) -> ConfigCheckResult:
    """Validate the settings file and report issues.

    Args:
        path: Optional explicit settings path.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()
    path = path or settings_path()
    result.config_path = path

    try:
        settings = load_settings(path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    result.settings = settings
    errors, warnings = validate_settings(settings)
    result.errors.extend(errors)
    result.warnings.extend(warnings)

    result.valid = len(result.errors) == 0
    return result
