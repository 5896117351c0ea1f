"""
Settings loader — reads and writes ~/.config/flux/config.yaml.

This is the single entry point for the settings document. It reads
YAML, validates against the pydantic ``Settings`` model, and writes
atomically (temp file in the same directory, then rename).

Failure modes are distinct so callers can pick a policy:
    - SettingsNotFound → expected on first run, triggers the prompter
    - SettingsCorrupt  → warn, start from defaults, overwrite on save
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from flux.core.config.prompter import Prompter
from flux.core.models.settings import Settings

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(".config") / "flux"
CONFIG_FILE = "config.yaml"

# Overrides the settings path (used by tests and for alternate profiles)
CONFIG_ENV_VAR = "FLUX_CONFIG"


class ConfigError(Exception):
    """Raised when the settings document cannot be read or written."""


class SettingsNotFound(ConfigError):
    """The settings file does not exist."""


class SettingsCorrupt(ConfigError):
    """The settings file exists but cannot be parsed."""


def settings_path() -> Path:
    """Full path to the settings file."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_DIR / CONFIG_FILE


def settings_exist(path: Path | None = None) -> bool:
    return (path or settings_path()).is_file()


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate the settings document.

    Args:
        path: Explicit settings path (default: ``settings_path()``).

    Returns:
        Validated Settings. Keys missing from the file take defaults.

    Raises:
        SettingsNotFound: The file does not exist.
        SettingsCorrupt: The file is unreadable or fails validation.
    """
    path = path or settings_path()

    if not path.is_file():
        raise SettingsNotFound(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SettingsCorrupt(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise SettingsCorrupt(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SettingsCorrupt(
            f"Expected a YAML mapping in {path}, got {type(data).__name__}"
        )

    # A bare "key:" line decodes to None; treat it as missing
    data = {k: v for k, v in data.items() if v is not None}

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise SettingsCorrupt(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings for user '%s'", settings.username)
    return settings


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Write the settings document (atomic write).

    Creates parent directories as needed and overwrites any existing
    file.

    Returns:
        The path written.
    """
    path = path or settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    content = settings.to_yaml()

    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=".config_",
        suffix=".tmp",
    )
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(tmp, 0o644)
        tmp.replace(path)
        logger.debug("Settings saved to %s", path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save settings to %s: %s", path, e)
        raise ConfigError(f"Cannot write {path}: {e}") from e

    return path


def load_or_create(
    path: Path | None = None,
    prompter: Prompter | None = None,
) -> Settings:
    """Load the settings, or prompt for them and save if there are none.

    A corrupt file is reported as a warning and the prompter starts
    from defaults; the old content stays on disk until the save.

    Raises:
        PromptError: Input ended before every field was answered.
        ConfigError: The new settings could not be written.
    """
    path = path or settings_path()

    try:
        return load_settings(path)
    except SettingsNotFound:
        click.echo("No config found. Let's set up your preferences.")
    except SettingsCorrupt as e:
        logger.warning("Corrupt settings file %s: %s", path, e)
        click.secho(f"⚠️  Config file is corrupt: {e}", fg="yellow", err=True)
        click.echo(
            "Starting with defaults. Your old config will be overwritten on save.",
            err=True,
        )

    prompter = prompter or Prompter()
    settings = prompter.prompt_for_settings(None)
    save_settings(settings, path)
    click.echo(f"\nConfig saved to {path}\n")
    return settings
