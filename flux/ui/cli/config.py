"""
CLI commands for the settings document.

Thin wrappers over ``flux.core.config`` and ``flux.core.use_cases.config_check``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click


def _config_path(ctx: click.Context) -> Path | None:
    obj = ctx.obj or {}
    return obj.get("config_path")


@click.group()
def config() -> None:
    """Configuration — show, edit, path, check."""


@config.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Show the current configuration."""
    from flux.core.config.loader import ConfigError, SettingsNotFound, load_settings

    try:
        settings = load_settings(_config_path(ctx))
    except SettingsNotFound:
        click.secho("No config found. Run 'flux' to create one.", fg="red", err=True)
        sys.exit(1)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    click.echo(settings.to_yaml(), nl=False)


@config.command()
@click.pass_context
def edit(ctx: click.Context) -> None:
    """Re-run the interactive config prompts."""
    from flux.core.config.loader import (
        ConfigError,
        SettingsCorrupt,
        SettingsNotFound,
        load_settings,
        save_settings,
    )
    from flux.core.config.prompter import Prompter, PromptError

    path = _config_path(ctx)
    try:
        existing = load_settings(path)
    except SettingsNotFound:
        existing = None
    except SettingsCorrupt as e:
        click.secho(f"⚠️  Warning: config file is corrupt: {e}", fg="yellow", err=True)
        click.echo(
            "Starting with defaults. Your old config will be overwritten on save.\n",
            err=True,
        )
        existing = None

    try:
        settings = Prompter().prompt_for_settings(existing)
    except PromptError as e:
        click.secho(f"\n❌ {e}", fg="red", err=True)
        sys.exit(1)

    try:
        save_settings(settings, path)
    except ConfigError as e:
        click.secho(f"❌ Error saving config: {e}", fg="red", err=True)
        sys.exit(1)

    click.secho("Config updated.", fg="green")


@config.command()
@click.pass_context
def path(ctx: click.Context) -> None:
    """Print the config file path."""
    from flux.core.config.loader import settings_path

    click.echo(str(_config_path(ctx) or settings_path()))


@config.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Validate the configuration file."""
    from flux.core.use_cases.config_check import check_settings

    result = check_settings(_config_path(ctx))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.settings is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   User:  {result.settings.username}")
        click.echo(f"   Shell: {result.settings.default_shell}")
        click.echo(f"   File:  {result.config_path}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        sys.exit(1)
