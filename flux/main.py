"""
flux — CLI entrypoint.

Usage:
    flux                            Launch the interactive menu
    flux run [--dry-run] [--tags t] Run the setup playbook
    flux config show|edit|path|check
    flux update                     Pull latest changes and reinstall
    flux version                    Print version
    flux help                       Show help
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from flux import __version__
from flux.core.observability.logging_config import configure_from_cli

# Supplying the sudo password out-of-band switches `run` to streaming mode
BECOME_PASSWORD_ENV_VAR = "FLUX_BECOME_PASSWORD"


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="flux")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to config.yaml (default: ~/.config/flux/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """flux — bootstrap and configure your WSL instance."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path).expanduser() if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    configure_from_cli(debug, verbose, quiet)

    if ctx.invoked_subcommand is None:
        from flux.ui.tui.app import run_menu

        run_menu(config_path=ctx.obj["config_path"])


@cli.command()
@click.option("--dry-run", is_flag=True, help="Run Ansible in check mode (no changes applied).")
@click.option("--tags", "-t", default="", help="Comma-separated list of role tags to run.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output result as JSON.")
@click.pass_context
def run(ctx: click.Context, dry_run: bool, tags: str, as_json: bool) -> None:
    """Run the setup playbook.

    Examples:

        flux run

        flux run --dry-run --tags base,shell
    """
    from flux.core.config.loader import ConfigError, load_or_create
    from flux.core.config.prompter import PromptError
    from flux.core.use_cases.run import run_setup

    become_password = os.environ.get(BECOME_PASSWORD_ENV_VAR, "")
    # Without a password (and not root) ansible asks for it on the terminal
    interactive = not become_password and os.geteuid() != 0
    if as_json and interactive:
        click.secho(
            f"❌ --json needs {BECOME_PASSWORD_ENV_VAR} (or root): "
            "ansible would prompt for the sudo password on stdout",
            fg="red",
            err=True,
        )
        sys.exit(1)

    try:
        settings = load_or_create(ctx.obj.get("config_path"))
    except (PromptError, ConfigError) as e:
        click.secho(f"❌ Error with config: {e}", fg="red", err=True)
        sys.exit(1)

    tag_list = [t.strip() for t in tags.split(",") if t.strip()]

    if not as_json and not ctx.obj.get("quiet"):
        click.secho(f"Running setup for user: {settings.username}", fg="cyan", bold=True)

    def emit(line: str) -> None:
        click.echo(line, err=as_json)

    result = run_setup(
        settings,
        tags=tag_list,
        dry_run=dry_run,
        become_password=become_password,
        on_output=emit,
        interactive=interactive,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    click.echo()
    if not result.ok:
        click.secho(f"✗ {result.message}", fg="red", bold=True, err=True)
        sys.exit(1)

    if dry_run:
        click.secho("✓ Dry run complete — no changes were applied", fg="green", bold=True)
    else:
        click.secho("✓ Setup complete!", fg="green", bold=True)


@cli.command()
def update() -> None:
    """Pull latest changes and reinstall flux."""
    from flux.core.services.updater import UpdateError
    from flux.core.services.updater import update as do_update

    try:
        do_update(on_output=click.echo)
    except UpdateError as e:
        click.secho(f"Update failed: {e}", fg="red", err=True)
        sys.exit(1)


@cli.command()
def version() -> None:
    """Print version."""
    click.echo(f"flux {__version__}")


@cli.command("help")
@click.pass_context
def help_(ctx: click.Context) -> None:
    """Show this help message."""
    assert ctx.parent is not None
    click.echo(ctx.parent.get_help())


# ── Register sub-command groups from flux/ui/cli/ ────────────────

from flux.ui.cli.config import config

cli.add_command(config)


if __name__ == "__main__":
    cli()
