"""
Menu rendering — one function per screen, pure string output.
"""

from __future__ import annotations

from typing import Callable

from flux.ui.tui.state import CONFIG_MENU, MAIN_MENU, MenuItem, MenuModel, Screen
from flux.ui.tui.theme import Theme


def _menu(items: tuple[MenuItem, ...], cursor: int, theme: Theme) -> list[str]:
    lines = []
    for i, item in enumerate(items):
        if i == cursor:
            prefix, style = theme.cursor, theme.selected
        else:
            prefix, style = " " * len(theme.cursor), theme.normal
        lines.append(f"{prefix}{style.render(item.label)}  {theme.subtitle.render(item.desc)}")
    return lines


def _status(model: MenuModel, theme: Theme) -> list[str]:
    if not model.message:
        return []
    style = theme.error if model.failed else theme.success
    return ["", style.render(model.message)]


def render_main(model: MenuModel, theme: Theme) -> list[str]:
    lines = [theme.subtitle.render("WSL bootstrap & configuration"), ""]
    lines += _menu(MAIN_MENU, model.cursor, theme)
    lines += ["", theme.help.render("↑/↓ navigate • enter select • q quit")]
    return lines


def render_roles(model: MenuModel, theme: Theme) -> list[str]:
    mode = theme.dry_run_badge.render("DRY RUN") if model.dry_run else "Run"
    lines = [theme.subtitle.render("Select roles to ") + mode, ""]
    for i, role in enumerate(model.roles):
        prefix = theme.cursor if i == model.cursor else " " * len(theme.cursor)
        if model.selected[i]:
            box = theme.check.render(theme.checked_box)
        else:
            box = theme.uncheck.render(theme.unchecked_box)
        style = theme.selected if i == model.cursor else theme.normal
        lines.append(f"{prefix}{box} {style.render(role)}")
    if model.message:
        lines += ["", theme.error.render(model.message)]
    lines += [
        "",
        theme.help.render("↑/↓ navigate • space toggle • a all/none • enter run • esc back"),
    ]
    return lines


def render_config_menu(model: MenuModel, theme: Theme) -> list[str]:
    lines = [theme.subtitle.render("Configuration"), ""]
    lines += _menu(CONFIG_MENU, model.cursor, theme)
    lines += _status(model, theme)
    lines += ["", theme.help.render("↑/↓ navigate • enter select • esc back")]
    return lines


def render_config_show(model: MenuModel, theme: Theme) -> list[str]:
    return [
        theme.subtitle.render("Configuration"),
        "",
        model.config_output.rstrip("\n"),
        "",
        theme.help.render("press enter or esc to go back"),
    ]


def render_config_edit(model: MenuModel, theme: Theme) -> list[str]:
    lines = [theme.subtitle.render("Edit Configuration"), ""]
    for i, f in enumerate(model.edit_fields):
        active = i == model.edit_cursor and not model.edit_done
        prefix = theme.cursor if active else " " * len(theme.cursor)
        label = theme.config_key.render(f.label)
        if active:
            value = theme.selected.render(model.edit_input + "▏")
        elif model.field_locked(i):
            value = theme.uncheck.render(f"{f.value} (podman disabled)")
        else:
            value = theme.config_val.render(f.value)
        lines.append(f"{prefix}{label} {value}")
    if model.message:
        lines += ["", theme.error.render(model.message)]
    if model.edit_done:
        lines += ["", theme.success.render("✓ Press enter to save, esc to discard")]
    lines += ["", theme.help.render("↑/↓ navigate • enter confirm field • esc cancel")]
    return lines


def render_running(model: MenuModel, theme: Theme) -> list[str]:
    if model.message:
        label = model.message
    elif model.dry_run:
        label = "Checking (dry run) configuration..."
    else:
        label = "Applying configuration..."
    return [
        "",
        f"{theme.spinner.render('⟳')} {label}",
        theme.subtitle.render("Output appears below"),
        "",
    ]


def render_done(model: MenuModel, theme: Theme) -> list[str]:
    if model.failed:
        status = theme.error.render(f"✗ {model.message}")
    else:
        status = theme.success.render(f"✓ {model.message}")
    return ["", status, "", theme.help.render("press enter or esc to continue")]


RENDERERS: dict[Screen, Callable[[MenuModel, Theme], list[str]]] = {
    Screen.MAIN: render_main,
    Screen.ROLES: render_roles,
    Screen.CONFIG_MENU: render_config_menu,
    Screen.CONFIG_SHOW: render_config_show,
    Screen.CONFIG_EDIT: render_config_edit,
    Screen.RUNNING: render_running,
    Screen.DONE: render_done,
}


def render(model: MenuModel, theme: Theme) -> str:
    """Full screen text for the model's current screen."""
    if model.quitting:
        return ""
    lines = [theme.title.render("⚡ flux"), ""]
    lines += RENDERERS[model.screen](model, theme)
    return "\n".join(lines) + "\n"
