"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch) -> Path:
    """Point the settings path at a temp file so tests never touch ~/.config."""
    path = tmp_path / "config" / "config.yaml"
    monkeypatch.setenv("FLUX_CONFIG", str(path))
    monkeypatch.setenv("USER", "tester")
    monkeypatch.delenv("FLUX_BECOME_PASSWORD", raising=False)
    return path


@pytest.fixture
def config_file(isolated_config: Path) -> Path:
    """A valid settings file with every field set."""
    isolated_config.parent.mkdir(parents=True, exist_ok=True)
    isolated_config.write_text(textwrap.dedent("""\
        username: alice
        email: alice@example.com
        git_name: Alice
        git_email: alice@example.com
        git_https: false
        default_shell: bash
        install_podman: true
        podman_wsl_distro: podman-machine
        podman_wsl_host: localhost
        podman_wsl_port: "22"
        install_bun: false
        install_go: true
        go_version: "1.26"
        install_dotnet: false
        dotnet_version: "10.0"
        install_python: true
        python_version: "3.13"
        extra_packages:
          - ripgrep
          - jq
    """))
    return isolated_config


@pytest.fixture
def playbook_dir(tmp_path: Path) -> Path:
    """An ansible/ directory with playbook.yml and inventory.ini."""
    d = tmp_path / "repo" / "ansible"
    d.mkdir(parents=True)
    (d / "playbook.yml").write_text("- hosts: localhost\n  roles: []\n")
    (d / "inventory.ini").write_text("localhost ansible_connection=local\n")
    return d
