"""flux — bootstrap and configure a WSL instance with Ansible."""

__version__ = "0.1.0"
