"""
Domain models — settings document and run request.

    from flux.core.models import Settings, RunRequest, AVAILABLE_ROLES
"""

from flux.core.models.run import RunRequest
from flux.core.models.settings import (
    AVAILABLE_ROLES,
    LATEST,
    PODMAN_FIELDS,
    SHELL_CHOICES,
    VERSION_FIELDS,
    Settings,
    bool_str,
    parse_bool,
    parse_package_list,
)

__all__ = [
    "AVAILABLE_ROLES",
    "LATEST",
    "PODMAN_FIELDS",
    # run.py
    "RunRequest",
    "SHELL_CHOICES",
    "VERSION_FIELDS",
    # settings.py
    "Settings",
    "bool_str",
    "parse_bool",
    "parse_package_list",
]
