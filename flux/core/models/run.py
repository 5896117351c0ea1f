"""
RunRequest — one invocation of the playbook, derived and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RunRequest:
    """Selected roles, dry-run flag, and resolved extra vars for one run."""

    tags: list[str] = field(default_factory=list)
    dry_run: bool = False
    extra_vars: dict[str, str] = field(default_factory=dict)
    become_password: str = ""

    @property
    def tag_filter(self) -> str:
        """Comma-joined tags for ``--tags`` (empty = run every role)."""
        return ",".join(t for t in self.tags if t)

    def to_dict(self) -> dict:
        # become_password never leaves the process.
        return {
            "tags": list(self.tags),
            "dry_run": self.dry_run,
            "extra_vars": dict(self.extra_vars),
        }
