"""
Mirror Target — Where the mirror lives and how it is reached.

The mirror is a separate working tree (by default ../<repo>-github next
to the source repository) with its own history. Its `origin` remote may
not exist yet: on SSH transport the first run commits locally and prints
the one-time `git remote add` command instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config.loader import Credential

MIRROR_REMOTE = "origin"
MIRROR_DIR_SUFFIX = "-github"
USERNAME_PLACEHOLDER = "YOUR_GITHUB_USERNAME"


@dataclass
class MirrorTarget:
    """A mirror working tree and its (optional) remote."""

    directory_path: Path
    branch: str
    repo_name: str
    remote_url: Optional[str] = None  # None = not configured yet
    host: str = "github.com"

    @property
    def has_remote(self) -> bool:
        return bool(self.remote_url)

    @property
    def display_name(self) -> str:
        """Human-readable name for this mirror."""
        return f"{self.directory_path.name} ({self.repo_name})"


def default_mirror_dir(source_root: Path) -> Path:
    """../<repo>-github next to the source repository."""
    return source_root.parent / f"{source_root.name}{MIRROR_DIR_SUFFIX}"


def https_remote_url(credential: Credential, repo_name: str, host: str = "github.com") -> str:
    """Token-bearing HTTPS URL for the mirror account's repository."""
    return f"https://{credential.username}:{credential.token}@{host}/{credential.username}/{repo_name}.git"


def ssh_remote_url(username: Optional[str], repo_name: str, host: str = "github.com") -> str:
    """SSH URL to suggest for the one-time remote setup."""
    return f"git@{host}:{username or USERNAME_PLACEHOLDER}/{repo_name}.git"
