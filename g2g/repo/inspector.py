"""
Repo Inspector — Read the state of a working tree.

Answers three questions about a path: where is the enclosing repository
root, which branch is checked out, and is anything staged. A repository
is read fresh every time; nothing is cached between stages or runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..errors import RepoStateError
from . import git as g

logger = logging.getLogger(__name__)


@dataclass
class Repository:
    """Snapshot of a working tree (source or mirror).

    has_staged_changes is True when `git add -A` would leave the index
    different from HEAD.
    """

    root_path: Path
    current_branch: str
    remote_url: Optional[str] = None
    has_staged_changes: bool = False

    @property
    def name(self) -> str:
        return self.root_path.name


def find_root(path: Path) -> Path:
    """Nearest enclosing repository root of `path`."""
    if not path.is_dir():
        raise RepoStateError(f"Not a directory: {path}")
    top = g.git_output(path, "rev-parse", "--show-toplevel")
    if not top:
        raise RepoStateError(
            f"Not inside a git repository: {path}",
            remediation="Run g2g from inside the repository you want to sync",
        )
    return Path(top)


def current_branch(root: Path) -> str:
    """Checked-out branch name; empty string when HEAD is detached."""
    return g.git_output(root, "branch", "--show-current") or ""


def has_changes(root: Path) -> bool:
    """Would `git add -A` stage anything? (untracked, modified or deleted files)"""
    status = g.git(root, "status", "--porcelain")
    if status.returncode != 0:
        raise RepoStateError(f"git status failed in {root}: {g.error_text(status)}")
    return bool(status.stdout.strip())


def inspect_repository(path: Path) -> Repository:
    """
    Inspect the repository enclosing `path`.

    Raises:
        RepoStateError: Not a repository, or HEAD is detached
    """
    root = find_root(path)
    branch = current_branch(root)
    if not branch:
        raise RepoStateError(
            f"Not on a branch (detached HEAD) in {root}",
            remediation="Check out a branch first, e.g. git switch main",
        )

    repo = Repository(
        root_path=root,
        current_branch=branch,
        remote_url=g.remote_url(root),
        has_staged_changes=has_changes(root),
    )
    logger.debug(
        f"Inspected {root}: branch={branch}, "
        f"remote={g.redact(repo.remote_url or '-')}, staged={repo.has_staged_changes}"
    )
    return repo
