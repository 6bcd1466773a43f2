"""
Git helpers — Thin wrappers around the git CLI.

Every call takes the repository directory explicitly (cwd=) instead of
relying on the process working directory, so stages can run against the
source and mirror trees in any order.

Only read-only queries through git_output() get a timeout (QUERY_TIMEOUT).
Commands that do work (add, commit with its hooks, init, push) wait for git
to finish, however long that takes. A query that does time out raises
RepoStateError, so the run still ends in a FAILED stage.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import Optional, Tuple

from ..errors import RepoStateError

logger = logging.getLogger(__name__)

QUERY_TIMEOUT = 30

_CREDENTIALS_IN_URL = re.compile(r"(https?://)[^/@\s]+@")


def redact(text: str) -> str:
    """Hide user:token@ in any URL embedded in `text`."""
    return _CREDENTIALS_IN_URL.sub(r"\1***@", text or "")


def git(
    repo: Path,
    *args: str,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """Run a git command in the repo directory (no timeout unless given)."""
    cmd = ["git"] + list(args)
    logger.debug(f"$ {redact(' '.join(cmd))} (in {repo})")
    try:
        return subprocess.run(
            cmd,
            cwd=str(repo),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise RepoStateError(
            "git executable not found",
            remediation="Install git and make sure it is on PATH",
        )
    except subprocess.TimeoutExpired:
        raise RepoStateError(
            f"git {args[0] if args else ''} timed out after {timeout:g}s in {repo}",
            remediation=(
                "Check for a stale .git/index.lock or a git process waiting "
                "for input, then re-run g2g"
            ),
        )


def git_output(repo: Path, *args: str) -> Optional[str]:
    """Run a read-only git query and return stripped stdout, or None on failure."""
    result = git(repo, *args, timeout=QUERY_TIMEOUT)
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def error_text(result: subprocess.CompletedProcess) -> str:
    """Best human-readable error from a failed git call, credentials redacted."""
    return redact(result.stderr.strip() or result.stdout.strip() or "unknown git error")


def has_head(repo: Path) -> bool:
    """False on an unborn branch (no commits yet)."""
    return git(repo, "rev-parse", "--verify", "--quiet", "HEAD").returncode == 0


def stage_all(repo: Path) -> None:
    """git add -A (tracked, untracked and deletions)."""
    result = git(repo, "add", "-A")
    if result.returncode != 0:
        raise RepoStateError(f"git add failed in {repo}: {error_text(result)}")


def has_staged_changes(repo: Path) -> bool:
    """True when the index differs from HEAD (or from the empty tree on an unborn branch)."""
    result = git(repo, "diff", "--cached", "--quiet")
    if result.returncode == 0:
        return False
    if result.returncode == 1:
        return True
    raise RepoStateError(f"git diff failed in {repo}: {error_text(result)}")


def commit(repo: Path, message: str) -> str:
    """Commit the index and return the short hash of the new HEAD."""
    result = git(repo, "commit", "-m", message)
    if result.returncode != 0:
        raise RepoStateError(
            f"git commit failed in {repo}: {error_text(result)}",
            remediation=(
                "Check that user.name and user.email are configured "
                "(git config user.name ...) and that no hook rejected the commit"
            ),
        )
    return git_output(repo, "rev-parse", "--short", "HEAD") or ""


def remote_url(repo: Path, remote: str = "origin") -> Optional[str]:
    """URL of `remote`, or None when it is not configured."""
    return git_output(repo, "remote", "get-url", remote) or None


def upstream(repo: Path) -> Optional[str]:
    """Upstream of the current branch, e.g. 'origin/main', or None."""
    return git_output(repo, "rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{upstream}")


def upstream_target(repo: Path, branch: str) -> Optional[Tuple[str, str]]:
    """(remote, remote branch) that `branch` is configured to push to, or None.

    Read from branch.<name>.remote / .merge, so it works before the first
    fetch and when the remote branch has a different name.
    """
    remote = git_output(repo, "config", f"branch.{branch}.remote")
    merge = git_output(repo, "config", f"branch.{branch}.merge")
    if not remote or not merge:
        return None
    if merge.startswith("refs/heads/"):
        merge = merge[len("refs/heads/"):]
    return remote, merge


def unpushed_commits(repo: Path, remote: str, branch: str) -> int:
    """Commits on HEAD that its upstream does not have.

    Compares against @{upstream} when the branch tracks one (whatever its
    remote and name), else refs/remotes/<remote>/<branch>. With neither
    (never pushed), every commit counts.
    """
    if not has_head(repo):
        return 0
    tracking = f"refs/remotes/{remote}/{branch}"
    if upstream(repo):
        count = git_output(repo, "rev-list", "--count", "@{upstream}..HEAD")
    elif git(repo, "rev-parse", "--verify", "--quiet", tracking).returncode == 0:
        count = git_output(repo, "rev-list", "--count", f"{tracking}..HEAD")
    else:
        count = git_output(repo, "rev-list", "--count", "HEAD")
    try:
        return int(count or 0)
    except ValueError:
        return 0


def push(repo: Path, *args: str) -> subprocess.CompletedProcess:
    """git push with the given arguments. Never adds --force."""
    return git(repo, "push", *args, timeout=None)
