"""
Mirror Pusher — Commit and push the reconciled mirror tree.

1. Make sure the mirror directory is a repository (git init on first run,
   directly on the source branch when auto-init is on) and that HEAD
   points at the source branch.
2. Set a commit identity from the credential if the repo has none.
3. Resolve the `origin` remote:
   - https: build the token-bearing URL and add it, or overwrite it every
     run so a rotated token takes effect
   - ssh: never build or rewrite a URL; use whatever `origin` exists
4. Stage everything; nothing staged means NO_OP, never an empty commit.
5. Commit, then `git push -u origin <branch>`.

With ssh and no `origin` yet, the commit still happens locally and the
run reports AWAITING_REMOTE_SETUP with the exact commands to run once.
That is a success. A push that fails against an existing remote is not.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..config.loader import Credential, SyncPolicy
from ..errors import PushError, RepoStateError
from ..models.outcome import StageResult, StageStatus
from ..repo import git as g
from .config import MIRROR_REMOTE, MirrorTarget, https_remote_url, ssh_remote_url

logger = logging.getLogger(__name__)

STAGE = "mirror"


def mirror_commit_message(primary_name: str, message: str) -> str:
    return f"Mirror from {primary_name}: {message}"


def is_repository(directory: Path) -> bool:
    """True when `directory` has its own repository metadata.

    Checked on the filesystem rather than with rev-parse, which would also
    succeed inside an enclosing (e.g. the source) repository.
    """
    return (directory / ".git").exists()


def ensure_repository(directory: Path, branch: str, auto_init: bool) -> bool:
    """git init the mirror if needed. Returns True when it was initialised."""
    if is_repository(directory):
        return False

    directory.mkdir(parents=True, exist_ok=True)
    if auto_init:
        logger.info(f"[mirror] First-time setup: initializing new Git repo with branch '{branch}'")
        result = g.git(directory, "init", "-b", branch)
    else:
        logger.info("[mirror] First-time setup: initializing new Git repo")
        result = g.git(directory, "init")

    if result.returncode != 0:
        raise RepoStateError(f"git init failed in {directory}: {g.error_text(result)}")
    return True


def ensure_branch(directory: Path, branch: str) -> None:
    """Point the mirror's HEAD at `branch`.

    Uses symbolic-ref so neither the working tree nor any existing branch
    history is touched; the next commit lands on `branch`.
    """
    current = g.git_output(directory, "symbolic-ref", "--quiet", "--short", "HEAD") or ""
    if current == branch:
        return

    logger.warning(f"[mirror] Mirror is on '{current or 'detached HEAD'}', switching to '{branch}'")
    result = g.git(directory, "symbolic-ref", "HEAD", f"refs/heads/{branch}")
    if result.returncode != 0:
        raise RepoStateError(
            f"Could not switch mirror to branch {branch}: {g.error_text(result)}"
        )


def ensure_identity(directory: Path, credential: Credential) -> None:
    """Set user.name / user.email locally when git has none configured."""
    if not credential.username:
        return

    if not g.git_output(directory, "config", "user.name"):
        g.git(directory, "config", "user.name", credential.username)
        logger.info(f"[mirror] Commit identity: user.name={credential.username}")
    if not g.git_output(directory, "config", "user.email"):
        g.git(directory, "config", "user.email", credential.noreply_email)
        logger.info(f"[mirror] Commit identity: user.email={credential.noreply_email}")


def ensure_remote(target: MirrorTarget, policy: SyncPolicy, credential: Credential) -> Optional[str]:
    """
    Resolve the mirror's origin remote.

    Returns:
        The remote URL, or None when no remote is configured (ssh only)
    """
    directory = target.directory_path
    current_url = g.remote_url(directory, MIRROR_REMOTE)

    if not policy.is_https:
        return current_url

    remote_url = https_remote_url(credential, target.repo_name, target.host)

    if current_url is None:
        logger.info(f"[mirror] Adding remote: {MIRROR_REMOTE} → {g.redact(remote_url)}")
        result = g.git(directory, "remote", "add", MIRROR_REMOTE, remote_url)
    elif current_url != remote_url:
        # Rewritten on every run so rotated tokens take effect
        logger.info(f"[mirror] Updating remote URL for {MIRROR_REMOTE}")
        result = g.git(directory, "remote", "set-url", MIRROR_REMOTE, remote_url)
    else:
        return remote_url

    if result.returncode != 0:
        raise RepoStateError(
            f"Failed to configure remote {MIRROR_REMOTE} in {directory}: {g.error_text(result)}"
        )
    return remote_url


def setup_instructions(target: MirrorTarget, credential: Credential) -> str:
    """The one-time commands to connect an SSH mirror to its remote."""
    url = ssh_remote_url(credential.username, target.repo_name, target.host)
    return "\n".join([
        "One-time setup required (run this once):",
        f"   cd {target.directory_path}",
        f"   git remote add {MIRROR_REMOTE} {url}",
        f"   git push -u {MIRROR_REMOTE} {target.branch}",
        "",
        "After that, all future runs will push automatically via SSH.",
        "(If your GitHub repo has a different name, adjust it in the URL above.)",
    ])


def _remediation(error: str, target: MirrorTarget) -> str:
    lowered = error.lower()
    if "repository not found" in lowered or "does not appear to be a git repository" in lowered:
        return (
            f"Ensure the mirror repository {target.repo_name} exists on {target.host} "
            "(create it empty, without a README) and that your account can push to it."
        )
    if "non-fast-forward" in lowered or "fetch first" in lowered or "rejected" in lowered:
        return (
            f"The mirror remote has history this mirror doesn't. Ensure {target.repo_name} "
            "was created empty, or reconcile it by hand. g2g never force-pushes."
        )
    if "authentication" in lowered or "permission denied" in lowered or "403" in lowered:
        return "Check that the mirror credential (token or SSH key) has push access, then re-run g2g."
    return f"Ensure the mirror repository {target.repo_name} exists and is reachable, then re-run g2g."


def _push(target: MirrorTarget) -> str:
    directory = target.directory_path
    logger.info(
        f"[mirror] Pushing to {MIRROR_REMOTE} (branch: {target.branch})...",
        extra={"branch": target.branch},
    )
    result = g.push(directory, "-u", MIRROR_REMOTE, target.branch)

    if result.returncode != 0:
        error = g.error_text(result)
        logger.error(f"[mirror] Push failed: {error}", extra={"branch": target.branch})
        raise PushError(
            f"Push to mirror remote failed: {error}",
            remote=MIRROR_REMOTE,
            branch=target.branch,
            remediation=_remediation(error, target),
        )
    return result.stderr.strip() or result.stdout.strip()


def push_mirror(
    target: MirrorTarget,
    policy: SyncPolicy,
    credential: Credential,
    message: str,
) -> StageResult:
    """
    Commit the reconciled mirror tree and push it.

    Args:
        target: Mirror directory, branch and repo name; remote_url is filled in
        policy: Transport and auto-init settings
        credential: Used for the https URL and the commit identity
        message: Full mirror commit message

    Returns:
        StageResult with NO_OP, PUSHED or AWAITING_REMOTE_SETUP

    Raises:
        RepoStateError: init / branch / remote / commit failures
        PushError: The mirror remote rejected the push or was unreachable
    """
    directory = target.directory_path

    ensure_repository(directory, target.branch, policy.auto_init_mirror)
    ensure_branch(directory, target.branch)
    ensure_identity(directory, credential)
    target.remote_url = ensure_remote(target, policy, credential)

    g.stage_all(directory)

    if not g.has_staged_changes(directory):
        if not target.has_remote:
            logger.warning("[mirror] No changes to commit, and no 'origin' remote yet")
            result = StageResult.no_op(STAGE)
            if g.has_head(directory):
                result.remediation = setup_instructions(target, credential)
            return result

        pending = g.unpushed_commits(directory, MIRROR_REMOTE, target.branch)
        if not pending:
            logger.warning("[mirror] No changes to commit for the mirror")
            return StageResult.no_op(STAGE)

        logger.info(f"[mirror] No changes to commit, but {pending} commit(s) not pushed yet")
        _push(target)
        logger.info(f"[mirror] ✓ Pushed {pending} pending commit(s)")
        return StageResult(
            stage=STAGE,
            status=StageStatus.PUSHED,
            detail=f"pushed {pending} pending commit(s)",
            data={"branch": target.branch},
        )

    head = g.commit(directory, message)
    logger.info(f"[mirror] Committed {head}: {message}", extra={"branch": target.branch})

    if not target.has_remote:
        logger.warning(f"[mirror] No '{MIRROR_REMOTE}' remote found in the mirror.")
        return StageResult(
            stage=STAGE,
            status=StageStatus.AWAITING_REMOTE_SETUP,
            detail=f"committed {head} locally; push skipped",
            remediation=setup_instructions(target, credential),
            data={"branch": target.branch, "commit": head},
        )

    output = _push(target)
    if "Everything up-to-date" in (output or ""):
        logger.info("[mirror] Already up to date")
    else:
        logger.info(f"[mirror] ✓ Successfully pushed {head}")

    return StageResult(
        stage=STAGE,
        status=StageStatus.PUSHED,
        detail=f"{head} {message}",
        data={"branch": target.branch, "commit": head},
    )
