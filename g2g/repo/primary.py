"""
Primary Pusher — Commit and push the source repository.

Stages everything under the repository root, commits if the index differs
from HEAD, and pushes the current branch to its upstream. Never forces,
never rebases, never retries: a rejected push is fatal and the user
resolves it by hand.

If there is nothing to commit but earlier commits never reached the remote
(e.g. the previous run's push failed), they are pushed now, so the next
run re-drives a partial failure.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..errors import PushError
from ..models.outcome import StageResult, StageStatus
from . import git as g
from .inspector import Repository

logger = logging.getLogger(__name__)

STAGE = "primary"
PRIMARY_REMOTE = "origin"


def default_commit_message(now: datetime | None = None) -> str:
    """'Auto-commit 2026-01-31 12:00:00' in local time."""
    now = now or datetime.now()
    return f"Auto-commit {now.strftime('%Y-%m-%d %H:%M:%S')}"


def _remediation(error: str) -> str:
    lowered = error.lower()
    if "non-fast-forward" in lowered or "fetch first" in lowered or "rejected" in lowered:
        return (
            "The remote has commits you don't have. Pull and merge (or rebase) "
            "them yourself, then re-run g2g. It never force-pushes."
        )
    if "permission denied" in lowered or "authentication" in lowered or "could not read" in lowered:
        return "Check your SSH key or credentials for the primary remote, then re-run g2g."
    return "Check that the primary remote is reachable (git push), then re-run g2g."


def _push(repo: Repository) -> str:
    """Push the current branch to its upstream (or set one); return git's output."""
    branch = repo.current_branch
    target = g.upstream_target(repo.root_path, branch)
    if target:
        remote, remote_branch = target
        result = g.push(repo.root_path, remote, f"HEAD:refs/heads/{remote_branch}")
    else:
        remote = PRIMARY_REMOTE
        logger.info(f"[primary] No upstream for {branch}, pushing with -u {PRIMARY_REMOTE} {branch}")
        result = g.push(repo.root_path, "-u", PRIMARY_REMOTE, branch)

    if result.returncode != 0:
        error = g.error_text(result)
        logger.error(f"[primary] Push failed: {error}", extra={"branch": branch})
        raise PushError(
            f"Push to primary remote failed: {error}",
            remote=remote,
            branch=branch,
            remediation=_remediation(error),
        )
    return result.stderr.strip() or result.stdout.strip()


def push_primary(repo: Repository, message: str) -> StageResult:
    """
    Stage, commit (if needed) and push the source repository.

    Args:
        repo: Inspected source repository
        message: Commit message

    Returns:
        StageResult with NO_OP or PUSHED

    Raises:
        RepoStateError: git add / commit failed
        PushError: The remote rejected the push or was unreachable
    """
    root = repo.root_path
    branch = repo.current_branch

    logger.info(
        f"[primary] Adding, committing and pushing (branch: {branch})...",
        extra={"branch": branch},
    )
    g.stage_all(root)

    if not g.has_staged_changes(root):
        has_target = repo.remote_url or g.upstream_target(root, branch)
        pending = g.unpushed_commits(root, PRIMARY_REMOTE, branch) if has_target else 0
        if not pending:
            logger.warning("[primary] No changes to commit")
            return StageResult.no_op(STAGE)
        logger.info(f"[primary] No changes to commit, but {pending} commit(s) not pushed yet")
        _push(repo)
        logger.info(f"[primary] ✓ Pushed {pending} pending commit(s)")
        return StageResult(
            stage=STAGE,
            status=StageStatus.PUSHED,
            detail=f"pushed {pending} pending commit(s)",
            data={"branch": branch},
        )

    head = g.commit(root, message)
    logger.info(f"[primary] Committed {head}: {message}")

    output = _push(repo)
    if "Everything up-to-date" in (output or ""):
        logger.info("[primary] Already up to date")
    else:
        logger.info(f"[primary] ✓ Successfully pushed {head}", extra={"branch": branch})

    return StageResult(
        stage=STAGE,
        status=StageStatus.PUSHED,
        detail=f"{head} {message}",
        data={"branch": branch, "commit": head},
    )
