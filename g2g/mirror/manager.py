"""
Sync Manager — Runs one primary → mirror sync.

This is the main entry point for a sync run. It sequences:

    config → inspect source → push primary → reconcile mirror → push mirror

Each stage runs to completion before the next starts. The first G2GError
stops the run and is recorded as a FAILED stage; the PipelineOutcome is
the only thing that decides the exit status.

Stages are not transactional across each other: the primary can be
pushed while the mirror push fails. The next run picks up from there.

## Usage

    from g2g.mirror.manager import run_sync

    outcome = run_sync(Path.cwd(), "fix typo", environ=os.environ)
    sys.exit(outcome.exit_code)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

from ..config.loader import SyncSettings, find_env_file, resolve_settings
from ..errors import G2GError
from ..models.outcome import PipelineOutcome, StageResult, StageStatus
from ..repo.inspector import Repository, inspect_repository
from ..repo.primary import push_primary
from . import pusher
from .config import MirrorTarget, default_mirror_dir
from .reconcile import reconcile_tree

logger = logging.getLogger(__name__)


class SyncManager:
    """
    Orchestrates a single sync run.

    Holds no state between runs; every repository is inspected fresh.
    """

    def __init__(self, settings: SyncSettings):
        self.settings = settings

    def mirror_target(self, repo: Repository) -> MirrorTarget:
        """Where the mirror of `repo` lives and what it is called remotely."""
        mirror_dir = self.settings.mirror_dir
        if mirror_dir is None:
            mirror_dir = default_mirror_dir(repo.root_path)
        elif not mirror_dir.is_absolute():
            mirror_dir = repo.root_path / mirror_dir

        return MirrorTarget(
            directory_path=mirror_dir.resolve(),
            branch=repo.current_branch,
            repo_name=self.settings.repo_name or repo.name,
            host=self.settings.mirror_host,
        )

    def run(
        self,
        source_path: Path,
        message: str,
        outcome: Optional[PipelineOutcome] = None,
    ) -> PipelineOutcome:
        """
        Run inspect → primary → reconcile → mirror.

        Args:
            source_path: Any path inside the source repository
            message: Commit message for the primary (mirror gets a prefixed copy)
            outcome: Outcome to append to (a fresh one by default)

        Returns:
            PipelineOutcome; check exit_code
        """
        if outcome is None:
            outcome = PipelineOutcome()
        settings = self.settings
        primary = settings.primary_name
        stage = "inspect"

        logger.info(f"=== Starting {primary} → mirror sync ===")

        try:
            repo = inspect_repository(source_path)

            stage = "primary"
            logger.info(f"1. Pushing to {primary} (branch: {repo.current_branch})")
            outcome.record(push_primary(repo, message))

            stage = "reconcile"
            target = self.mirror_target(repo)
            logger.info(f"2. Reconciling {target.directory_path}")
            report = reconcile_tree(
                repo.root_path,
                target.directory_path,
                settings.policy.exclude_patterns,
                delete_missing=settings.policy.delete_on_reconcile,
                config_file=settings.env_file,
            )
            outcome.record(StageResult(
                stage=stage,
                status=StageStatus.RECONCILED,
                detail=report.summary(),
                data={
                    "copied": len(report.copied),
                    "updated": len(report.updated),
                    "deleted": len(report.deleted),
                },
            ))

            stage = "mirror"
            logger.info(f"3. Committing mirror {target.display_name} ({settings.policy.transport})")
            outcome.record(pusher.push_mirror(
                target,
                settings.policy,
                settings.credential,
                pusher.mirror_commit_message(primary, message),
            ))
        except G2GError as e:
            logger.error(f"[{stage}] {e.message}")
            outcome.record(StageResult.failed(stage, e.message, e.remediation))
            return outcome

        logger.info(f"=== Sync complete: {outcome.summary()} ===")
        return outcome


def run_sync(
    source_path: Path,
    message: str,
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Optional[str]]] = None,
) -> PipelineOutcome:
    """
    Resolve configuration, then run the pipeline.

    Configuration errors are reported before any git command runs.
    """
    outcome = PipelineOutcome()

    if env_file is None:
        env_file = find_env_file(source_path)

    try:
        settings = resolve_settings(env_file, environ=environ, overrides=overrides)
    except G2GError as e:
        logger.error(f"[config] {e.message}")
        outcome.record(StageResult.failed("config", e.message, e.remediation))
        return outcome

    return SyncManager(settings).run(source_path, message, outcome)
