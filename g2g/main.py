"""
g2g — CLI Entry Point

Commit and push the current repository to its primary remote, then mirror
the tree into ../<repo>-github and push that to the mirror remote.

Usage:
    g2g
    g2g "Your commit message here"
    g2g --transport https --no-delete "message"
    python -m g2g --help
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Optional, Tuple

import click

from . import __version__
from .logging_config import setup_logging
from .mirror.manager import run_sync
from .models.outcome import PipelineOutcome, StageStatus
from .repo.primary import default_commit_message

logger = logging.getLogger(__name__)

EPILOG = (
    "Pushes to the primary remote, syncs files into the mirror directory, "
    "then pushes the mirror. With SSH transport the first run needs one manual "
    "'git remote add origin ...' (shown in the output)."
)


def _flag(value: Optional[bool]) -> Optional[str]:
    if value is None:
        return None
    return "true" if value else "false"


def build_overrides(
    mirror_dir: Optional[Path],
    transport: Optional[str],
    delete: Optional[bool],
    auto_init: Optional[bool],
    exclude: Tuple[str, ...],
) -> Dict[str, Optional[str]]:
    """Map CLI options onto configuration keys (None = not given)."""
    return {
        "G2G_MIRROR_DIR": str(mirror_dir) if mirror_dir else None,
        "G2G_TRANSPORT": transport,
        "G2G_DELETE": _flag(delete),
        "G2G_AUTO_INIT": _flag(auto_init),
        "G2G_EXCLUDE": ",".join(exclude) if exclude else None,
    }


def report(outcome: PipelineOutcome) -> None:
    """Print setup instructions and remediation for the user."""
    for result in outcome.results:
        if result.status == StageStatus.FAILED:
            click.secho(f"✗ {result.stage}: {result.detail}", fg="red", err=True)
        if result.remediation:
            click.echo()
            click.echo(result.remediation)
            click.echo()

    if outcome.success:
        awaiting = outcome.get("mirror")
        if awaiting and awaiting.status == StageStatus.AWAITING_REMOTE_SETUP:
            click.secho("✓ Committed locally; mirror push waiting for remote setup", fg="yellow")
        else:
            click.secho("✓ All done!", fg="green")


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=EPILOG,
)
@click.argument("message", nargs=-1)
@click.option("--source", type=click.Path(file_okay=False, path_type=Path), default=".",
              show_default=True, help="Path inside the repository to sync")
@click.option("--env-file", type=click.Path(exists=True, dir_okay=False, resolve_path=True, path_type=Path),
              default=None, help="Config file (default: .env at the repository top)")
@click.option("--mirror-dir", type=click.Path(file_okay=False, resolve_path=True, path_type=Path),
              default=None, help="Mirror working tree (default: ../<repo>-github)")
@click.option("--transport", type=click.Choice(["https", "ssh"]), default=None,
              help="How to reach the mirror remote (default: ssh)")
@click.option("--delete/--no-delete", default=None,
              help="Remove mirror files that no longer exist in the source (default: delete)")
@click.option("--auto-init/--no-auto-init", default=None,
              help="Initialise a new mirror repo on the source branch (default: on)")
@click.option("--exclude", multiple=True, help="Extra exclude pattern (repeatable)")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
@click.option("--json-logs", is_flag=True, help="Emit log lines as JSON")
@click.version_option(__version__, prog_name="g2g")
def cli(
    message: Tuple[str, ...],
    source: Path,
    env_file: Optional[Path],
    mirror_dir: Optional[Path],
    transport: Optional[str],
    delete: Optional[bool],
    auto_init: Optional[bool],
    exclude: Tuple[str, ...],
    log_level: Optional[str],
    json_logs: bool,
) -> None:
    """Commit & push to the primary remote, then mirror the tree and push it.

    MESSAGE defaults to "Auto-commit <timestamp>".
    """
    setup_logging(level=log_level, format_type="json" if json_logs else None)

    commit_msg = " ".join(message).strip() or default_commit_message()
    overrides = build_overrides(mirror_dir, transport, delete, auto_init, exclude)

    outcome = run_sync(
        source,
        commit_msg,
        env_file=env_file,
        environ=os.environ,
        overrides=overrides,
    )
    report(outcome)
    raise SystemExit(outcome.exit_code)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
