"""
Errors — Failure taxonomy for a sync run.

Every fatal condition in the pipeline is a G2GError subclass. The
orchestrator catches exactly this family, records the failed stage and
stops; anything else is a bug and propagates.

"Nothing to commit" and "mirror remote not configured yet" are NOT errors.
They are reported as stage statuses (NO_OP, AWAITING_REMOTE_SETUP).

## Usage

    from g2g.errors import G2GError

    try:
        settings = resolve_settings(env_file)
    except G2GError as e:
        logger.error(str(e))
        if e.remediation:
            click.echo(e.remediation)
"""

from __future__ import annotations

from typing import List, Optional


class G2GError(Exception):
    """Base class for fatal sync errors."""

    def __init__(self, message: str, remediation: Optional[str] = None):
        self.message = message
        self.remediation = remediation
        super().__init__(message)


class ConfigError(G2GError):
    """Raised when required configuration is missing or invalid.

    Collects every problem so the user can fix them in one go.
    """

    def __init__(
        self,
        missing: Optional[List[str]] = None,
        invalid: Optional[List[str]] = None,
        remediation: Optional[str] = None,
    ):
        self.missing = list(missing or [])
        self.invalid = list(invalid or [])
        super().__init__(self._format_message(), remediation)

    def _format_message(self) -> str:
        parts = []
        if self.missing:
            parts.append(f"Missing required configuration: {', '.join(self.missing)}")
        if self.invalid:
            parts.append(f"Invalid configuration: {'; '.join(self.invalid)}")
        return ". ".join(parts) or "Invalid configuration"


class RepoStateError(G2GError):
    """Raised when a repository is unusable (not a repo, detached HEAD, commit refused)."""


class ReconcileError(G2GError):
    """Raised when copying or deleting files into the mirror directory fails."""


class PushError(G2GError):
    """Raised when a push is rejected or cannot reach the remote."""

    def __init__(
        self,
        message: str,
        remote: str = "origin",
        branch: Optional[str] = None,
        remediation: Optional[str] = None,
    ):
        self.remote = remote
        self.branch = branch
        super().__init__(message, remediation)
