"""
Outcome Model — Per-stage results of a sync run.

Every stage of the pipeline produces a StageResult, regardless of whether
it did work, found nothing to do, or failed. The ordered list of results
is the PipelineOutcome; it is the only place that decides the process
exit status.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class StageStatus(str, Enum):
    """What a stage did.

    Stages report their final state. A commit is always followed by a push
    attempt, so the built-in stages never stop at COMMITTED: a local-only
    mirror commit is AWAITING_REMOTE_SETUP, and a commit whose push fails is
    FAILED. COMMITTED stays available for callers that record a
    commit-without-push step of their own, and counts as success.
    """
    NO_OP = "NO_OP"                                  # nothing to stage
    COMMITTED = "COMMITTED"                          # committed, not pushed
    PUSHED = "PUSHED"                                # committed (or not) and pushed
    RECONCILED = "RECONCILED"                        # mirror tree brought in line
    AWAITING_REMOTE_SETUP = "AWAITING_REMOTE_SETUP"  # local commit, no remote yet
    FAILED = "FAILED"


class StageResult(BaseModel):
    """Result of one pipeline stage."""

    stage: str
    status: StageStatus
    detail: Optional[str] = None
    remediation: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status != StageStatus.FAILED

    @classmethod
    def no_op(cls, stage: str, detail: str = "No changes to commit") -> "StageResult":
        """Create a result for a stage that had nothing to do."""
        return cls(stage=stage, status=StageStatus.NO_OP, detail=detail)

    @classmethod
    def failed(
        cls,
        stage: str,
        reason: str,
        remediation: Optional[str] = None,
    ) -> "StageResult":
        """Create a failed result."""
        return cls(
            stage=stage,
            status=StageStatus.FAILED,
            detail=reason,
            remediation=remediation,
        )


class PipelineOutcome(BaseModel):
    """Ordered record of stage results for a single run."""

    results: List[StageResult] = Field(default_factory=list)

    def record(self, result: StageResult) -> StageResult:
        self.results.append(result)
        return result

    def get(self, stage: str) -> Optional[StageResult]:
        """Return the result for a stage, if that stage ran."""
        for result in self.results:
            if result.stage == stage:
                return result
        return None

    @property
    def failed(self) -> Optional[StageResult]:
        """The first failed stage, if any."""
        return next((r for r in self.results if r.status == StageStatus.FAILED), None)

    @property
    def success(self) -> bool:
        return self.failed is None

    @property
    def exit_code(self) -> int:
        """0 for success, including NO_OP and AWAITING_REMOTE_SETUP; 1 otherwise."""
        return 0 if self.success else 1

    def summary(self) -> str:
        """One-line summary, e.g. 'primary=PUSHED reconcile=RECONCILED mirror=NO_OP'."""
        return " ".join(f"{r.stage}={r.status.value}" for r in self.results)
