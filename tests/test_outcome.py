"""
Tests for the stage result and pipeline outcome models.
"""

from g2g.errors import ConfigError, PushError
from g2g.models.outcome import PipelineOutcome, StageResult, StageStatus


class TestStageResult:

    def test_no_op_is_ok(self):
        result = StageResult.no_op("primary")
        assert result.status == StageStatus.NO_OP
        assert result.ok
        assert result.detail == "No changes to commit"

    def test_failed(self):
        result = StageResult.failed("mirror", "rejected", "pull first")
        assert not result.ok
        assert result.detail == "rejected"
        assert result.remediation == "pull first"


class TestPipelineOutcome:

    def test_empty_outcome_succeeds(self):
        outcome = PipelineOutcome()
        assert outcome.success
        assert outcome.exit_code == 0
        assert outcome.summary() == ""

    def test_no_op_and_awaiting_setup_exit_zero(self):
        outcome = PipelineOutcome()
        outcome.record(StageResult.no_op("primary"))
        outcome.record(StageResult(stage="reconcile", status=StageStatus.RECONCILED))
        outcome.record(StageResult(stage="mirror", status=StageStatus.AWAITING_REMOTE_SETUP))

        assert outcome.exit_code == 0
        assert outcome.summary() == "primary=NO_OP reconcile=RECONCILED mirror=AWAITING_REMOTE_SETUP"

    def test_committed_counts_as_success(self):
        outcome = PipelineOutcome()
        outcome.record(StageResult(stage="primary", status=StageStatus.COMMITTED))

        assert outcome.exit_code == 0
        assert outcome.summary() == "primary=COMMITTED"

    def test_failure_exits_nonzero(self):
        outcome = PipelineOutcome()
        outcome.record(StageResult(stage="primary", status=StageStatus.PUSHED))
        failed = outcome.record(StageResult.failed("mirror", "boom"))

        assert outcome.failed is failed
        assert not outcome.success
        assert outcome.exit_code == 1

    def test_get_by_stage(self):
        outcome = PipelineOutcome()
        outcome.record(StageResult.no_op("primary"))
        assert outcome.get("primary").status == StageStatus.NO_OP
        assert outcome.get("mirror") is None


class TestErrors:

    def test_config_error_message_lists_everything(self):
        error = ConfigError(missing=["A", "B"], invalid=["C='x' is not a boolean"])
        assert str(error) == (
            "Missing required configuration: A, B. "
            "Invalid configuration: C='x' is not a boolean"
        )

    def test_push_error_carries_remote_and_branch(self):
        error = PushError("rejected", remote="origin", branch="main", remediation="pull")
        assert error.remote == "origin"
        assert error.branch == "main"
        assert error.remediation == "pull"
