"""
Models — Result types shared across pipeline stages.
"""

from .outcome import PipelineOutcome, StageResult, StageStatus

__all__ = [
    "PipelineOutcome",
    "StageResult",
    "StageStatus",
]
