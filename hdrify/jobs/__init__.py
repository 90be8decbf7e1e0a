"""
Jobs module - The single conversion job and the resources it owns.

This module provides:
- ConversionOrchestrator: Job state machine over the shared engine handle
- LogBuffer: Bounded per-job engine log
- OutputArtifact / SourceFile: Owned result and source
"""

from hdrify.jobs.logs import LogBuffer
from hdrify.jobs.artifact import OutputArtifact, SourceFile
from hdrify.jobs.orchestrator import (
    ConversionOrchestrator,
    JobState,
    STATE_LABELS,
)

__all__ = [
    "LogBuffer",
    "OutputArtifact",
    "SourceFile",
    "ConversionOrchestrator",
    "JobState",
    "STATE_LABELS",
]
