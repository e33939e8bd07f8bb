"""Node that settles the run-level outcome."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ..types import PipelineRun, RunStage, RunStatus
from ..utils.run_logger import RunLogger
from .base import BaseNode, ChainState

logger = logging.getLogger(__name__)


def settle_status(run: PipelineRun) -> RunStatus:
    """``completed`` when every segment chained, ``failed`` when none did."""
    succeeded = len(run.completed_segments)
    if succeeded == 0:
        return RunStatus.FAILED
    if succeeded == run.segment_count and succeeded == len(run.segments):
        return RunStatus.COMPLETED
    return RunStatus.PARTIALLY_COMPLETED


class FinalizeRun(BaseNode):
    """Derives status and achieved duration from the segment list."""

    def __init__(self, run_logger: Optional[RunLogger] = None) -> None:
        super().__init__(name="FinalizeRun", run_logger=run_logger)

    def run(self, state: ChainState) -> ChainState:
        run = state["run"]
        run.status = settle_status(run)
        run.stage = RunStage(run.status.value)
        run.achieved_duration_sec = sum(segment.achieved_duration for segment in run.completed_segments)
        run.finished_at = datetime.now(timezone.utc)
        if run.status is RunStatus.FAILED and run.error is None:
            run.error = "no segment could be generated"

        logger.info(
            "Run %s %s: %s/%s segments, %ss of %ss",
            run.run_id,
            run.status.value,
            len(run.completed_segments),
            run.segment_count,
            run.achieved_duration_sec,
            run.target_duration_sec,
        )
        if self.run_logger is not None:
            self.run_logger.write_summary(run.run_id, run.summary())
        return state
