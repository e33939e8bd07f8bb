"""Node producing the opening frame every later segment chains from."""

from __future__ import annotations

import logging
from typing import Optional

from ..components.frames import FrameSynthesizer
from ..errors import SynthesisFailed
from ..types import RunStage, RunStatus
from ..utils.run_logger import RunLogger
from .base import BaseNode, ChainState

logger = logging.getLogger(__name__)


class SynthesizeFirstFrame(BaseNode):
    """Renders the first frame; without it there is nothing to chain from."""

    def __init__(self, frames: FrameSynthesizer, run_logger: Optional[RunLogger] = None) -> None:
        super().__init__(name="SynthesizeFirstFrame", run_logger=run_logger)
        self._frames = frames

    def run(self, state: ChainState) -> ChainState:
        run = state["run"]
        run.stage = RunStage.SYNTHESIZING_FIRST_FRAME
        self.log_prompt(run.run_id, f"{run.prompt}\nstyle: {run.style}")

        try:
            frame = self._frames.synthesize(run.prompt, run.style, deadline=state.get("deadline"))
        except SynthesisFailed as exc:
            if exc.timed_out:
                logger.error("Run %s: first frame timed out: %s", run.run_id, exc)
            else:
                logger.error("Run %s: first frame failed: %s", run.run_id, exc)
            run.error = f"first frame: {exc}"
            run.status = RunStatus.FAILED
            run.stage = RunStage.FAILED
            self.log_response(run.run_id, {"status": "failed", "error": str(exc), "timed_out": exc.timed_out})
            return state

        run.first_frame = frame
        run.chain_frame = frame
        run.stage = RunStage.SEGMENT_LOOP
        logger.info("Run %s: first frame ready (%s)", run.run_id, frame.url or frame.asset_id)
        self.log_response(run.run_id, {"status": "ok", "first_frame": frame.summary()})
        return state
