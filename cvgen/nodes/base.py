"""Node abstractions shared by the orchestrator's graph steps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, TypedDict

from ..types import PipelineRun
from ..utils.run_logger import RunLogger


class ChainState(TypedDict):
    """Graph state: the run being built plus its optional monotonic deadline."""

    run: PipelineRun
    deadline: Optional[float]


class Node(Protocol):
    """A unit of work that advances the run."""

    name: str

    def run(self, state: ChainState) -> ChainState:
        ...


@dataclass(slots=True)
class BaseNode:
    """Convenience base for nodes needing artifact logging."""

    name: str
    run_logger: Optional[RunLogger] = None

    def log_prompt(self, run_id: str, prompt: str, step: Optional[str] = None) -> None:
        """Persist the prompt when a run logger is configured."""
        if self.run_logger is not None:
            self.run_logger.log_prompt(run_id, step or self.name, prompt)

    def log_response(self, run_id: str, response: object, step: Optional[str] = None) -> None:
        """Persist the response when a run logger is configured."""
        if self.run_logger is not None:
            self.run_logger.log_response(run_id, step or self.name, response)
