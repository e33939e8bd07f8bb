"""Per-run prompt and response artifacts kept under ``runs/<run_id>``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .files import ensure_dir, write_json, write_text


@dataclass(slots=True)
class StepLogPaths:
    """Convenience container with derived log file paths."""

    prompt_path: Path
    response_path: Path


class RunLogger:
    """Persists what each pipeline step asked for and what it got back."""

    def __init__(self, base_dir: str | Path = "runs") -> None:
        self._base_dir = ensure_dir(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def run_dir(self, run_id: str) -> Path:
        return ensure_dir(self._base_dir / run_id)

    def step_paths(self, run_id: str, step_name: str) -> StepLogPaths:
        """Return the paths used for logging a specific step."""
        run_root = self.run_dir(run_id)
        return StepLogPaths(
            prompt_path=run_root / f"{step_name}-prompt.txt",
            response_path=run_root / f"{step_name}-response.json",
        )

    def log_prompt(self, run_id: str, step_name: str, prompt: str) -> None:
        write_text(self.step_paths(run_id, step_name).prompt_path, prompt)

    def log_response(self, run_id: str, step_name: str, response: Any) -> None:
        write_json(self.step_paths(run_id, step_name).response_path, response)

    def write_summary(self, run_id: str, summary: Any) -> Path:
        """Store the final run summary next to the step logs."""
        return write_json(self.run_dir(run_id) / "run.json", summary)
