"""Pipeline orchestration for keyframe-chained continuous video."""

from __future__ import annotations

import json
import logging
import numbers
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional

from langchain_core.runnables import RunnableLambda
from langgraph.graph import END, START, StateGraph

from .assembly import SegmentAssembler
from .components.frames import FrameSynthesizer, ReferenceFrameSynthesizer
from .components.predictor import ContinuityPredictor
from .components.relay import ImageHostingRelay
from .components.segments import SegmentVideoSynthesizer
from .config import PipelineConfig
from .nodes.base import ChainState, Node
from .nodes.finalize import FinalizeRun
from .nodes.first_frame import SynthesizeFirstFrame
from .nodes.segment import GenerateSegment
from .polling import PollingJobClient
from .services.base import VisionPredictionAPI
from .services.gemini import GeminiVisionClient
from .services.hosting import FreeImageHost, ImgBBHost
from .services.luma import LumaClient
from .services.openai_images import OpenAIImageEditor
from .services.openai_vision import OpenAIVisionClient
from .types import ContinuityMode, JobKind, PipelineRun, RunStage, SegmentDuration
from .utils.run_logger import RunLogger

logger = logging.getLogger(__name__)

FIRST_FRAME = "first_frame"
SEGMENT = "segment"
FINALIZE = "finalize"


class ChainOrchestrator:
    """Top-level control loop: first frame, then one segment per graph step.

    The graph is ``first_frame -> segment (looping) -> finalize``. Capabilities
    are injected so that tests can substitute fakes; the orchestrator keeps no
    per-run state, which lets independent runs share one instance.
    """

    def __init__(
        self,
        frames: FrameSynthesizer,
        predictor: ContinuityPredictor,
        relay: ImageHostingRelay,
        videos: SegmentVideoSynthesizer,
        *,
        run_logger: Optional[RunLogger] = None,
        max_duration_sec: int = 60,
        run_timeout_sec: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_duration_sec = max_duration_sec
        self._run_timeout_sec = run_timeout_sec
        self._clock = clock
        self._nodes: Dict[str, Node] = {
            FIRST_FRAME: SynthesizeFirstFrame(frames, run_logger=run_logger),
            SEGMENT: GenerateSegment(predictor, relay, videos, run_logger=run_logger, clock=clock),
            FINALIZE: FinalizeRun(run_logger=run_logger),
        }
        self._app = self._build_graph().compile()

    def run(
        self,
        prompt: str,
        target_duration_sec: float = 30,
        style: str = "cinematic",
        segment_duration: SegmentDuration | int | str = SegmentDuration.NINE,
        mode: ContinuityMode | str = ContinuityMode.PREMIUM,
    ) -> PipelineRun:
        """Execute one run and return it in a terminal state."""
        run = self.new_run(prompt, target_duration_sec, style, segment_duration, mode)
        deadline = self._clock() + self._run_timeout_sec if self._run_timeout_sec else None
        logger.info(
            "Run %s: %ss target as %s x %ss segments (%s mode)",
            run.run_id,
            run.target_duration_sec,
            run.segment_count,
            int(run.segment_duration),
            run.mode.value,
        )
        result = self._app.invoke(
            {"run": run, "deadline": deadline},
            config={"recursion_limit": run.segment_count + 10},
        )
        return result["run"]

    def new_run(
        self,
        prompt: str,
        target_duration_sec: float,
        style: str,
        segment_duration: SegmentDuration | int | str,
        mode: ContinuityMode | str,
    ) -> PipelineRun:
        """Validate the request and create its :class:`PipelineRun`."""
        if not prompt or not prompt.strip():
            raise ValueError("prompt is required")
        if isinstance(target_duration_sec, bool) or not isinstance(target_duration_sec, numbers.Real):
            raise ValueError(f"target duration must be a number, got {target_duration_sec!r}")
        if not target_duration_sec > 0:
            raise ValueError("target duration must be positive")
        if target_duration_sec > self._max_duration_sec:
            raise ValueError(f"maximum duration is {self._max_duration_sec} seconds")
        return PipelineRun(
            run_id=self._new_run_id(),
            prompt=prompt.strip(),
            style=style or "cinematic",
            target_duration_sec=target_duration_sec,
            segment_duration=SegmentDuration.parse(segment_duration),
            mode=ContinuityMode(mode),
        )

    def _build_graph(self) -> StateGraph:
        """Wire the nodes into a looping LangGraph state graph."""
        graph = StateGraph(ChainState)
        for name, node in self._nodes.items():
            graph.add_node(name, RunnableLambda(lambda state, _node=node: self._invoke_node(_node, state)))

        graph.add_edge(START, FIRST_FRAME)
        graph.add_conditional_edges(
            FIRST_FRAME, self._after_first_frame, {SEGMENT: SEGMENT, FINALIZE: FINALIZE}
        )
        graph.add_conditional_edges(SEGMENT, self._after_segment, {SEGMENT: SEGMENT, FINALIZE: FINALIZE})
        graph.add_edge(FINALIZE, END)
        return graph

    @staticmethod
    def _after_first_frame(state: ChainState) -> str:
        run = state["run"]
        if run.stage is RunStage.SEGMENT_LOOP and run.segment_count > 0:
            return SEGMENT
        return FINALIZE

    @staticmethod
    def _after_segment(state: ChainState) -> str:
        run = state["run"]
        return SEGMENT if run.next_index < run.segment_count else FINALIZE

    def _invoke_node(self, node: Node, state: ChainState) -> dict:
        """Execute a node while emitting a compact debug trace."""
        started = time.perf_counter()
        updated = node.run(state)
        elapsed = time.perf_counter() - started
        if logger.isEnabledFor(logging.DEBUG):
            body = json.dumps(updated["run"].summary(), ensure_ascii=False, indent=2, default=str)
            logger.debug("[%s] << output [%.2fs]:\n%s", node.name, elapsed, body)
        return {"run": updated["run"]}

    @staticmethod
    def _new_run_id() -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        return f"{stamp}-{uuid.uuid4().hex[:6]}"


class ContinuousVideoGenerator:
    """High-level facade wiring vendor clients from a :class:`PipelineConfig`."""

    def __init__(self, config: PipelineConfig | None = None) -> None:
        self.config = config or PipelineConfig.from_env()
        cfg = self.config
        use_mock = cfg.enable_mock_generation
        self.run_logger = RunLogger(base_dir=cfg.runs_dir) if cfg.runs_dir else None

        self.luma = LumaClient(
            api_key=cfg.luma_api_key,
            api_url=cfg.luma_api_url,
            image_model=cfg.luma_image_model,
            video_model=cfg.luma_video_model,
            use_mock=use_mock,
            timeout=cfg.http_timeout,
        )
        images = self.luma.images
        videos = self.luma.videos
        self.frames = FrameSynthesizer(
            images,
            PollingJobClient(
                images,
                JobKind.IMAGE,
                poll_interval=0.0 if use_mock else cfg.image_poll_interval,
                max_attempts=cfg.image_max_attempts,
            ),
            aspect_ratio=cfg.aspect_ratio,
        )
        self.vision = self._build_vision()
        self.predictor = ContinuityPredictor(self.vision, self.frames, self._build_reference_frames())
        self.relay = ImageHostingRelay.from_order(
            cfg.hosting_order,
            provider=self.frames,
            hosts=self._build_hosts(),
        )
        self.videos = SegmentVideoSynthesizer(
            videos,
            PollingJobClient(
                videos,
                JobKind.VIDEO,
                poll_interval=0.0 if use_mock else cfg.video_poll_interval,
                max_attempts=cfg.video_max_attempts,
            ),
            aspect_ratio=cfg.aspect_ratio,
            resolution=cfg.resolution,
            retry_timeouts=cfg.video_timeout_retries,
        )
        self.orchestrator = ChainOrchestrator(
            self.frames,
            self.predictor,
            self.relay,
            self.videos,
            run_logger=self.run_logger,
            max_duration_sec=cfg.max_duration_sec,
            run_timeout_sec=cfg.run_timeout_sec,
        )

    def run(
        self,
        prompt: str,
        target_duration_sec: float = 30,
        style: str | None = None,
        segment_duration: SegmentDuration | int | str | None = None,
        mode: ContinuityMode | str | None = None,
    ) -> PipelineRun:
        """Execute the pipeline with config defaults for anything left unset."""
        return self.orchestrator.run(
            prompt,
            target_duration_sec=target_duration_sec,
            style=style or self.config.default_style,
            segment_duration=segment_duration or self.config.default_segment_duration,
            mode=mode or self.config.default_mode,
        )

    def _build_vision(self) -> VisionPredictionAPI:
        cfg = self.config
        provider = cfg.vision_provider.strip().lower()
        if provider == "gemini":
            return GeminiVisionClient(
                api_key=cfg.gemini_api_key, model=cfg.gemini_model, use_mock=cfg.enable_mock_generation
            )
        if provider == "openai":
            return OpenAIVisionClient(
                api_key=cfg.openai_api_key,
                api_url=cfg.openai_api_url,
                model=cfg.openai_vision_model,
                use_mock=cfg.enable_mock_generation,
                timeout=cfg.http_timeout,
            )
        raise ValueError(f"unknown vision provider: {cfg.vision_provider!r}")

    def _build_reference_frames(self) -> ReferenceFrameSynthesizer | None:
        """End frames drawn from the start frame (openai) or from text on the image provider (luma)."""
        cfg = self.config
        provider = cfg.end_frame_provider.strip().lower()
        if provider == "luma":
            return None
        if provider == "openai":
            editor = OpenAIImageEditor(
                api_key=cfg.openai_api_key,
                api_url=cfg.openai_api_url,
                model=cfg.openai_image_model,
                use_mock=cfg.enable_mock_generation,
                timeout=max(cfg.http_timeout, 120),
            )
            return ReferenceFrameSynthesizer(editor)
        raise ValueError(f"unknown end frame provider: {cfg.end_frame_provider!r}")

    def _build_hosts(self) -> List[FreeImageHost | ImgBBHost]:
        cfg = self.config
        return [
            FreeImageHost(cfg.freeimage_api_key, use_mock=cfg.enable_mock_generation, timeout=cfg.http_timeout),
            ImgBBHost(cfg.imgbb_api_key, use_mock=cfg.enable_mock_generation, timeout=cfg.http_timeout),
        ]

    def assemble(self, run: PipelineRun, output_path: str | Path) -> Path:
        """Concatenate the run's segment videos; mock runs only get a concat manifest."""
        assembler = SegmentAssembler(
            self.luma.videos.download,
            self.config.runs_dir or "runs",
            dry_run=self.config.enable_mock_generation,
        )
        return assembler.assemble(run, output_path)
