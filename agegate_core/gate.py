"""Analysis cycle runner.

``AgeGate`` runs one full cycle at a time:

consent gate -> face detection -> TTA inference -> aggregation -> verdict
-> policy update + verification window

A start request while a cycle is active is dropped (``None`` is returned),
not queued.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .capture import CaptureSession, CaptureSource
from .config import AgeGateConfig
from .decision.aggregate import aggregate_probabilities, is_inconsistent
from .decision.verdict import decide
from .errors import AgeGateError, InputError
from .inference.classifier import Classifier
from .inference.orchestrator import InferenceOrchestrator
from .pipeline.contracts import AnalysisResult, Frame, Verdict
from .pipeline.face import AbsentDetector, Detector, detect_faces
from .pipeline.region import select_region
from .policy.controller import ConsentRecord, PolicyController, PolicyState
from .policy.sink import PolicySink
from .policy.store import KeyValueStore
from .reason_codes import CODES

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Everything a cycle needs, passed explicitly instead of read from globals."""

    classifier: Classifier
    store: KeyValueStore
    sink: PolicySink
    detector: Detector = field(default_factory=AbsentDetector)
    config: AgeGateConfig = field(default_factory=AgeGateConfig)
    clock: Callable[[], float] = time.time
    controller: PolicyController = field(init=False)

    def __post_init__(self):
        self.controller = PolicyController(self.store, self.sink, self.config.policy, self.clock)

    @property
    def consent(self) -> ConsentRecord:
        return self.controller.consent()

    @property
    def last_is_minor(self) -> Optional[bool]:
        return self.controller.last_is_minor

    @property
    def policy_state(self) -> PolicyState:
        return self.controller.state


class AgeGate:
    def __init__(self, context: PipelineContext):
        self.context = context
        cfg = context.config
        self.orchestrator = InferenceOrchestrator(
            context.classifier, cfg.ensemble, cfg.region, cfg.preprocess
        )
        self.last_verdict: Optional[Verdict] = None
        self._busy = False
        self._session: Optional[CaptureSession] = None

    @property
    def busy(self) -> bool:
        return self._busy

    def restore(self) -> bool:
        """Re-assert the persisted policy, e.g. after a process restart."""
        return self.context.controller.restore()

    async def analyze(self, frame: Frame,
                      stop_event: Optional[asyncio.Event] = None) -> Optional[AnalysisResult]:
        """Run one cycle on an already captured frame."""
        if self._busy:
            logger.info("Analysis already in progress, request dropped")
            return None
        self._busy = True
        try:
            self.context.controller.require_consent()
            return await self._run_cycle(frame, stop_event)
        finally:
            self._busy = False

    async def verify_from_capture(self, source: CaptureSource) -> Optional[AnalysisResult]:
        """Acquire the capture source, analyze one frame, then release the source."""
        if self._busy:
            logger.info("Analysis already in progress, request dropped")
            return None
        self._busy = True
        try:
            self.context.controller.require_consent()
            if self._session is not None and not self._session.closed:
                # previous capture still waiting for its auto-stop
                self._session.stop()
            async with CaptureSession(source, self.context.config.capture) as session:
                self._session = session
                frame = await session.read_frame()
                result = await self._run_cycle(frame, session.stop_event)
                session.schedule_auto_stop()
                return result
        finally:
            self._busy = False

    def stop(self) -> None:
        """Stop the active capture: no new passes start and the source is released."""
        if self._session is not None and not self._session.closed:
            logger.info("Stop requested")
            self._session.stop()

    async def _run_cycle(self, frame: Frame,
                         stop_event: Optional[asyncio.Event]) -> AnalysisResult:
        cfg = self.context.config
        if frame.is_empty:
            raise InputError(f"Empty frame ({frame.width}x{frame.height})")

        reason_codes: List[str] = []
        logger.info("Analyzing frame: %dx%d", frame.width, frame.height)
        try:
            faces = detect_faces(frame, self.context.detector, cfg.face, reason_codes)
            region = select_region(frame, faces, cfg.region.padding_pct, cfg.region.min_face_size)
            if region.reason_code is not None and CODES.DETECTOR_FAILED not in reason_codes:
                reason_codes.append(region.reason_code)

            passes = await self.orchestrator.run(frame, faces, stop_event, reason_codes)
            aggregate = aggregate_probabilities([p.probability for p in passes], cfg.aggregation)
            if is_inconsistent(aggregate, cfg.aggregation):
                reason_codes.append(CODES.INCONSISTENT_PASSES)
            verdict = decide(aggregate, cfg.verdict)
        except AgeGateError as e:
            logger.error("Analysis failed (%s): %s", e.reason_code, e)
            raise

        for p in passes:
            p.tensor = None

        logger.info("Final classification: %s (confidence %.1f%%, adult probability %.2f%%, %d pass(es))",
                     verdict.label.value, verdict.confidence * 100, verdict.probability * 100,
                     aggregate.pass_count)

        outcome = self.context.controller.apply(verdict)
        self.last_verdict = verdict

        reason_codes.extend(verdict.reason_codes)
        if outcome.error is not None:
            reason_codes.append(CODES.POLICY_LOCKED)

        return AnalysisResult(
            verdict=verdict,
            passes=passes,
            policy_applied=outcome.applied,
            policy_changed=outcome.changed,
            allowed_until=outcome.allowed_until,
            policy_error=outcome.error,
            reason_codes=list(dict.fromkeys(reason_codes)),
        )
