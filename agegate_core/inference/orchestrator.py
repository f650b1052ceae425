"""Test-time augmentation over the selected face region.

Each ensemble variant (padding x flip x brightness) re-runs region selection
and preprocessing, then calls the classifier. Passes run strictly one after
another with cooperative yields in between, so at most one tensor and one
in-flight inference exist at any time.

Failure policy:
- a pass that raises, or whose output cannot be interpreted, is skipped
- if every pass fails, one fallback pass with the default padding is tried
- if that fails too, ``InferenceUnavailable`` is raised
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..errors import AgeGateError, AnalysisCancelled, InferenceUnavailable, InputError
from ..pipeline.contracts import FaceBox, Frame, InferencePass
from ..pipeline.preprocess import PreprocessConfig, as_batch, preprocess_region
from ..pipeline.region import RegionConfig, select_region
from ..reason_codes import CODES
from .classifier import Classifier
from .interpret import interpret_output

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnsembleConfig:
    paddings: Tuple[float, ...] = (25.0,)

    # Also run every variant mirrored horizontally
    flips: bool = False
    brightness: Tuple[float, ...] = (1.0,)

    # Padding used by the single retry after all passes failed
    fallback_padding: float = 25.0

    # Cooperative delay (seconds) between passes and before each inference
    inter_pass_delay: float = 0.05

    def __post_init__(self):
        if not self.paddings:
            raise ValueError("EnsembleConfig.paddings must not be empty")
        if not self.brightness:
            raise ValueError("EnsembleConfig.brightness must not be empty")

    def variants(self) -> List[Tuple[float, bool, float]]:
        flips = (False, True) if self.flips else (False,)
        return [
            (float(p), f, float(b))
            for p, f, b in itertools.product(self.paddings, flips, self.brightness)
        ]


async def cooperative_yield(delay: float, stop_event: Optional[asyncio.Event] = None) -> bool:
    """Give the loop a chance to run other tasks. Returns True if stopped."""
    if stop_event is None:
        await asyncio.sleep(max(0.0, delay))
        return False
    if stop_event.is_set():
        return True
    if delay <= 0:
        await asyncio.sleep(0)
        return stop_event.is_set()
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True


class InferenceOrchestrator:
    def __init__(self, classifier: Classifier,
                 ensemble_cfg: EnsembleConfig = EnsembleConfig(),
                 region_cfg: RegionConfig = RegionConfig(),
                 preprocess_cfg: PreprocessConfig = PreprocessConfig()):
        self.classifier = classifier
        self.ensemble_cfg = ensemble_cfg
        self.region_cfg = region_cfg
        self.preprocess_cfg = preprocess_cfg

    async def _call_classifier(self, batch):
        infer = self.classifier.infer
        if inspect.iscoroutinefunction(infer):
            return await infer(batch)

        # Blocking classifiers (session creation + run) go to the default thread pool
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, infer, batch)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def run_pass(self, frame: Frame, faces: Sequence[FaceBox], padding_pct: float,
                       flip: bool = False, brightness: float = 1.0, fallback: bool = False,
                       stop_event: Optional[asyncio.Event] = None) -> InferencePass:
        """Run one variant. Raises on any failure."""
        region = select_region(frame, faces, padding_pct, self.region_cfg.min_face_size)
        tensor = preprocess_region(region, self.preprocess_cfg, flip=flip, brightness=brightness)
        inference_pass = InferencePass(
            padding_pct=padding_pct,
            tensor=tensor,
            flip=flip,
            brightness=brightness,
            fallback=fallback,
            region_source=region.source,
        )

        if await cooperative_yield(self.ensemble_cfg.inter_pass_delay, stop_event):
            raise AnalysisCancelled("Cycle stopped before inference was dispatched")

        raw = await self._call_classifier(as_batch(tensor))

        # A dispatched inference always completes; its result is dropped if the cycle stopped meanwhile
        if stop_event is not None and stop_event.is_set():
            raise AnalysisCancelled("Cycle stopped during inference; result discarded")

        inference_pass.raw_output = _as_vector(raw)
        inference_pass.probability = interpret_output(raw)
        return inference_pass

    async def run(self, frame: Frame, faces: Sequence[FaceBox] = (),
                  stop_event: Optional[asyncio.Event] = None,
                  reason_codes: Optional[List[str]] = None) -> List[InferencePass]:
        """Run every ensemble variant and return the successful passes (never empty)."""
        codes = reason_codes if reason_codes is not None else []
        variants = self.ensemble_cfg.variants()
        logger.info("Starting analysis with %d variant(s)", len(variants))

        passes: List[InferencePass] = []
        for idx, (padding, flip, brightness) in enumerate(variants):
            if idx > 0 and await cooperative_yield(self.ensemble_cfg.inter_pass_delay, stop_event):
                raise AnalysisCancelled("Cycle stopped between passes")
            try:
                p = await self.run_pass(frame, faces, padding, flip, brightness, stop_event=stop_event)
            except (InputError, AnalysisCancelled):
                raise
            except Exception as e:
                logger.warning("Inference failed for padding %.1f%% (flip=%s, brightness=%.2f): %s",
                               padding, flip, brightness, e)
                codes.append(_failure_code(e))
                continue
            logger.info("Inference %d/%d: adult probability = %.2f%%",
                        idx + 1, len(variants), p.probability * 100.0)
            passes.append(p)

        if passes:
            return passes

        logger.warning("All inference attempts failed, using fallback")
        codes.append(CODES.FALLBACK_USED)
        try:
            p = await self.run_pass(frame, faces, self.ensemble_cfg.fallback_padding,
                                    fallback=True, stop_event=stop_event)
        except (InputError, AnalysisCancelled):
            raise
        except Exception as e:
            logger.error("Fallback inference failed: %s", e)
            raise InferenceUnavailable(
                "Failed to analyze image. Please ensure your face is clearly visible and try again."
            ) from e
        logger.info("Fallback inference successful: %.2f%%", p.probability * 100.0)
        return [p]


def _as_vector(raw) -> np.ndarray:
    return np.asarray(raw, dtype=np.float64).reshape(-1)


def _failure_code(exc: Exception) -> str:
    if isinstance(exc, AgeGateError):
        return exc.reason_code
    return CODES.PASS_FAILED
