"""Threshold decision with a near-boundary confidence penalty.

The MAJOR threshold sits slightly above 0.5 so that borderline faces are
classified MINOR, which keeps the protective policy on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..pipeline.contracts import AggregatedResult, Verdict, VerdictLabel
from ..reason_codes import CODES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerdictConfig:
    threshold: float = 0.52
    boundary_margin: float = 0.08
    boundary_penalty: float = 0.85
    confidence_floor: float = 0.55


def decide(aggregate: AggregatedResult, cfg: VerdictConfig = VerdictConfig()) -> Verdict:
    p = aggregate.probability
    label = VerdictLabel.MAJOR if p >= cfg.threshold else VerdictLabel.MINOR

    # MAJOR results are measured against T, MINOR results against 1 - T
    reference = cfg.threshold if label is VerdictLabel.MAJOR else 1.0 - cfg.threshold
    distance = abs(p - reference)

    confidence = aggregate.confidence
    reason_codes = ()
    if distance < cfg.boundary_margin:
        confidence = max(cfg.confidence_floor, confidence * cfg.boundary_penalty)
        reason_codes = (CODES.NEAR_BOUNDARY,)
        logger.info("Close to threshold (distance: %.1f%%), reducing confidence", distance * 100)

    return Verdict(
        label=label,
        aggregate=aggregate,
        confidence=float(confidence),
        threshold=cfg.threshold,
        boundary_distance=float(distance),
        reason_codes=reason_codes,
    )
