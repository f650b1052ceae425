"""Combine per-pass probabilities into one probability and a confidence score.

Confidence rules (empirically tuned, kept configurable):

single pass
    ``min(ceiling, 0.5 + 1.5 * |p - 0.5|)``

multiple passes
    start from the majority-side agreement, boost consistent ensembles,
    add distance from 0.5, penalize inconsistent ensembles

The result is clamped to ``[floor, ceiling]``. Inputs are sorted before any
reduction so the output does not depend on pass order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..pipeline.contracts import AggregatedResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationConfig:
    decision_midpoint: float = 0.5

    confidence_floor: float = 0.55
    confidence_ceiling: float = 0.95

    # single pass: 0.5 + single_pass_gain * |p - 0.5|
    single_pass_gain: float = 1.5

    # consistent ensemble boost
    consistent_stddev: float = 0.10
    consistent_range: float = 0.20
    consistency_boost: float = 1.2

    # distance-from-midpoint bonus
    distance_gain: float = 0.4

    # inconsistent ensemble penalty
    inconsistent_stddev: float = 0.15
    inconsistent_range: float = 0.30
    inconsistency_penalty: float = 0.85


def aggregate_probabilities(probabilities: Sequence[float],
                            cfg: AggregationConfig = AggregationConfig()) -> AggregatedResult:
    probs = np.sort(np.asarray(probabilities, dtype=np.float64).reshape(-1))
    if probs.size == 0:
        raise ValueError("aggregate_probabilities requires at least one pass")

    n = int(probs.size)
    probability = float(np.clip(np.mean(probs), 0.0, 1.0))
    distance = abs(probability - cfg.decision_midpoint)

    if n == 1:
        confidence = min(cfg.confidence_ceiling, 0.5 + distance * cfg.single_pass_gain)
        result_kwargs = {}
    else:
        spread = float(probs[-1] - probs[0])
        stddev = float(np.sqrt(np.mean((probs - probability) ** 2)))
        upper_votes = int(np.sum(probs >= cfg.decision_midpoint))
        lower_votes = n - upper_votes
        agreement = max(upper_votes, lower_votes) / n

        confidence = agreement
        if stddev < cfg.consistent_stddev and spread < cfg.consistent_range:
            confidence = min(cfg.confidence_ceiling, confidence * cfg.consistency_boost)
        confidence = min(cfg.confidence_ceiling, confidence + distance * cfg.distance_gain)
        if stddev > cfg.inconsistent_stddev or spread > cfg.inconsistent_range:
            confidence = confidence * cfg.inconsistency_penalty

        logger.debug(
            "Statistics: Avg=%.1f%%, Range=[%.1f%%, %.1f%%], StdDev=%.1f%%, Agreement=%.0f%%",
            probability * 100, probs[0] * 100, probs[-1] * 100, stddev * 100, agreement * 100,
        )
        result_kwargs = {"agreement": agreement, "stddev": stddev, "spread": spread}

    confidence = max(cfg.confidence_floor, min(cfg.confidence_ceiling, confidence))
    return AggregatedResult(probability=probability, confidence=float(confidence),
                            pass_count=n, **result_kwargs)


def is_inconsistent(result: AggregatedResult, cfg: AggregationConfig = AggregationConfig()) -> bool:
    """True when a multi-pass result triggered the inconsistency penalty."""
    if result.pass_count < 2 or result.stddev is None or result.spread is None:
        return False
    return result.stddev > cfg.inconsistent_stddev or result.spread > cfg.inconsistent_range
