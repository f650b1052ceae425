"""Tests for the threshold decision and near-boundary penalty."""

from __future__ import annotations

import pytest

from agegate_core.decision.verdict import VerdictConfig, decide
from agegate_core.pipeline.contracts import AggregatedResult, VerdictLabel
from agegate_core.reason_codes import CODES


def _agg(p, c=0.9):
    return AggregatedResult(probability=p, confidence=c, pass_count=1)


def test_threshold_is_inclusive_for_major():
    assert decide(_agg(0.52)).label is VerdictLabel.MAJOR
    assert decide(_agg(0.5199)).label is VerdictLabel.MINOR


def test_clear_major_keeps_confidence():
    v = decide(_agg(0.8, 0.95))
    assert v.label is VerdictLabel.MAJOR and not v.is_minor
    assert v.confidence == pytest.approx(0.95)
    assert v.boundary_distance == pytest.approx(0.28)
    assert v.reason_codes == ()


def test_minor_measured_against_complement():
    v = decide(_agg(0.46, 0.56))
    assert v.is_minor
    # reference for MINOR is 1 - 0.52 = 0.48
    assert v.boundary_distance == pytest.approx(0.02)
    assert CODES.NEAR_BOUNDARY in v.reason_codes
    assert v.confidence == pytest.approx(0.55)


def test_near_boundary_penalty():
    v = decide(_agg(0.55, 0.9))
    assert v.label is VerdictLabel.MAJOR
    assert v.confidence == pytest.approx(0.9 * 0.85)


def test_custom_threshold():
    cfg = VerdictConfig(threshold=0.7)
    assert decide(_agg(0.65), cfg).label is VerdictLabel.MINOR
