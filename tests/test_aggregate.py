"""Tests for probability aggregation and confidence scoring."""

from __future__ import annotations

import itertools

import pytest

from agegate_core.decision.aggregate import AggregationConfig, aggregate_probabilities, is_inconsistent


def test_single_pass_confidence():
    result = aggregate_probabilities([0.8])
    assert result.probability == pytest.approx(0.8)
    assert result.confidence == pytest.approx(0.95)
    assert result.pass_count == 1
    assert result.agreement is None


def test_single_pass_near_midpoint_hits_floor():
    # 0.5 + 1.5 * 0.01 = 0.515, raised to the floor
    assert aggregate_probabilities([0.51]).confidence == pytest.approx(0.55)


def test_three_pass_scenario():
    result = aggregate_probabilities([0.40, 0.55, 0.48])
    assert result.probability == pytest.approx(0.47667, abs=1e-4)
    assert result.agreement == pytest.approx(2.0 / 3.0)
    assert result.spread == pytest.approx(0.15)
    # consistent ensemble: 2/3 * 1.2 + 0.4 * |0.4767 - 0.5|
    assert result.confidence == pytest.approx(0.8 + 0.4 * (0.5 - 0.476667), abs=1e-4)
    assert 0.55 <= result.confidence <= 0.95
    assert not is_inconsistent(result)


def test_inconsistent_passes_penalized():
    result = aggregate_probabilities([0.1, 0.9])
    assert result.spread == pytest.approx(0.8)
    assert is_inconsistent(result)
    # agreement 0.5, no distance bonus, then * 0.85 -> floor
    assert result.confidence == pytest.approx(0.55)


def test_pass_order_does_not_matter():
    probs = [0.31, 0.72, 0.55, 0.49]
    results = {
        (round(r.probability, 12), round(r.confidence, 12))
        for r in (aggregate_probabilities(list(p)) for p in itertools.permutations(probs))
    }
    assert len(results) == 1


@pytest.mark.parametrize("probs", [[0.0], [1.0], [0.5, 0.5], [0.0, 1.0, 0.5], [0.99, 0.98, 0.97]])
def test_confidence_always_within_bounds(probs):
    cfg = AggregationConfig()
    c = aggregate_probabilities(probs, cfg).confidence
    assert cfg.confidence_floor <= c <= cfg.confidence_ceiling


def test_empty_input_rejected():
    with pytest.raises(ValueError):
        aggregate_probabilities([])
