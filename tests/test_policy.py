"""Tests for the policy state machine, verification window and consent gate."""

from __future__ import annotations

import pytest

from conftest import FIXED_NOW, RecordingSink
from agegate_core.errors import ConsentMissing, PolicyLockedError
from agegate_core.pipeline.contracts import AggregatedResult, Verdict, VerdictLabel
from agegate_core.policy.controller import (
    PolicyConfig,
    PolicyController,
    PolicyState,
    read_consent,
    record_consent,
)
from agegate_core.policy.sink import CallbackPolicySink
from agegate_core.policy.store import (
    CONSENT_GIVEN,
    CONSENT_TIMESTAMP,
    IS_MINOR,
    POLICY_ACTIVE,
    VERIFICATION_ALLOWED_UNTIL,
    InMemoryStore,
)


def _verdict(label):
    p = 0.3 if label is VerdictLabel.MINOR else 0.8
    agg = AggregatedResult(probability=p, confidence=0.9, pass_count=1)
    return Verdict(label=label, aggregate=agg, confidence=0.9, threshold=0.52, boundary_distance=0.2)


MINOR = _verdict(VerdictLabel.MINOR)
MAJOR = _verdict(VerdictLabel.MAJOR)


def _controller(store=None, sink=None, now=FIXED_NOW):
    return PolicyController(store or InMemoryStore(), sink or RecordingSink(), PolicyConfig(), lambda: now)


def test_minor_enforces_and_major_clears():
    sink = RecordingSink()
    ctl = _controller(sink=sink)
    assert ctl.state is PolicyState.UNSET

    out = ctl.apply(MINOR)
    assert out.state is PolicyState.ENFORCED and out.changed and out.applied
    out = ctl.apply(MAJOR)
    assert out.state is PolicyState.CLEARED and out.changed
    assert sink.calls == ["enable", "disable"]


def test_same_state_does_not_call_sink():
    sink = RecordingSink()
    ctl = _controller(sink=sink)
    ctl.apply(MINOR)
    out = ctl.apply(MINOR)
    assert not out.changed and out.applied
    assert sink.calls == ["enable"]


def test_window_and_verdict_recorded_in_ms():
    store = InMemoryStore()
    out = _controller(store=store).apply(MAJOR)
    assert out.allowed_until == pytest.approx(FIXED_NOW + 3600.0)
    assert store.get(IS_MINOR) is False
    assert store.get(VERIFICATION_ALLOWED_UNTIL) == int((FIXED_NOW + 3600.0) * 1000)


def test_locked_sink_keeps_state_but_records_window():
    store = InMemoryStore()
    sink = RecordingSink(locked=True)
    ctl = _controller(store=store, sink=sink)
    out = ctl.apply(MINOR)
    assert out.state is PolicyState.UNSET
    assert not out.changed and not out.applied
    assert "locked" in out.error
    assert store.get(IS_MINOR) is True
    assert store.get(VERIFICATION_ALLOWED_UNTIL) is not None

    # next cycle retries once the lock is gone
    sink.locked = False
    out = ctl.apply(MINOR)
    assert out.changed and out.state is PolicyState.ENFORCED


def test_state_restored_from_store():
    store = InMemoryStore({IS_MINOR: True, POLICY_ACTIVE: True})
    sink = RecordingSink()
    ctl = _controller(store=store, sink=sink)
    assert ctl.state is PolicyState.ENFORCED
    assert ctl.restore() is True
    assert sink.calls == ["enable"]
    assert _controller(store=InMemoryStore(), sink=sink).restore() is True
    assert sink.calls == ["enable"]


def test_restore_reports_locked_sink():
    ctl = _controller(store=InMemoryStore({IS_MINOR: False}), sink=RecordingSink(locked=True))
    assert ctl.restore() is False


def test_verification_window_active():
    store = InMemoryStore()
    ctl = _controller(store=store)
    assert not ctl.verification_active()
    ctl.apply(MAJOR)
    assert ctl.verification_active(FIXED_NOW + 3599.0)
    assert not ctl.verification_active(FIXED_NOW + 3601.0)


def test_consent_gate():
    store = InMemoryStore()
    ctl = _controller(store=store)
    with pytest.raises(ConsentMissing):
        ctl.require_consent()

    record = record_consent(store, clock=lambda: FIXED_NOW)
    assert record.given
    assert store.get(CONSENT_GIVEN) is True
    assert store.get(CONSENT_TIMESTAMP) == int(FIXED_NOW * 1000)
    assert ctl.require_consent().timestamp == pytest.approx(FIXED_NOW)


def test_consent_recorded_once():
    store = InMemoryStore()
    record_consent(store, clock=lambda: FIXED_NOW)
    record_consent(store, clock=lambda: FIXED_NOW + 100)
    assert read_consent(store).timestamp == pytest.approx(FIXED_NOW)


def test_non_boolean_consent_is_not_consent():
    assert not read_consent(InMemoryStore({CONSENT_GIVEN: "yes"})).given


def test_callback_sink_response_shapes():
    ok = CallbackPolicySink(lambda: {"success": True}, lambda: None)
    ok.enable_protection()
    ok.disable_protection()

    refused = CallbackPolicySink(lambda: {"success": False, "error": "managed by policy"}, lambda: False)
    with pytest.raises(PolicyLockedError, match="managed by policy"):
        refused.enable_protection()
    with pytest.raises(PolicyLockedError):
        refused.disable_protection()


def test_callback_sink_wraps_exceptions():
    def boom():
        raise RuntimeError("")

    sink = CallbackPolicySink(boom, boom)
    with pytest.raises(PolicyLockedError, match="SafeSearch is locked"):
        sink.enable_protection()


def test_refused_change_retried_by_next_process():
    store = InMemoryStore({IS_MINOR: False, POLICY_ACTIVE: False})
    locked = RecordingSink(locked=True)
    out = _controller(store=store, sink=locked).apply(MINOR)
    assert out.error is not None
    assert store.get(IS_MINOR) is True
    assert store.get(POLICY_ACTIVE) is False

    sink = RecordingSink()
    ctl = _controller(store=store, sink=sink)
    assert ctl.state is PolicyState.CLEARED
    out = ctl.apply(MINOR)
    assert sink.calls == ["enable"]
    assert out.changed and out.state is PolicyState.ENFORCED
    assert store.get(POLICY_ACTIVE) is True


def test_verdict_without_accepted_policy_loads_unset():
    ctl = _controller(store=InMemoryStore({IS_MINOR: True}))
    assert ctl.state is PolicyState.UNSET


def test_restore_applies_refused_verdict():
    store = InMemoryStore({IS_MINOR: True, POLICY_ACTIVE: False})
    sink = RecordingSink()
    ctl = _controller(store=store, sink=sink)
    assert ctl.restore() is True
    assert sink.calls == ["enable"]
    assert ctl.state is PolicyState.ENFORCED
    assert store.get(POLICY_ACTIVE) is True
